"""
PDF format, handled by converting to a word package first.

The translated output of a PDF is a DOCX; lossless PDF output is not
supported.
"""

from __future__ import annotations

import logging
from pathlib import Path

import fitz  # PyMuPDF

from docsplice.config import Settings
from docsplice.errors import InputError
from docsplice.formats.base import DocumentFormat, DocumentKind
from docsplice.formats.conversion import LibreOfficeConverter
from docsplice.formats.docx import DocxFormat
from docsplice.models import ReassemblyReport, Segment

logger = logging.getLogger(__name__)

PDF_PREFIX = "pdf_converted_"


class PdfFormat(DocumentFormat):
    """PDF documents, converted to DOCX for both segmentation and reassembly."""

    kind = DocumentKind.PDF

    def __init__(
        self,
        settings: Settings | None = None,
        converter: LibreOfficeConverter | None = None,
    ):
        super().__init__(settings)
        self.converter = converter or LibreOfficeConverter(self.settings.conversion)
        self._docx = DocxFormat(self.settings)

    def inspect(self, file_path: Path) -> int:
        """
        Check that the PDF opens and is not encrypted.

        Returns:
            Number of pages.

        Raises:
            InputError: If the file is missing, corrupt or password protected.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise InputError(f"File not found: {file_path}")
        try:
            doc = fitz.open(file_path)
        except (fitz.FileDataError, RuntimeError) as e:
            raise InputError(f"Invalid or corrupted PDF file: {file_path.name} ({e})") from e
        with doc:
            if doc.needs_pass:
                raise InputError(f"PDF is password protected: {file_path.name}")
            return doc.page_count

    def segment(self, file_path: Path) -> list[Segment]:
        pages = self.inspect(file_path)
        logger.debug("PDF %s has %d pages", Path(file_path).name, pages)
        with self.converter.convert(file_path) as docx_path:
            segments = self._docx.segment(docx_path)
        return [s.with_identifier(f"{PDF_PREFIX}{s.identifier}") for s in segments]

    def reassemble(
        self,
        original_path: Path,
        original_segments: list[Segment],
        translated_segments: list[Segment],
        output_path: Path,
    ) -> ReassemblyReport:
        if Path(output_path).suffix.lower() != ".docx":
            logger.warning(
                "Saving PDF translation as DOCX (PDF export not supported): %s", output_path
            )
        self.check_identifiers(original_segments, translated_segments)
        with self.converter.convert(original_path) as docx_path:
            return self._docx.reassemble(docx_path, [], translated_segments, output_path)

    def default_output_path(self, input_path: Path) -> Path:
        input_path = Path(input_path)
        return input_path.with_name(f"{input_path.stem}_translated.docx")
