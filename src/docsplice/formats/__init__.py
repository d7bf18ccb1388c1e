"""
Document formats for docsplice.

Each format pairs a segmenter with the matching reassembler:
- TextFormat for UTF-8 plain text
- DocxFormat for word packages
- EpubFormat for e-book packages
- PdfFormat for PDF, converted to DOCX through LibreOffice
"""

from __future__ import annotations

from pathlib import Path

from docsplice.config import Settings
from docsplice.formats.base import SUPPORTED_EXTENSIONS, DocumentFormat, DocumentKind, detect_kind
from docsplice.formats.docx import DocxFormat
from docsplice.formats.epub import EpubFormat
from docsplice.formats.pdf import PdfFormat
from docsplice.formats.text import TextFormat

FORMATS: dict[DocumentKind, type[DocumentFormat]] = {
    DocumentKind.TEXT: TextFormat,
    DocumentKind.DOCX: DocxFormat,
    DocumentKind.EPUB: EpubFormat,
    DocumentKind.PDF: PdfFormat,
}


def get_document_format(file_path: Path | str, settings: Settings | None = None) -> DocumentFormat:
    """
    Create the format handler for a file.

    Raises:
        InputError: If the extension is not supported.
    """
    return FORMATS[detect_kind(file_path)](settings)


__all__ = [
    "SUPPORTED_EXTENSIONS",
    "DocumentFormat",
    "DocumentKind",
    "DocxFormat",
    "EpubFormat",
    "PdfFormat",
    "TextFormat",
    "detect_kind",
    "get_document_format",
]
