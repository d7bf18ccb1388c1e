"""
Segmenter and reassembler facades.

Format handlers raise; the facades log each failure, report it once through
the error callback and return an empty or failed result, never a partial one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from docsplice.config import Settings
from docsplice.errors import DocSpliceError, InputError
from docsplice.formats import get_document_format
from docsplice.models import ReassemblyReport, Segment

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str], None]


class _Facade:
    def __init__(self, settings: Settings | None = None, on_error: ErrorCallback | None = None):
        self.settings = settings or Settings()
        self._on_error = on_error

    def _report(self, error: DocSpliceError) -> None:
        logger.error(error.message)
        if self._on_error:
            self._on_error(error.message)


class DocumentSegmenter(_Facade):
    """Splits a document of any supported kind into segments."""

    def segment(self, input_path: Path | str) -> list[Segment]:
        """
        Segment the input document.

        Args:
            input_path: Path to a .txt, .docx, .epub or .pdf file.

        Returns:
            The segments, or an empty list if the document could not be read.
        """
        input_path = Path(input_path)
        try:
            if not input_path.exists():
                raise InputError(f"Input file does not exist: {input_path}")
            segments = get_document_format(input_path, self.settings).segment(input_path)
        except DocSpliceError as e:
            self._report(e)
            return []

        logger.info("Split %s into %d segments", input_path.name, len(segments))
        return segments


class DocumentReassembler(_Facade):
    """Writes translated segments back into a document of the original kind."""

    def reassemble(
        self,
        original_path: Path | str,
        original_segments: list[Segment],
        translated_segments: list[Segment],
        output_path: Path | str,
    ) -> ReassemblyReport | None:
        """
        Produce the translated document.

        Returns:
            ReassemblyReport on success, None if no output was produced.
        """
        original_path = Path(original_path)
        output_path = Path(output_path)
        try:
            document_format = get_document_format(original_path, self.settings)
            report = document_format.reassemble(
                original_path, original_segments, translated_segments, output_path
            )
        except DocSpliceError as e:
            self._report(e)
            return None

        logger.info(
            "Saved %s (%d rewritten, %d untouched)",
            output_path,
            report.units_rewritten,
            report.units_untouched,
        )
        return report
