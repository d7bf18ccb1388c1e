"""
Plain text format.

Paragraphs are lines; there is no structure to preserve, so reassembly just
writes the translated segments back in order.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from docsplice.chunking import chunk_paragraphs
from docsplice.errors import InputError, OutputError
from docsplice.formats.base import DocumentFormat, DocumentKind
from docsplice.models import ReassemblyReport, Segment, sort_segments

logger = logging.getLogger(__name__)


class TextFormat(DocumentFormat):
    """UTF-8 plain text files."""

    kind = DocumentKind.TEXT

    def read_text(self, file_path: Path) -> str:
        """Read the whole file, keeping line endings as they are."""
        try:
            with open(file_path, encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            raise InputError(f"File not found: {file_path}") from None
        except UnicodeDecodeError as e:
            raise InputError(f"Text file is not valid UTF-8: {file_path} ({e.reason})") from e
        except OSError as e:
            raise InputError(f"Could not open text file: {file_path} ({e})") from e

    def segment(self, file_path: Path) -> list[Segment]:
        content = self.read_text(Path(file_path))
        chunks = chunk_paragraphs(content, self.max_segment_bytes)
        logger.debug("Split %s into %d segments", Path(file_path).name, len(chunks))
        return self.segments_from_chunks(chunks)

    def reassemble(
        self,
        original_path: Path,
        original_segments: list[Segment],
        translated_segments: list[Segment],
        output_path: Path,
    ) -> ReassemblyReport:
        self.check_identifiers(original_segments, translated_segments)
        ordered = sort_segments(translated_segments)
        content = "\n".join(s.text for s in ordered)

        output_path = Path(output_path)
        tmp_path = output_path.with_name(f".{output_path.name}.part")
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_path, output_path)
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise OutputError(f"Could not open file for writing: {output_path} ({e})") from e

        return ReassemblyReport(
            output_path=output_path,
            units_rewritten=len(ordered),
            units_untouched=max(len(original_segments) - len(ordered), 0),
        )
