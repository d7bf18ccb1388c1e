"""
Base classes and interfaces for document formats.

Every format variant implements the same segment / reassemble pair.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import ClassVar

from docsplice.chunking import TextChunk
from docsplice.config import Settings
from docsplice.errors import InputError
from docsplice.models import ReassemblyReport, Segment


class DocumentKind(str, Enum):
    """Supported document formats."""

    TEXT = "text"
    DOCX = "docx"
    EPUB = "epub"
    PDF = "pdf"


SUPPORTED_EXTENSIONS = {
    ".txt": DocumentKind.TEXT,
    ".docx": DocumentKind.DOCX,
    ".epub": DocumentKind.EPUB,
    ".pdf": DocumentKind.PDF,
}


def detect_kind(file_path: Path | str) -> DocumentKind:
    """
    Map a file extension to a document kind.

    Raises:
        InputError: If the extension is not supported.
    """
    suffix = Path(file_path).suffix.lower()
    try:
        return SUPPORTED_EXTENSIONS[suffix]
    except KeyError:
        raise InputError(f"Unsupported file format: {suffix or '(none)'}") from None


class DocumentFormat(ABC):
    """Abstract base class for format variants."""

    kind: ClassVar[DocumentKind]

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    @property
    def max_segment_bytes(self) -> int:
        return self.settings.segmentation.max_segment_bytes

    @property
    def name(self) -> str:
        """Format name for logging."""
        return self.kind.value

    def can_handle(self, file_path: Path) -> bool:
        """Check if this format handles the given file."""
        return SUPPORTED_EXTENSIONS.get(Path(file_path).suffix.lower()) == self.kind

    @abstractmethod
    def segment(self, file_path: Path) -> list[Segment]:
        """
        Split a document into ordered segments.

        Args:
            file_path: Source document.

        Returns:
            Segments with contiguous indices starting at 0.

        Raises:
            InputError: If the document cannot be read.
        """
        ...

    @abstractmethod
    def reassemble(
        self,
        original_path: Path,
        original_segments: list[Segment],
        translated_segments: list[Segment],
        output_path: Path,
    ) -> ReassemblyReport:
        """
        Write the translated document.

        Args:
            original_path: Source document the segments came from.
            original_segments: Segments as produced by `segment`.
            translated_segments: Translated copies; may miss tail entries.
            output_path: Destination file.

        Returns:
            ReassemblyReport describing what was rewritten.

        Raises:
            InputError: If the original cannot be read or the translated
                segments contain identifiers `segment` never produced.
            OutputError: If the output cannot be written.
        """
        ...

    def default_output_path(self, input_path: Path) -> Path:
        """``<stem>_translated<suffix>`` next to the input."""
        input_path = Path(input_path)
        return input_path.with_name(f"{input_path.stem}_translated{input_path.suffix}")

    @staticmethod
    def check_identifiers(original: list[Segment], translated: list[Segment]) -> None:
        """Reject translated segments that segmentation never produced."""
        known = {s.identifier for s in original}
        extras = [s.identifier for s in translated if s.identifier not in known]
        if original and extras:
            raise InputError(f"Translated segments not produced by segmentation: {extras[:5]}")

    @staticmethod
    def segments_from_chunks(
        chunks: list[TextChunk],
        *,
        start_index: int = 0,
        prefix: str = "segment_",
    ) -> list[Segment]:
        """Wrap chunker output as segments with synthetic identifiers."""
        return [
            Segment(
                text=chunk.text,
                identifier=f"{prefix}{i}",
                index=start_index + i,
                original_size=chunk.byte_size,
            )
            for i, chunk in enumerate(chunks)
        ]
