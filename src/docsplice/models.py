"""
Data models shared by the segmentation and reassembly engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path


@dataclass(frozen=True)
class Segment:
    """
    One translatable unit of a document.

    Segments are created once by a segmenter. Translation never mutates a
    segment: `with_text` returns a copy with only the text replaced.
    """

    text: str
    identifier: str
    index: int
    original_size: int = 0
    original_markup: str | None = field(default=None, repr=False)

    @property
    def byte_size(self) -> int:
        """UTF-8 size of the current text."""
        return len(self.text.encode("utf-8"))

    @property
    def has_markup(self) -> bool:
        return self.original_markup is not None

    def with_text(self, text: str) -> Segment:
        """Return a translated copy of this segment."""
        return replace(self, text=text)

    def with_identifier(self, identifier: str) -> Segment:
        return replace(self, identifier=identifier)


def sort_segments(segments: list[Segment]) -> list[Segment]:
    """Return segments ordered by their global index."""
    return sorted(segments, key=lambda s: s.index)


@dataclass
class ReassemblyReport:
    """Result of a successful reassembly."""

    output_path: Path
    units_rewritten: int = 0
    units_untouched: int = 0
    surplus_lines: int = 0
    warnings: list[str] = field(default_factory=list)
