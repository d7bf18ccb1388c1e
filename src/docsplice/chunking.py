"""
Paragraph chunker.

Splits raw text into size-bounded chunks along newline boundaries. A
paragraph is never cut in half: a single paragraph larger than the limit
becomes its own oversize chunk.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# 8 MiB leaves a safety margin under the 10 MB request limit of most engines
DEFAULT_MAX_SEGMENT_BYTES = 8 * 1024 * 1024


@dataclass(frozen=True)
class TextChunk:
    """A run of whole paragraphs and its UTF-8 size."""

    text: str
    byte_size: int


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def chunk_paragraphs(text: str, max_bytes: int = DEFAULT_MAX_SEGMENT_BYTES) -> list[TextChunk]:
    """
    Greedily pack paragraphs into chunks of at most `max_bytes` UTF-8 bytes.

    Empty paragraphs are kept, blank lines are structural. Joining the chunk
    texts with a newline reconstructs the input exactly.

    Args:
        text: Input text, paragraphs separated by ``\\n``.
        max_bytes: Size limit for one chunk.

    Returns:
        Ordered list of chunks. Empty input yields an empty list.

    Raises:
        ValueError: If max_bytes is not positive.
    """
    if max_bytes <= 0:
        raise ValueError(f"max_bytes must be positive, got {max_bytes}")
    if not text:
        return []

    chunks: list[TextChunk] = []
    buffer: list[str] = []
    buffer_size = 0

    for paragraph in text.split("\n"):
        paragraph_size = _utf8_len(paragraph)
        if buffer and buffer_size + 1 + paragraph_size > max_bytes:
            chunks.append(TextChunk("\n".join(buffer), buffer_size))
            buffer = [paragraph]
            buffer_size = paragraph_size
        elif buffer:
            buffer.append(paragraph)
            buffer_size += 1 + paragraph_size
        else:
            buffer = [paragraph]
            buffer_size = paragraph_size

    if buffer:
        chunks.append(TextChunk("\n".join(buffer), buffer_size))

    return chunks


def needs_splitting(file_path: Path | str, max_bytes: int = DEFAULT_MAX_SEGMENT_BYTES) -> bool:
    """Check whether a file is larger than one segment."""
    return Path(file_path).stat().st_size > max_bytes
