"""
E-book package (EPUB) format.

Each XHTML chapter is one segment, or several ``<chapter>_part<k>`` segments
when its text exceeds the segment limit. The untouched chapter markup rides
along on the first segment of the chapter so reassembly can put the
translation back into the original structure.
"""

from __future__ import annotations

import logging
from html import escape
from pathlib import Path

from docsplice.chunking import chunk_paragraphs
from docsplice.errors import InputError
from docsplice.formats.archive import open_archive, read_entry, rewrite_archive
from docsplice.formats.base import DocumentFormat, DocumentKind
from docsplice.formats.markup import (
    EventKind,
    clean_xml_text,
    find_body,
    iter_events,
    iter_text_slots,
    parse_markup,
    serialize_markup,
)
from docsplice.models import ReassemblyReport, Segment

logger = logging.getLogger(__name__)

BLOCK_TAGS = frozenset({"p", "h1", "h2", "h3", "h4", "h5", "h6"})
SKIPPED_TAGS = frozenset({"script", "style"})
PART_MARKER = "_part"

MINIMAL_XHTML = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml">
<body><p>{text}</p></body></html>"""


def extract_chapter_text(markup: bytes) -> str:
    """
    Extract the body text of a chapter, one line per paragraph or heading.

    Text nodes are stripped and joined with a single space; the end of a
    ``p`` or ``h1``-``h6`` element closes the current line. Text outside any
    block element is carried into the next line.
    """
    body = find_body(parse_markup(markup, recover=True))
    lines: list[str] = []
    current: list[str] = []

    for event in iter_events(body, SKIPPED_TAGS):
        if event.kind is EventKind.TEXT and event.slot is not None:
            text = event.slot.value.strip()
            if text:
                current.append(text)
        elif event.kind is EventKind.END and event.name in BLOCK_TAGS and current:
            lines.append(" ".join(current))
            current = []

    if current:
        lines.append(" ".join(current))
    return "\n".join(lines)


def distribute_words(markup: bytes, translated: str, complete: bool = True) -> bytes:
    """
    Replace the body text nodes of a chapter with translated words.

    Every non-blank text node takes as many words from the translation as it
    originally held, keeping its own leading and trailing whitespace, so
    inline tags (emphasis, links) stay where they were. Word alignment across
    languages is approximate: surplus words go to the last node and nodes
    that run out of words keep only their whitespace.

    When `complete` is false the translation covers only the start of the
    chapter: once its words run out the remaining nodes keep their original
    text, and the last node gets no surplus.
    """
    root = parse_markup(markup, recover=True)
    body = find_body(root)
    slots = [slot for slot in iter_text_slots(body, SKIPPED_TAGS) if slot.value.strip()]
    words = [clean_xml_text(word) for word in translated.split()]
    position = 0

    for i, slot in enumerate(slots):
        if not complete and position >= len(words):
            break
        original = slot.value
        stripped = original.strip()
        leading = original[: len(original) - len(original.lstrip())]
        trailing = original[len(original.rstrip()) :]
        if complete and i == len(slots) - 1:
            taken = words[position:]
        else:
            taken = words[position : position + len(stripped.split())]
        position += len(taken)
        slot.set(leading + " ".join(taken) + trailing)

    return serialize_markup(root, markup)


def minimal_chapter(text: str) -> bytes:
    """Smallest valid XHTML document holding `text` in one paragraph."""
    return MINIMAL_XHTML.format(text=escape(clean_xml_text(text), quote=False)).encode("utf-8")


class EpubFormat(DocumentFormat):
    """E-book packages (.epub)."""

    kind = DocumentKind.EPUB

    @property
    def chapter_extensions(self) -> tuple[str, ...]:
        return tuple(self.settings.segmentation.chapter_extensions)

    def is_chapter(self, name: str) -> bool:
        return name.lower().endswith(self.chapter_extensions)

    def segment(self, file_path: Path) -> list[Segment]:
        file_path = Path(file_path)
        segments: list[Segment] = []

        with open_archive(file_path) as archive:
            chapters = [n for n in archive.namelist() if self.is_chapter(n)]
            if not chapters:
                raise InputError(f"No chapters found in EPUB file: {file_path.name}")

            for name in chapters:
                raw = read_entry(archive, name)
                try:
                    markup = raw.decode("utf-8")
                    text = extract_chapter_text(raw)
                except (UnicodeDecodeError, InputError) as e:
                    logger.warning("Skipping unreadable chapter %s: %s", name, e)
                    continue
                if not text:
                    logger.debug("Chapter %s has no text", name)
                    continue
                segments.extend(self._chapter_segments(name, text, markup, len(segments)))

        logger.debug(
            "Split %s: %d chapters into %d segments", file_path.name, len(chapters), len(segments)
        )
        return segments

    def _chapter_segments(
        self, name: str, text: str, markup: str, start_index: int
    ) -> list[Segment]:
        size = len(text.encode("utf-8"))
        if size <= self.max_segment_bytes:
            return [
                Segment(
                    text=text,
                    identifier=name,
                    index=start_index,
                    original_size=size,
                    original_markup=markup,
                )
            ]

        logger.debug("Chapter %s too large (%d bytes), splitting by paragraphs", name, size)
        chunks = chunk_paragraphs(text, self.max_segment_bytes)
        return [
            Segment(
                text=chunk.text,
                identifier=f"{name}{PART_MARKER}{part}",
                index=start_index + part,
                original_size=chunk.byte_size,
                original_markup=markup if part == 0 else None,
            )
            for part, chunk in enumerate(chunks)
        ]

    def reassemble(
        self,
        original_path: Path,
        original_segments: list[Segment],
        translated_segments: list[Segment],
        output_path: Path,
    ) -> ReassemblyReport:
        self.check_identifiers(original_segments, translated_segments)
        translations = {s.identifier: s.text for s in translated_segments}
        markups = {
            s.identifier: s.original_markup
            for s in [*translated_segments, *original_segments]
            if s.original_markup is not None
        }
        report = ReassemblyReport(output_path=Path(output_path))

        def transform(name: str, data: bytes) -> bytes | None:
            if not self.is_chapter(name):
                return None
            complete = True
            if name in translations:
                text = translations[name]
                markup = markups.get(name)
            elif f"{name}{PART_MARKER}0" in translations:
                parts = self._join_parts(name, translations)
                text = " ".join(parts)
                markup = markups.get(f"{name}{PART_MARKER}0")
                expected = sum(
                    1 for s in original_segments if s.identifier.startswith(f"{name}{PART_MARKER}")
                )
                complete = len(parts) >= expected
                if not complete:
                    logger.warning(
                        "Only %d of %d parts translated for %s, keeping the rest",
                        len(parts),
                        expected,
                        name,
                    )
            else:
                report.units_untouched += 1
                return None

            report.units_rewritten += 1
            if markup is None:
                logger.warning("No retained markup for %s, writing a minimal chapter", name)
                return minimal_chapter(text)
            return distribute_words(markup.encode("utf-8"), text, complete=complete)

        rewrite_archive(original_path, output_path, transform)
        return report

    @staticmethod
    def _join_parts(name: str, translations: dict[str, str]) -> list[str]:
        """Collect ``_part0``, ``_part1``, ... up to the first missing part."""
        parts = []
        part = 0
        while f"{name}{PART_MARKER}{part}" in translations:
            parts.append(translations[f"{name}{PART_MARKER}{part}"])
            part += 1
        return parts
