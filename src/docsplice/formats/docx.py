"""
Word package (DOCX) format.

The body text lives in ``word/document.xml``. Segmentation extracts one line
per paragraph that carries text; reassembly copies the package entry by
entry and rewrites only the text runs of those paragraphs, so styles,
numbering, media and relationships are carried over untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from lxml import etree

from docsplice.chunking import chunk_paragraphs
from docsplice.formats.archive import open_archive, read_entry, rewrite_archive
from docsplice.formats.base import DocumentFormat, DocumentKind
from docsplice.formats.markup import XML_SPACE, clean_xml_text, parse_markup, serialize_markup
from docsplice.models import ReassemblyReport, Segment, sort_segments

logger = logging.getLogger(__name__)

DOCUMENT_ENTRY = "word/document.xml"
W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
W_P = f"{{{W_NS}}}p"
W_T = f"{{{W_NS}}}t"


@dataclass
class WordParagraph:
    """A paragraph of document.xml together with its own text runs."""

    element: etree._Element
    runs: list[etree._Element]

    @property
    def text(self) -> str:
        return "".join(run.text or "" for run in self.runs)


@dataclass
class ParagraphRewrite:
    """Counters from rewriting document.xml."""

    replaced: int = 0
    untouched: int = 0
    surplus: int = 0


def _owning_paragraph(run: etree._Element) -> etree._Element | None:
    parent = run.getparent()
    while parent is not None and parent.tag != W_P:
        parent = parent.getparent()
    return parent


def text_paragraphs(root: etree._Element) -> list[WordParagraph]:
    """
    Collect the paragraphs that carry text, in document order.

    A run belongs to its nearest enclosing paragraph, so the runs of a
    paragraph nested in a text box are not counted for the outer one.
    Paragraphs without text (section breaks, empty spacing paragraphs) are
    not returned.
    """
    runs_by_paragraph: dict[etree._Element, list[etree._Element]] = {}
    for run in root.iter(W_T):
        owner = _owning_paragraph(run)
        if owner is not None:
            runs_by_paragraph.setdefault(owner, []).append(run)

    paragraphs = []
    for element in root.iter(W_P):
        para = WordParagraph(element, runs_by_paragraph.get(element, []))
        if para.text.strip():
            paragraphs.append(para)
    return paragraphs


def extract_lines(xml: bytes) -> list[str]:
    """One line of text per paragraph that carries text."""
    root = parse_markup(xml)
    return [p.text.replace("\n", " ") for p in text_paragraphs(root)]


def _remove_keeping_tail(element: etree._Element) -> None:
    parent = element.getparent()
    if parent is None:
        return
    if element.tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)


def rewrite_paragraphs(xml: bytes, lines: list[str]) -> tuple[bytes, ParagraphRewrite]:
    """
    Put translated lines into the text paragraphs of document.xml.

    The first run of each paragraph receives the line and the paragraph's
    other runs are removed, so mixed-format paragraphs collapse to the
    formatting of their first run. If there are fewer lines than paragraphs
    the remaining paragraphs keep their text; surplus lines are appended to
    the last rewritten paragraph.

    Returns:
        The new document.xml bytes and rewrite counters.
    """
    root = parse_markup(xml)
    paragraphs = text_paragraphs(root)
    stats = ParagraphRewrite()

    targets = list(zip(paragraphs, lines))
    stats.untouched = len(paragraphs) - len(targets)
    surplus = lines[len(targets):]

    for i, (para, line) in enumerate(targets):
        if surplus and i == len(targets) - 1:
            line = " ".join([line, *surplus])
            stats.surplus = len(surplus)
        first, *rest = para.runs
        first.text = clean_xml_text(line)
        first.set(XML_SPACE, "preserve")
        for run in rest:
            _remove_keeping_tail(run)
        stats.replaced += 1

    return serialize_markup(root, xml), stats


class DocxFormat(DocumentFormat):
    """Word packages (.docx)."""

    kind = DocumentKind.DOCX

    def read_document_xml(self, file_path: Path) -> bytes:
        with open_archive(file_path) as archive:
            return read_entry(archive, DOCUMENT_ENTRY)

    def segment(self, file_path: Path) -> list[Segment]:
        xml = self.read_document_xml(Path(file_path))
        lines = extract_lines(xml)
        full_text = "\n".join(lines)
        logger.debug(
            "Extracted %d paragraphs (%d characters) from %s",
            len(lines),
            len(full_text),
            Path(file_path).name,
        )
        return self.segments_from_chunks(chunk_paragraphs(full_text, self.max_segment_bytes))

    def reassemble(
        self,
        original_path: Path,
        original_segments: list[Segment],
        translated_segments: list[Segment],
        output_path: Path,
    ) -> ReassemblyReport:
        self.check_identifiers(original_segments, translated_segments)
        joined = "\n".join(s.text for s in sort_segments(translated_segments))
        lines = [line for line in joined.split("\n") if line.strip()]

        stats = ParagraphRewrite()

        def transform(name: str, data: bytes) -> bytes | None:
            nonlocal stats
            if name != DOCUMENT_ENTRY:
                return None
            new_xml, stats = rewrite_paragraphs(data, lines)
            return new_xml

        # Fail before creating output if the package has no body
        self.read_document_xml(Path(original_path))
        rewrite_archive(original_path, output_path, transform)

        report = ReassemblyReport(
            output_path=Path(output_path),
            units_rewritten=stats.replaced,
            units_untouched=stats.untouched,
            surplus_lines=stats.surplus,
        )
        if stats.untouched:
            report.warnings.append(
                f"{stats.untouched} paragraphs kept their original text "
                f"(only {len(lines)} translated lines)"
            )
        if stats.surplus:
            report.warnings.append(
                f"{stats.surplus} surplus translated lines merged into the last paragraph"
            )
        for warning in report.warnings:
            logger.warning(warning)
        return report
