"""
Markup token stream over lxml trees.

Container chapters and document bodies are rewritten by walking a stream of
start / end / text events and replacing only the targeted text slots. The
rest of the tree (tags, attributes, comments, processing instructions) is
serialized back as parsed.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from lxml import etree

from docsplice.errors import InputError

XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"
XML_DECLARATION = re.compile(rb"<\?xml[^>]*\?>")
XML_ILLEGAL_CHARS = re.compile("[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


class EventKind(str, Enum):
    """Kinds of markup events."""

    START = "start"
    END = "end"
    TEXT = "text"


@dataclass(frozen=True)
class TextSlot:
    """
    A text node of an lxml tree.

    lxml stores character data on elements: ``element.text`` precedes the
    first child, ``element.tail`` follows the element's end tag.
    """

    element: etree._Element
    attr: str  # "text" or "tail"

    @property
    def value(self) -> str:
        return getattr(self.element, self.attr) or ""

    def set(self, value: str) -> None:
        setattr(self.element, self.attr, value)


@dataclass(frozen=True)
class MarkupEvent:
    kind: EventKind
    name: str = ""
    element: etree._Element | None = None
    slot: TextSlot | None = None


def local_name(element: etree._Element) -> str:
    """Tag name without namespace; empty for comments and processing instructions."""
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def iter_events(
    element: etree._Element,
    skip: frozenset[str] = frozenset(),
) -> Iterator[MarkupEvent]:
    """
    Yield the start / text / end events of a subtree in document order.

    The tail of `element` itself is not part of its subtree and is not
    yielded. Text inside elements named in `skip` (e.g. script, style) is
    left out, but their tails are not.
    """
    name = local_name(element)
    yield MarkupEvent(EventKind.START, name, element)
    if name not in skip:
        if element.text:
            yield MarkupEvent(EventKind.TEXT, name, element, TextSlot(element, "text"))
        for child in element:
            if isinstance(child.tag, str):
                yield from iter_events(child, skip)
            if child.tail:
                yield MarkupEvent(EventKind.TEXT, name, child, TextSlot(child, "tail"))
    yield MarkupEvent(EventKind.END, name, element)


def iter_text_slots(
    element: etree._Element,
    skip: frozenset[str] = frozenset(),
) -> Iterator[TextSlot]:
    for event in iter_events(element, skip):
        if event.kind is EventKind.TEXT and event.slot is not None:
            yield event.slot


def parse_markup(data: bytes, *, recover: bool = False) -> etree._Element:
    """
    Parse XML or XHTML bytes.

    Args:
        data: Raw entry content.
        recover: Let lxml repair broken markup (undefined entities, unclosed
            tags) instead of failing. Used for ebook chapters.

    Raises:
        InputError: If the markup cannot be parsed.
    """
    parser = etree.XMLParser(
        recover=recover,
        resolve_entities=False,
        remove_blank_text=False,
        huge_tree=True,
    )
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        raise InputError(f"Malformed markup: {e}") from e
    if root is None:
        raise InputError("Malformed markup: no root element")
    return root


def clean_xml_text(text: str) -> str:
    """Drop characters that XML 1.0 does not allow (most C0 controls, lone surrogates)."""
    return XML_ILLEGAL_CHARS.sub("", text)


def serialize_markup(root: etree._Element, original: bytes) -> bytes:
    """
    Serialize a parsed tree back to bytes.

    The XML declaration is written only if the original had one, and carries
    a standalone flag only if the original declared it; the DOCTYPE and
    top-level comments come from the parsed document.
    """
    tree = root.getroottree()
    docinfo = tree.docinfo
    declaration = XML_DECLARATION.match(original.lstrip(b"\xef\xbb\xbf \t\r\n"))
    kwargs = {}
    if declaration and b"standalone" in declaration.group(0):
        kwargs["standalone"] = bool(docinfo.standalone)
    return etree.tostring(
        tree,
        encoding=docinfo.encoding or "UTF-8",
        xml_declaration=declaration is not None,
        **kwargs,
    )


def find_body(root: etree._Element) -> etree._Element:
    """Return the ``body`` element of an (X)HTML document, or the root."""
    if local_name(root) == "body":
        return root
    body = root.find(".//{*}body")
    if body is None:
        body = root.find(".//body")
    return body if body is not None else root
