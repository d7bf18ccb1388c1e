"""Shared test fixtures for docsplice tests."""

import asyncio
import zipfile
from pathlib import Path

import pytest
from docx import Document

from docsplice.config import ProviderConfig, RefinementConfig, Settings
from docsplice.providers.base import RefinementProvider

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

CONTENT_OPF = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="id">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/"><dc:title>Test</dc:title></metadata>
</package>"""


def xhtml(body: str, title: str = "Chapter") -> str:
    """Wrap body markup in a complete XHTML chapter."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">\n'
        f"<head><title>{title}</title><style>p {{ margin: 0 }}</style></head>\n"
        f"<body>{body}</body>\n"
        "</html>"
    )


@pytest.fixture
def settings() -> Settings:
    """Default settings."""
    return Settings()


@pytest.fixture
def small_settings() -> Settings:
    """Settings with a tiny segment limit so small fixtures get split."""
    s = Settings()
    s.segmentation.max_segment_bytes = 64
    return s


@pytest.fixture
def make_docx(tmp_path: Path):
    """Factory building a .docx with one paragraph per string."""

    def _make(paragraphs: list[str], name: str = "doc.docx") -> Path:
        document = Document()
        for text in paragraphs:
            document.add_paragraph(text)
        path = tmp_path / name
        document.save(str(path))
        return path

    return _make


@pytest.fixture
def make_epub(tmp_path: Path):
    """Factory building an .epub from {entry name: xhtml markup}."""

    def _make(chapters: dict[str, str], name: str = "book.epub") -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
            archive.writestr(
                "META-INF/container.xml", CONTAINER_XML, compress_type=zipfile.ZIP_DEFLATED
            )
            archive.writestr("OEBPS/content.opf", CONTENT_OPF, compress_type=zipfile.ZIP_DEFLATED)
            for entry, markup in chapters.items():
                archive.writestr(entry, markup, compress_type=zipfile.ZIP_DEFLATED)
        return path

    return _make


class FakeProvider(RefinementProvider):
    """
    Provider answering from a callable, recording prompts and concurrency.

    With `gated` set, each request waits on its own event in `gates`, which
    lets tests observe the queue while a request is in flight.
    """

    def __init__(self, reply=None, config: ProviderConfig | None = None):
        super().__init__(config or ProviderConfig())
        self.reply = reply or (lambda prompt, n: f"refined {n}")
        self.prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gates: list[asyncio.Event] = []
        self.gated = False
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def complete(self, prompt: str) -> str:
        n = len(self.prompts)
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gated:
                gate = asyncio.Event()
                self.gates.append(gate)
                await gate.wait()
            else:
                await asyncio.sleep(0)
            result = self.reply(prompt, n)
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def refinement_config() -> RefinementConfig:
    """Refinement enabled with small chunks."""
    return RefinementConfig(enabled=True, chunk_chars=200)


@pytest.fixture
def provider_factory():
    """The FakeProvider class, for tests that need custom replies."""
    return FakeProvider


@pytest.fixture
def xhtml_page():
    """The xhtml() chapter builder."""
    return xhtml
