"""Tests for PDF handling through the LibreOffice converter."""

import subprocess
from pathlib import Path

import fitz
import pytest
from docx import Document

from docsplice.config import ConversionConfig
from docsplice.errors import ConversionError, InputError
from docsplice.formats import PdfFormat
from docsplice.formats import conversion
from docsplice.formats.conversion import LibreOfficeConverter, find_soffice


@pytest.fixture
def make_pdf(tmp_path: Path):
    """Factory building a one-page PDF holding `text`."""

    def _make(text: str = "Hello PDF", name: str = "doc.pdf", password: str = "") -> Path:
        path = tmp_path / name
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), text)
        if password:
            doc.save(
                str(path),
                encryption=fitz.PDF_ENCRYPT_AES_256,
                owner_pw=password,
                user_pw=password,
            )
        else:
            doc.save(str(path))
        doc.close()
        return path

    return _make


@pytest.fixture
def fake_soffice(monkeypatch):
    """Pretend LibreOffice is installed; conversion writes a DOCX with fixed paragraphs."""
    calls: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        out_dir = Path(cmd[cmd.index("--outdir") + 1])
        document = Document()
        for text in ("Converted first", "Converted second"):
            document.add_paragraph(text)
        document.save(str(out_dir / f"{Path(cmd[-1]).stem}.docx"))
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(conversion, "find_soffice", lambda configured="": "/usr/bin/soffice")
    monkeypatch.setattr(conversion.subprocess, "run", fake_run)
    return calls


class TestFindSoffice:
    """Tests for locating LibreOffice."""

    def test_configured_path_must_exist(self, tmp_path):
        assert find_soffice(str(tmp_path / "nowhere" / "soffice")) is None

    def test_configured_path(self, tmp_path):
        binary = tmp_path / "soffice"
        binary.write_text("", "utf-8")
        assert find_soffice(str(binary)) == str(binary)

    def test_searches_path(self, monkeypatch):
        monkeypatch.setattr(
            conversion.shutil,
            "which",
            lambda name: "/opt/lo/soffice" if name == "soffice" else None,
        )
        assert find_soffice() == "/opt/lo/soffice"


class TestLibreOfficeConverter:
    """Tests for LibreOfficeConverter.convert."""

    def test_missing_libreoffice(self, monkeypatch, make_pdf):
        monkeypatch.setattr(conversion, "find_soffice", lambda configured="": None)
        with pytest.raises(ConversionError, match="LibreOffice not found"):
            with LibreOfficeConverter().convert(make_pdf()):
                pass

    def test_temporary_output_is_removed(self, fake_soffice, make_pdf):
        with LibreOfficeConverter().convert(make_pdf()) as docx_path:
            assert docx_path.exists()
            assert docx_path.suffix == ".docx"
        assert not docx_path.parent.exists()
        assert "--headless" in fake_soffice[0]

    def test_timeout(self, monkeypatch, make_pdf):
        def slow_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(conversion, "find_soffice", lambda configured="": "soffice")
        monkeypatch.setattr(conversion.subprocess, "run", slow_run)
        converter = LibreOfficeConverter(ConversionConfig(timeout_seconds=10))

        with pytest.raises(ConversionError, match="timed out"):
            with converter.convert(make_pdf()):
                pass

    def test_non_zero_exit(self, monkeypatch, make_pdf):
        monkeypatch.setattr(conversion, "find_soffice", lambda configured="": "soffice")
        monkeypatch.setattr(
            conversion.subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, stdout="", stderr="boom\n"),
        )
        with pytest.raises(ConversionError, match="boom"):
            with LibreOfficeConverter().convert(make_pdf()):
                pass

    def test_no_output_file(self, monkeypatch, make_pdf):
        monkeypatch.setattr(conversion, "find_soffice", lambda configured="": "soffice")
        monkeypatch.setattr(
            conversion.subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, stdout="", stderr=""),
        )
        with pytest.raises(ConversionError, match="no output"):
            with LibreOfficeConverter().convert(make_pdf()):
                pass


class TestPdfFormat:
    """Tests for PdfFormat."""

    def test_inspect_counts_pages(self, make_pdf, settings):
        assert PdfFormat(settings).inspect(make_pdf()) == 1

    def test_missing_file(self, tmp_path, settings):
        with pytest.raises(InputError, match="File not found"):
            PdfFormat(settings).segment(tmp_path / "missing.pdf")

    def test_corrupt_file(self, tmp_path, settings):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf")
        with pytest.raises(InputError, match="Invalid or corrupted PDF"):
            PdfFormat(settings).segment(path)

    def test_password_protected(self, make_pdf, settings):
        path = make_pdf(password="secret")
        with pytest.raises(InputError, match="password protected"):
            PdfFormat(settings).segment(path)

    def test_segments_come_from_converted_docx(self, fake_soffice, make_pdf, settings):
        segments = PdfFormat(settings).segment(make_pdf())

        assert len(segments) == 1
        assert segments[0].identifier == "pdf_converted_segment_0"
        assert segments[0].text == "Converted first\nConverted second"

    def test_reassemble_writes_docx(self, fake_soffice, make_pdf, settings, tmp_path):
        path = make_pdf()
        fmt = PdfFormat(settings)
        segments = fmt.segment(path)
        out = fmt.default_output_path(path)
        translated = [segments[0].with_text("Premier converti\nSecond converti")]

        report = fmt.reassemble(path, segments, translated, out)

        assert out.name == "doc_translated.docx"
        assert [p.text for p in Document(str(out)).paragraphs] == [
            "Premier converti",
            "Second converti",
        ]
        assert report.units_rewritten == 2
        assert len(fake_soffice) == 2
