"""Tests for the ebook package (EPUB) format."""

import zipfile

import pytest

from docsplice.errors import InputError
from docsplice.formats import EpubFormat
from docsplice.formats.epub import distribute_words, extract_chapter_text, minimal_chapter
from docsplice.models import Segment

LONG_BODY = "".join(
    f"<p>Paragraph {i} has <em>several</em> words in it.</p>\n" for i in range(6)
)


def _read(path, name: str) -> bytes:
    with zipfile.ZipFile(path) as archive:
        return archive.read(name)


class TestChapterText:
    """Tests for chapter text extraction and word distribution."""

    def test_blocks_become_lines(self, xhtml_page):
        markup = xhtml_page("<h1>Title</h1><p>First <b>bold</b> line</p><p>Second</p>")
        assert extract_chapter_text(markup.encode()) == "Title\nFirst bold line\nSecond"

    def test_head_and_scripts_are_ignored(self, xhtml_page):
        markup = xhtml_page("<script>var x = 1;</script><p>Text</p>")
        assert extract_chapter_text(markup.encode()) == "Text"

    def test_inline_tag_keeps_one_word(self, xhtml_page):
        markup = xhtml_page("<p>Hello <i>world</i>.</p>").encode()

        result = distribute_words(markup, "Bonjour monde.")

        assert b"<p>Bonjour <i>monde.</i></p>" in result
        assert result.startswith(b"<?xml")

    def test_surplus_words_go_to_last_node(self, xhtml_page):
        markup = xhtml_page("<p>One <i>two</i></p>").encode()

        result = distribute_words(markup, "un deux trois quatre")

        assert b"<p>un <i>deux trois quatre</i></p>" in result

    def test_scripts_are_not_rewritten(self, xhtml_page):
        markup = xhtml_page("<script>var x = 1;</script><p>Text</p>").encode()

        result = distribute_words(markup, "Texte")

        assert b"var x = 1;" in result
        assert b"<p>Texte</p>" in result

    def test_control_characters_are_dropped(self, xhtml_page):
        markup = xhtml_page("<p>Hello world</p>").encode()

        result = distribute_words(markup, "Bonjour\x0c monde\x01")

        assert b"<p>Bonjour monde</p>" in result

    def test_declaration_without_standalone(self, xhtml_page):
        markup = xhtml_page("<p>Text</p>").encode()

        result = distribute_words(markup, "Texte")

        assert result.startswith(b"<?xml")
        assert b"standalone" not in result

    def test_incomplete_translation_leaves_later_nodes(self, xhtml_page):
        markup = xhtml_page("<p>One two</p><p>Three <i>four</i></p>").encode()

        result = distribute_words(markup, "un deux trois", complete=False)

        assert b"<p>un deux</p>" in result
        assert b"<p>trois <i>four</i></p>" in result

    def test_minimal_chapter_escapes_text(self):
        assert b"<p>Salut &amp; co &lt;3</p>" in minimal_chapter("Salut & co <3")


class TestEpubSegment:
    """Tests for EpubFormat.segment."""

    def test_short_and_oversized_chapters(self, make_epub, xhtml_page, small_settings):
        path = make_epub(
            {
                "OEBPS/ch1.xhtml": xhtml_page("<p>Hello <i>world</i>.</p>"),
                "OEBPS/ch2.xhtml": xhtml_page(LONG_BODY),
            }
        )

        segments = EpubFormat(small_settings).segment(path)

        assert segments[0].identifier == "OEBPS/ch1.xhtml"
        assert segments[0].text == "Hello world ."
        assert segments[0].has_markup
        parts = segments[1:]
        assert len(parts) >= 2
        assert [s.identifier for s in parts] == [
            f"OEBPS/ch2.xhtml_part{k}" for k in range(len(parts))
        ]
        assert parts[0].has_markup
        assert not any(s.has_markup for s in parts[1:])
        assert [s.index for s in segments] == list(range(len(segments)))

    def test_chapters_without_text_are_skipped(self, make_epub, xhtml_page, settings):
        path = make_epub(
            {
                "OEBPS/cover.xhtml": xhtml_page('<img src="cover.jpg" alt=""/>'),
                "OEBPS/ch1.html": xhtml_page("<p>Text</p>"),
            }
        )

        segments = EpubFormat(settings).segment(path)

        assert [s.identifier for s in segments] == ["OEBPS/ch1.html"]

    def test_no_chapters(self, make_epub, settings):
        path = make_epub({})
        with pytest.raises(InputError, match="No chapters found"):
            EpubFormat(settings).segment(path)

    def test_custom_chapter_extensions(self, make_epub, xhtml_page, settings):
        settings.segmentation.chapter_extensions = [".xml"]
        path = make_epub({"OEBPS/ch1.xml": xhtml_page("<p>Text</p>")})

        segments = EpubFormat(settings).segment(path)

        assert [s.identifier for s in segments] == ["OEBPS/ch1.xml"]


class TestEpubReassemble:
    """Tests for EpubFormat.reassemble."""

    def test_round_trip_keeps_structure(self, make_epub, xhtml_page, small_settings, tmp_path):
        chapters = {
            "OEBPS/ch1.xhtml": xhtml_page("<p>Hello <i>world</i>.</p>"),
            "OEBPS/ch2.xhtml": xhtml_page(LONG_BODY),
        }
        path = make_epub(chapters)
        fmt = EpubFormat(small_settings)
        segments = fmt.segment(path)
        out = tmp_path / "out.epub"

        report = fmt.reassemble(path, segments, segments, out)

        assert report.units_rewritten == 2
        for name, markup in chapters.items():
            assert extract_chapter_text(_read(out, name)) == extract_chapter_text(markup.encode())
        assert b"<em>several</em>" in _read(out, "OEBPS/ch2.xhtml")

    def test_translated_chapter(self, make_epub, xhtml_page, settings, tmp_path):
        path = make_epub({"OEBPS/ch1.xhtml": xhtml_page("<p>Hello <i>world</i>.</p>")})
        fmt = EpubFormat(settings)
        segments = fmt.segment(path)
        out = tmp_path / "out.epub"

        fmt.reassemble(path, segments, [segments[0].with_text("Bonjour monde.")], out)

        assert b"<p>Bonjour <i>monde.</i></p>" in _read(out, "OEBPS/ch1.xhtml")

    def test_other_entries_untouched(self, make_epub, xhtml_page, settings, tmp_path):
        path = make_epub(
            {
                "OEBPS/ch1.xhtml": xhtml_page("<p>One</p>"),
                "OEBPS/ch2.xhtml": xhtml_page("<p>Two</p>"),
            }
        )
        fmt = EpubFormat(settings)
        segments = fmt.segment(path)
        out = tmp_path / "out.epub"

        report = fmt.reassemble(path, segments, segments[:1], out)

        assert report.units_rewritten == 1
        assert report.units_untouched == 1
        assert _read(out, "OEBPS/ch2.xhtml") == _read(path, "OEBPS/ch2.xhtml")
        assert _read(out, "OEBPS/content.opf") == _read(path, "OEBPS/content.opf")
        with zipfile.ZipFile(out) as archive:
            first = archive.infolist()[0]
            names = archive.namelist()
        assert first.filename == "mimetype"
        assert first.compress_type == zipfile.ZIP_STORED
        with zipfile.ZipFile(path) as archive:
            assert names == archive.namelist()

    def test_missing_parts_keep_the_rest_of_the_chapter(
        self, make_epub, xhtml_page, small_settings, tmp_path
    ):
        path = make_epub({"OEBPS/ch2.xhtml": xhtml_page(LONG_BODY)})
        fmt = EpubFormat(small_settings)
        segments = fmt.segment(path)
        assert len(segments) >= 3
        translated = [segments[0].with_text("Premier"), segments[2].with_text("Ignoré")]
        out = tmp_path / "out.epub"

        fmt.reassemble(path, segments, translated, out)

        lines = extract_chapter_text(_read(out, "OEBPS/ch2.xhtml")).split("\n")
        assert lines[0] == "Premier several words in it."
        assert lines[1:] == [f"Paragraph {i} has several words in it." for i in range(1, 6)]
        assert "Ignoré" not in " ".join(lines)

    def test_without_markup_writes_minimal_chapter(self, make_epub, xhtml_page, settings, tmp_path):
        path = make_epub({"OEBPS/ch1.xhtml": xhtml_page("<p>Hello</p>")})
        out = tmp_path / "out.epub"
        translated = [Segment(text="Salut & co", identifier="OEBPS/ch1.xhtml", index=0)]

        EpubFormat(settings).reassemble(path, [], translated, out)

        assert b"<p>Salut &amp; co</p>" in _read(out, "OEBPS/ch1.xhtml")

    def test_unknown_identifier_rejected(self, make_epub, xhtml_page, settings, tmp_path):
        path = make_epub({"OEBPS/ch1.xhtml": xhtml_page("<p>Hello</p>")})
        fmt = EpubFormat(settings)
        segments = fmt.segment(path)
        extra = segments[0].with_identifier("OEBPS/other.xhtml")
        out = tmp_path / "out.epub"

        with pytest.raises(InputError):
            fmt.reassemble(path, segments, [extra], out)
        assert not out.exists()
