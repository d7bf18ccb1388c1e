"""Tests for the zip archive codec and markup helpers."""

import zipfile

import pytest

from docsplice.errors import InputError, OutputError
from docsplice.formats.archive import list_entries, open_archive, read_entry, rewrite_archive
from docsplice.formats.markup import find_body, local_name, parse_markup, serialize_markup


@pytest.fixture
def archive_path(tmp_path):
    path = tmp_path / "in.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        archive.writestr("a.txt", "alpha", compress_type=zipfile.ZIP_DEFLATED)
        archive.writestr("dir/b.txt", "beta", compress_type=zipfile.ZIP_DEFLATED)
    return path


class TestRewriteArchive:
    """Tests for rewrite_archive."""

    def test_order_and_metadata_are_kept(self, archive_path, tmp_path):
        out = tmp_path / "out.zip"

        rewritten = rewrite_archive(
            archive_path, out, lambda name, data: data.upper() if name == "a.txt" else None
        )

        assert rewritten == 1
        with zipfile.ZipFile(archive_path) as before, zipfile.ZipFile(out) as after:
            assert after.namelist() == before.namelist()
            for old, new in zip(before.infolist(), after.infolist()):
                assert new.compress_type == old.compress_type
                assert new.date_time == old.date_time
            assert after.read("a.txt") == b"ALPHA"
            assert after.read("dir/b.txt") == b"beta"

    def test_failing_transform_leaves_no_output(self, archive_path, tmp_path):
        out = tmp_path / "out.zip"

        def explode(name, data):
            raise InputError("bad entry")

        with pytest.raises(InputError):
            rewrite_archive(archive_path, out, explode)
        assert not out.exists()
        assert list(tmp_path.iterdir()) == [archive_path]

    def test_unwritable_destination(self, archive_path, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file", "utf-8")
        with pytest.raises(OutputError):
            rewrite_archive(archive_path, blocker / "out.zip", lambda n, d: None)

    def test_missing_source(self, tmp_path):
        with pytest.raises(InputError, match="File not found"):
            rewrite_archive(tmp_path / "missing.zip", tmp_path / "out.zip", lambda n, d: None)


class TestReading:
    """Tests for archive reading helpers."""

    def test_list_entries(self, archive_path):
        assert list_entries(archive_path) == ["mimetype", "a.txt", "dir/b.txt"]

    def test_missing_entry(self, archive_path):
        with open_archive(archive_path) as archive:
            with pytest.raises(InputError, match="Missing archive entry"):
                read_entry(archive, "nope.txt")


class TestMarkup:
    """Tests for markup parsing and serialization."""

    def test_malformed_markup_strict(self):
        with pytest.raises(InputError, match="Malformed markup"):
            parse_markup(b"<a><b></a>")

    def test_recover_repairs_markup(self):
        root = parse_markup(b"<html><body><p>open</body></html>", recover=True)
        assert local_name(find_body(root)) == "body"

    def test_declaration_follows_original(self):
        without = b"<root><child>x</child></root>"
        assert not serialize_markup(parse_markup(without), without).startswith(b"<?xml")

        with_decl = b'<?xml version="1.0" encoding="UTF-8"?>\n<root/>'
        assert serialize_markup(parse_markup(with_decl), with_decl).startswith(b"<?xml")

    def test_find_body_falls_back_to_root(self):
        root = parse_markup(b"<doc><p>x</p></doc>")
        assert find_body(root) is root
