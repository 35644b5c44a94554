"""
Unit tests for target decoding and filesystem resolution.
"""

import os
import sys
from pathlib import Path
from urllib.parse import quote

import pytest

from fileserver.http.resolver import (
    PathResolver,
    Classification,
    classify,
    percent_decode,
    strip_query,
)


class TestPercentDecode:
    """Tests for the lenient percent decoder."""

    @pytest.mark.parametrize("raw,expected", [
        (b"/a%20b.txt", b"/a b.txt"),
        (b"/%e2%82%ac", b"/\xe2\x82\xac"),
        (b"/%E2%82%AC", b"/\xe2\x82\xac"),
        (b"/plain", b"/plain"),
        (b"/100%", b"/100%"),
        (b"/%zz", b"/%zz"),
        (b"/%4", b"/%4"),
        (b"/%%41", b"/%A"),
    ])
    def test_decode(self, raw: bytes, expected: bytes):
        """Valid escapes decode, anything else is copied through."""
        assert percent_decode(raw) == expected

    def test_encoding_round_trip(self):
        """Encoding a segment then decoding it gives back the same bytes."""
        original = "dir/naïve file #1.txt".encode("utf-8")
        encoded = quote(original).encode("ascii")

        assert percent_decode(encoded) == original


class TestStripQuery:
    @pytest.mark.parametrize("target,expected", [
        ("/a.txt?x=1", "/a.txt"),
        ("/a.txt#top", "/a.txt"),
        ("/a.txt?x=1#top", "/a.txt"),
        ("/a.txt", "/a.txt"),
        ("/?", "/"),
    ])
    def test_strip(self, target: str, expected: str):
        assert strip_query(target) == expected


class TestPathResolver:
    """Tests for PathResolver."""

    def test_root(self, docroot: Path):
        """"/" resolves to the root itself."""
        target = PathResolver(str(docroot)).resolve("/")

        assert target.location == os.path.abspath(str(docroot))
        assert target.classification is Classification.DIRECTORY
        assert target.decoded_path == "/"

    def test_regular_file(self, docroot: Path):
        target = PathResolver(str(docroot)).resolve("/index.html")

        assert target.is_file
        assert target.location == os.path.join(os.path.abspath(str(docroot)), "index.html")

    def test_subdirectory(self, docroot: Path):
        assert PathResolver(str(docroot)).resolve("/sub").is_directory
        assert PathResolver(str(docroot)).resolve("/sub/").is_directory

    def test_missing(self, docroot: Path):
        target = PathResolver(str(docroot)).resolve("/nope.txt")

        assert target.classification is Classification.NOT_FOUND
        assert not target.is_file and not target.is_directory

    def test_percent_encoded_equals_literal(self, docroot: Path):
        """/a%20b.txt and /a b.txt resolve to the same file."""
        resolver = PathResolver(str(docroot))
        encoded = resolver.resolve("/a%20b.txt")
        literal = resolver.resolve("/a b.txt")

        assert encoded.is_file
        assert encoded.location == literal.location
        assert encoded.decoded_path == "/a b.txt"

    def test_query_is_ignored(self, docroot: Path):
        target = PathResolver(str(docroot)).resolve("/index.html?v=2")

        assert target.is_file
        assert target.decoded_path == "/index.html"

    def test_utf8_names(self, docroot: Path):
        (docroot / "café.txt").write_bytes(b"x")
        target = PathResolver(str(docroot)).resolve("/caf%C3%A9.txt")

        assert target.is_file
        assert target.decoded_path == "/café.txt"

    def test_invalid_utf8_is_not_found(self, docroot: Path):
        """Decoded bytes that are not UTF-8 never reach the filesystem."""
        target = PathResolver(str(docroot)).resolve("/%ff%fe.txt")

        assert target.classification is Classification.NOT_FOUND
        assert target.location is None

    def test_nul_byte_is_not_found(self, docroot: Path):
        target = PathResolver(str(docroot)).resolve("/index.html%00.png")

        assert target.classification is Classification.NOT_FOUND

    @pytest.mark.parametrize("attack", [
        "/../etc/passwd",
        "/%2e%2e/%2e%2e/etc/passwd",
        "/sub/../../outside.txt",
        "/..",
    ])
    def test_traversal_rejected(self, docroot: Path, attack: str):
        """Targets escaping the root are NotFound by default."""
        target = PathResolver(str(docroot / "sub")).resolve(attack)

        assert target.classification is Classification.NOT_FOUND
        assert target.location is None

    def test_dotdot_inside_root_allowed(self, docroot: Path):
        """".." that stays inside the root is fine."""
        target = PathResolver(str(docroot)).resolve("/sub/../index.html")

        assert target.is_file

    def test_traversal_allowed_when_configured(self, docroot: Path):
        """allow_outside_root keeps the plain path join."""
        (docroot / "secret.txt").write_bytes(b"s")
        resolver = PathResolver(str(docroot / "sub"), allow_outside_root=True)

        target = resolver.resolve("/../secret.txt")

        assert target.is_file
        assert os.path.normpath(target.location) == os.path.join(
            os.path.abspath(str(docroot)), "secret.txt"
        )

    def test_root_prefix_is_not_containment(self, tmp_path: Path):
        """/srv/www must not contain /srv/www-private."""
        (tmp_path / "www").mkdir()
        (tmp_path / "www-private").mkdir()
        (tmp_path / "www-private" / "key").write_bytes(b"k")

        target = PathResolver(str(tmp_path / "www")).resolve("/../www-private/key")

        assert target.classification is Classification.NOT_FOUND


class TestClassify:
    """Tests for classify()."""

    def test_kinds(self, docroot: Path):
        assert classify(str(docroot)) is Classification.DIRECTORY
        assert classify(str(docroot / "index.html")) is Classification.REGULAR_FILE
        assert classify(str(docroot / "missing")) is Classification.NOT_FOUND

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlinks(self, docroot: Path):
        """Links are followed; broken links are NotFound."""
        (docroot / "link.html").symlink_to(docroot / "index.html")
        (docroot / "broken").symlink_to(docroot / "does-not-exist")

        assert classify(str(docroot / "link.html")) is Classification.REGULAR_FILE
        assert classify(str(docroot / "broken")) is Classification.NOT_FOUND

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs mkfifo")
    def test_special_file_is_not_found(self, docroot: Path):
        """Neither a file nor a directory."""
        os.mkfifo(str(docroot / "pipe"))

        assert classify(str(docroot / "pipe")) is Classification.NOT_FOUND
