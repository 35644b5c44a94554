"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a resolved target into a response: the file's bytes, a generated
directory listing, or the fixed 404.

=============================================================================
DISPATCH
=============================================================================

    ResolvedTarget.classification
            │
            ├── REGULAR_FILE ──► open + read ──► 200, Content-Type from
            │                        │           the MIME table
            │                        └── open/read fails ──► 404
            │
            ├── DIRECTORY ─────► scandir ──────► 200, text/html listing
            │                        │
            │                        └── scandir fails ────► 404
            │
            └── NOT_FOUND ─────────────────────► 404

A file can vanish or change permissions between the stat() that
classified it and the open() here. That race is not an error: the
client simply gets the 404 it would have got a moment later.

=============================================================================
DIRECTORY LISTING
=============================================================================

    <html><head><meta charset="utf-8"><title>Index of /docs/</title></head>
    <body><h1>Index of /docs/</h1>
    <a href="/docs/images/">images/</a><br>
    <a href="/docs/a%20b.txt">a b.txt</a> 12 Bytes<br>
    <a href="/docs/report.pdf">report.pdf</a> 3 MB<br>
    </body></html>

- One anchor per child, sorted by name. No parent ("../") link.
- Subdirectories get a trailing slash and no size.
- hrefs are absolute and percent-encoded, so they work whether or not
  the directory URL itself ended in "/".
- Entries we are not allowed to stat are skipped, not fatal.
- A name that cannot be encoded as UTF-8 aborts the listing with an
  EncodingError (the connection handler answers 500).

=============================================================================
"""

import os
import html
import logging
from typing import List
from urllib.parse import quote

from ..http.mime_types import get_mime_type
from ..http.resolver import ResolvedTarget
from ..http.response import (
    DEFAULT_SERVER_NAME, HTTPResponse, ResponseBuilder, HTTPStatus,
    not_found,
)
from ..text import to_utf8


logger = logging.getLogger(__name__)


SIZE_UNITS = ("KB", "MB", "GB")


def format_size(size: int) -> str:
    """
    Format a byte count for humans.

    Below 1024 the exact count is shown. Above that the value is divided
    by 1024 until it fits the unit, truncating rather than rounding.

    Examples:
        >>> format_size(1023)
        '1023 Bytes'
        >>> format_size(1536)
        '1 KB'
        >>> format_size(5 * 1024 ** 3)
        '5 GB'
    """
    if size < 1024:
        return f"{size} Bytes"

    value = size
    for unit in SIZE_UNITS:
        value //= 1024
        if value < 1024 or unit == SIZE_UNITS[-1]:
            return f"{value} {unit}"


class StaticFileHandler:
    """
    Builds responses for resolved targets.

    Usage:
        static = StaticFileHandler(server_name="fileserver/1.0")
        response = static.respond(resolver.resolve("/index.html"))
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self.server_name = server_name

    def respond(self, target: ResolvedTarget) -> HTTPResponse:
        """
        Build the response for a resolved target.

        Raises:
            EncodingError: A directory entry name cannot be encoded.
        """
        if target.is_file:
            return self._serve_file(target.location)
        if target.is_directory:
            return self._serve_directory(target)
        return not_found(self.server_name)

    def _serve_file(self, path: str) -> HTTPResponse:
        """
        Read an entire file into a 200 response.

        Content-Length is the number of bytes actually read, not the size
        stat() reported earlier, so a file that changed in between is
        still framed correctly.
        """
        try:
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            logger.debug(f"Cannot read {path!r}: {e}")
            return not_found(self.server_name)

        return (ResponseBuilder(self.server_name)
            .status(HTTPStatus.OK)
            .content_type(get_mime_type(path))
            .body(content)
            .build())

    def _serve_directory(self, target: ResolvedTarget) -> HTTPResponse:
        """Generate an HTML listing of a directory's immediate children."""
        try:
            with os.scandir(target.location) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            logger.debug(f"Cannot list {target.location!r}: {e}")
            return not_found(self.server_name)

        base = target.decoded_path or "/"
        if not base.endswith("/"):
            base += "/"

        rows = self._listing_rows(entries, base)
        title = html.escape(base)
        page = (
            f'<html><head><meta charset="utf-8"><title>Index of {title}</title></head>'
            f"<body><h1>Index of {title}</h1>\n"
            + "".join(rows)
            + "</body></html>"
        )

        return (ResponseBuilder(self.server_name)
            .status(HTTPStatus.OK)
            .html(to_utf8(page))
            .build())

    def _listing_rows(self, entries: List[os.DirEntry], base: str) -> List[str]:
        rows = []
        for entry in entries:
            name = entry.name
            # Fails loudly on names holding undecodable bytes
            to_utf8(name)

            try:
                is_dir = entry.is_dir()
                size = None if is_dir else entry.stat().st_size
            except OSError as e:
                # Permission denied, broken symlink, removed meanwhile
                logger.debug(f"Skipping {name!r} in listing: {e}")
                continue

            href = html.escape(quote(base + name + ("/" if is_dir else "")), quote=True)
            label = html.escape(name)

            if is_dir:
                rows.append(f'<a href="{href}">{label}/</a><br>\n')
            else:
                rows.append(f'<a href="{href}">{label}</a> {format_size(size)}<br>\n')
        return rows
