"""
=============================================================================
FILESYSTEM RESOLVER
=============================================================================

Maps a raw request target onto a location under the document root and
classifies what is there.

=============================================================================
RESOLUTION PIPELINE
=============================================================================

    raw target          "/docs/a%20b.txt?dl=1"
         │
         ▼  drop query/fragment
                        "/docs/a%20b.txt"
         │
         ▼  percent-decode (bytes)
                        b"/docs/a b.txt"
         │
         ▼  interpret as UTF-8
                        "/docs/a b.txt"
         │
         ▼  join onto root
                        "/srv/www/docs/a b.txt"
         │
         ▼  stat()
                        RegularFile | Directory | NotFound

=============================================================================
PERCENT-DECODING (RFC 3986)
=============================================================================

"%" followed by two hex digits becomes the byte they encode. Everything
else is copied through untouched, including a "%" that is not followed by
two hex digits:

    "/a%20b"   → b"/a b"
    "/%e2%82%ac" → b"/\\xe2\\x82\\xac"  (UTF-8 for "€")
    "/100%"    → b"/100%"       (lone "%", kept)
    "/%zz"     → b"/%zz"        (not hex, kept)

This is a lenient decoder, not a validator: a sloppy client still gets
the file it most plausibly meant.

=============================================================================
PATH TRAVERSAL
=============================================================================

A decoded target may contain ".." segments:

    GET /../../etc/passwd
    GET /%2e%2e/%2e%2e/etc/passwd

By default the joined path is normalized and must stay inside the root;
anything that escapes is classified NotFound, the same 404 a missing
file gets. Setting allow_outside_root turns the check off and leaves a
plain path join.

Symbolic links inside the root are followed wherever they point. The
check is lexical, so a link is as trusted as whoever created it.

=============================================================================
"""

import os
import stat
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import unquote_to_bytes

from ..text import EncodingError, from_utf8


logger = logging.getLogger(__name__)


class Classification(Enum):
    """What a resolved location turned out to be."""

    DIRECTORY = "directory"
    REGULAR_FILE = "regular_file"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    A request target mapped onto the filesystem.

    Attributes:
        decoded_path: The percent-decoded target as text ("/docs/a b.txt").
                      Empty when the target could not be decoded.
        location: Absolute filesystem path, or None when the target was
                  rejected before touching the filesystem.
        classification: Directory, RegularFile or NotFound.
    """

    decoded_path: str
    location: Optional[str]
    classification: Classification

    @property
    def is_directory(self) -> bool:
        return self.classification is Classification.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.classification is Classification.REGULAR_FILE


def strip_query(target: str) -> str:
    """Drop the ?query and #fragment parts of a request target."""
    for separator in ("?", "#"):
        index = target.find(separator)
        if index != -1:
            target = target[:index]
    return target


def percent_decode(target: bytes) -> bytes:
    """
    Decode %XX escapes, copying every other byte through unchanged.

    Examples:
        >>> percent_decode(b"/a%20b.txt")
        b'/a b.txt'
        >>> percent_decode(b"/50%")
        b'/50%'
    """
    return unquote_to_bytes(target)


def classify(location: str) -> Classification:
    """
    Classify a filesystem location.

    stat() follows symlinks, so a link to a file is a file and a broken
    link is NotFound. Any error (missing, permission denied, embedded NUL
    byte, name too long) is NotFound too.
    """
    try:
        st = os.stat(location)
    except (OSError, ValueError):
        return Classification.NOT_FOUND

    if stat.S_ISDIR(st.st_mode):
        return Classification.DIRECTORY
    if stat.S_ISREG(st.st_mode):
        return Classification.REGULAR_FILE
    return Classification.NOT_FOUND


class PathResolver:
    """
    Resolves request targets against a fixed document root.

    Usage:
        resolver = PathResolver("/srv/www")
        target = resolver.resolve("/index.html")
        target.location        # "/srv/www/index.html"
        target.classification  # Classification.REGULAR_FILE
    """

    def __init__(self, root_dir: str, allow_outside_root: bool = False):
        """
        Initialize the resolver.

        Args:
            root_dir: Directory that "/" maps to.
            allow_outside_root: Skip the containment check, allowing ".."
                                segments to reach outside root_dir.
        """
        self.root_dir = os.path.abspath(root_dir)
        self.allow_outside_root = allow_outside_root

    def resolve(self, target: str) -> ResolvedTarget:
        """
        Resolve a raw request target.

        Args:
            target: The request target as sent (percent-encoded, latin-1
                    text so each character is one original byte).

        Returns:
            ResolvedTarget with the decoded path, absolute location and
            classification.
        """
        # ─────────────────────────────────────────────────────────────────
        # DECODE
        # ─────────────────────────────────────────────────────────────────
        raw_path = strip_query(target).encode("latin-1")
        try:
            decoded_path = from_utf8(percent_decode(raw_path))
        except EncodingError:
            logger.debug(f"Target is not valid UTF-8 after decoding: {target!r}")
            return ResolvedTarget("", None, Classification.NOT_FOUND)

        # ─────────────────────────────────────────────────────────────────
        # JOIN ONTO ROOT
        # ─────────────────────────────────────────────────────────────────
        # "/" is the root itself. Leading slashes are stripped from anything
        # else, because os.path.join discards everything before an absolute
        # component.
        if decoded_path == "/":
            location = self.root_dir
        else:
            location = os.path.join(self.root_dir, decoded_path.lstrip("/"))

        # ─────────────────────────────────────────────────────────────────
        # CONTAINMENT CHECK
        # ─────────────────────────────────────────────────────────────────
        if not self.allow_outside_root and not self._is_inside_root(location):
            logger.warning(f"Path traversal attempt: {decoded_path!r}")
            return ResolvedTarget(decoded_path, None, Classification.NOT_FOUND)

        return ResolvedTarget(decoded_path, location, classify(location))

    def _is_inside_root(self, location: str) -> bool:
        """Check that the normalized location is root_dir or below it."""
        try:
            normalized = os.path.normpath(location)
            return os.path.commonpath([self.root_dir, normalized]) == self.root_dir
        except ValueError:
            # Embedded NUL bytes, or mixed drives on Windows
            return False
