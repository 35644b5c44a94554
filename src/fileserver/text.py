"""
=============================================================================
TEXT ENCODING BOUNDARY
=============================================================================

The server deals with two text representations:

    ┌───────────────────────┐                    ┌───────────────────────┐
    │  NATIVE (filesystem)  │   to_utf8()        │  UTF-8 (wire / HTML)  │
    │                       │ ─────────────────► │                       │
    │  str from os.fsdecode │                    │  bytes                │
    │  may hold surrogates  │ ◄───────────────── │                       │
    │  for undecodable names│   from_utf8()      │                       │
    └───────────────────────┘                    └───────────────────────┘

On POSIX, a file name is a byte string. Python decodes it with the
filesystem encoding and the "surrogateescape" error handler, so a name
that is not valid in that encoding still round-trips as a str, but it
contains lone surrogates that cannot be written as UTF-8.

Both conversions are strict. A name that cannot be represented raises
EncodingError instead of being silently mangled, truncated or replaced
with "?". Callers decide what a failed conversion means for the request.

=============================================================================
"""

import os
import sys
from typing import Union


class EncodingError(ValueError):
    """Raised when text cannot be converted without loss."""


def to_native_path(path: Union[str, bytes, "os.PathLike[str]"]) -> str:
    """
    Convert a user-supplied path into the native str representation.

    Args:
        path: Path as str, bytes, or path-like object (e.g. from argv).

    Returns:
        The path as a str suitable for os and pathlib calls.

    Raises:
        EncodingError: If the path cannot be represented in the
                       filesystem encoding.
    """
    native = os.fsdecode(path)
    try:
        # Round-trip through the filesystem encoding to make sure the
        # OS will receive exactly these characters.
        os.fsencode(native).decode(sys.getfilesystemencoding(), "strict")
    except UnicodeError as e:
        raise EncodingError(f"Path is not representable on this system: {native!r}") from e
    return native


def to_utf8(text: str) -> bytes:
    """
    Encode native text (a file name, a path, an HTML page) as UTF-8.

    Raises:
        EncodingError: If the text holds characters UTF-8 cannot encode,
                       such as the surrogates standing in for undecodable
                       bytes in a file name.
    """
    try:
        return text.encode("utf-8", "strict")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Text is not valid Unicode: {text!r}") from e


def from_utf8(data: bytes) -> str:
    """
    Decode UTF-8 bytes into native text.

    Raises:
        EncodingError: If the bytes are not valid UTF-8.
    """
    try:
        return data.decode("utf-8", "strict")
    except UnicodeDecodeError as e:
        raise EncodingError(f"Bytes are not valid UTF-8: {data!r}") from e
