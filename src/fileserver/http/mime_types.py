"""
=============================================================================
MIME TYPE TABLE
=============================================================================

Maps file extensions to the Content-Type sent with a served file.

=============================================================================
HOW THE LOOKUP WORKS
=============================================================================

    /srv/site/Logo.PNG
              ────┬───
                  │
                  └──► suffix ".PNG" ──► lowercase ".png" ──► "image/png"

    /srv/site/README
                  │
                  └──► no suffix ──► not in table ──► "text/plain"

The table is built once at import time and exposed through a read-only
mapping proxy. Worker threads read it concurrently without a lock.

Unknown extensions, and names with no extension, are served as text/plain.

=============================================================================
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase and include the leading dot.
#
# =============================================================================

MIME_TYPES: Mapping[str, str] = MappingProxyType({
    # -------------------------------------------------------------------------
    # WEB DOCUMENTS
    # -------------------------------------------------------------------------
    ".htm": "text/html",
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".xml": "text/xml",
    ".json": "application/json",
    ".txt": "text/plain",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    ".gif": "image/gif",
    ".ico": "image/x-icon",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".svg": "image/svg+xml",

    # -------------------------------------------------------------------------
    # MEDIA / BINARY
    # -------------------------------------------------------------------------
    ".mp4": "video/mp4",
    ".pdf": "application/pdf",
    ".wasm": "application/wasm",
})

# Served when the extension is missing or not in the table
DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: Union[str, Path]) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: File path or name with extension

    Returns:
        The MIME type string, text/plain when the extension is unknown

    Examples:
        >>> get_mime_type("index.html")
        'text/html'

        >>> get_mime_type("/srv/img/PHOTO.JPG")
        'image/jpeg'

        >>> get_mime_type("Makefile")
        'text/plain'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()  # .PNG → .png
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
