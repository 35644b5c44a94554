"""
=============================================================================
HANDLERS
=============================================================================

    ConnectionHandler   One per connection; the receive → parse → resolve
                        → respond → close state machine. Submitted to the
                        thread pool as a task.

    StaticFileHandler   Shared; turns a ResolvedTarget into a file body,
                        a directory listing or the fixed 404.
"""

from .static import StaticFileHandler, format_size
from .connection import ConnectionHandler

__all__ = [
    "StaticFileHandler",
    "ConnectionHandler",
    "format_size",
]
