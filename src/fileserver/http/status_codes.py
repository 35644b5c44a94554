"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The file server speaks a small subset of HTTP. Every response
it can ever produce carries one of five status codes:

    ┌────────┬──────────────────────────┬──────────────────────────────────┐
    │ Code   │ Phrase                   │ When                             │
    ├────────┼──────────────────────────┼──────────────────────────────────┤
    │ 200    │ OK                       │ File or directory resolved       │
    │ 404    │ Not Found                │ Target absent or unreadable      │
    │ 405    │ Method Not Allowed       │ Anything other than GET          │
    │ 414    │ URI Too Long             │ Raw target over the length limit │
    │ 500    │ Internal Server Error    │ Malformed request, read failure, │
    │        │                          │ unexpected fault                 │
    └────────┴──────────────────────────┴──────────────────────────────────┘

The status line format is:

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── Reason phrase
              └───────── Status code

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the file server.

    This enum extends IntEnum, so status codes compare equal to integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                        # File or listing served
    NOT_FOUND = 404                 # Nothing servable at the target
    METHOD_NOT_ALLOWED = 405        # Only GET is supported
    URI_TOO_LONG = 414              # Raw target exceeds the limit
    INTERNAL_SERVER_ERROR = 500     # Malformed request or internal fault

    @property
    def phrase(self) -> str:
        """Get the reason phrase for the status line."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx (success) status code."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
