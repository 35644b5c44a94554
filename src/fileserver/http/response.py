"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Every response this server writes has the same shape:

    HTTP/1.1 200 OK\r\n                          ← Status line
    Server: fileserver/1.0\r\n                   ← Always
    Connection: close\r\n                        ← Always (no keep-alive)
    Content-Type: text/html\r\n                  ← From the MIME table
    Content-Length: 42\r\n                       ← Exact body length
    \r\n                                         ← End of headers
    <html>...                                    ← Body bytes

=============================================================================
RESPONSE = VALUE, NOT BUFFER
=============================================================================

HTTPResponse is a frozen dataclass. It is built once, serialized once
(the bytes are cached on first use), written once, then discarded.

Error responses go one step further. There are only four of them and
they never change, so error_response() memoizes them: the first 404
builds the object and its bytes, and every later 404 on every worker
reuses that same immutable object.

    error_response(404) ──► lru_cache ──► HTTPResponse (shared, read-only)
                                │
                                └── .to_bytes() cached on the instance

No Date header is sent. That keeps two identical requests for an
unchanged file byte-for-byte identical, and spares a clock read and
string format on every response.

=============================================================================
"""

from dataclasses import dataclass, field
from functools import cached_property, lru_cache
from types import MappingProxyType
from typing import Dict, Mapping, Union

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "fileserver/1.0"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass(frozen=True)
class HTTPResponse:
    """
    An HTTP response ready to be written to a socket.

    Use ResponseBuilder to construct one; it fills in the headers every
    response needs.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @cached_property
    def _payload(self) -> bytes:
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())

        # Header names and values are ASCII by construction
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
        return head + self.body

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

        The result is computed on first call and cached.
        """
        return self._payload


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

    Each method returns self, so calls chain:

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("image/png")
            .body(png_bytes)
            .build())

    build() always adds Server, Connection: close and an exact
    Content-Length, so no call site can forget them.
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        """
        Initialize the response builder.

        Args:
            server_name: Value of the Server header.
        """
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._server_name = server_name

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the response body.

        Args:
            body: Response body (a str is encoded as UTF-8)
        """
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        """Set an HTML body with Content-Type text/html; charset=utf-8."""
        self.body(html)
        return self.content_type(HTML_CONTENT_TYPE)

    def build(self) -> HTTPResponse:
        """
        Build the HTTPResponse.

        Header order is fixed: Server, Connection, Content-Type,
        Content-Length, then anything set with header().
        """
        headers = {
            "Server": self._server_name,
            "Connection": "close",
            "Content-Type": self._headers.get("Content-Type", "text/plain"),
            "Content-Length": str(len(self._body)),
        }
        for name, value in self._headers.items():
            headers.setdefault(name, value)

        return HTTPResponse(
            status=self._status,
            headers=MappingProxyType(headers),
            body=self._body,
        )


# =============================================================================
# FIXED ERROR RESPONSES
# =============================================================================

def error_response(status: HTTPStatus, server_name: str = DEFAULT_SERVER_NAME) -> HTTPResponse:
    """
    Get the fixed response for an error status.

    The same object is returned for every call with the same status and
    server name, so each error page is built and serialized once per
    process.

    Args:
        status: One of the error statuses (404, 405, 414, 500).
        server_name: Value of the Server header.

    Returns:
        Immutable HTTPResponse with a minimal HTML body.

    Example:
        >>> error_response(HTTPStatus.NOT_FOUND).body
        b'<html><body><h1>404 Not Found</h1></body></html>'
    """
    # Normalized so positional, keyword and int calls share one cache entry
    return _fixed_response(HTTPStatus(status), server_name)


@lru_cache(maxsize=None)
def _fixed_response(status: HTTPStatus, server_name: str) -> HTTPResponse:
    page = f"<html><body><h1>{status.value} {status.phrase}</h1></body></html>"
    return (ResponseBuilder(server_name)
        .status(status)
        .html(page)
        .build())


def not_found(server_name: str = DEFAULT_SERVER_NAME) -> HTTPResponse:
    """The fixed 404 Not Found response."""
    return error_response(HTTPStatus.NOT_FOUND, server_name)


def internal_error(server_name: str = DEFAULT_SERVER_NAME) -> HTTPResponse:
    """The fixed 500 Internal Server Error response."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, server_name)
