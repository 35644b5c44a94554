"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the bytes of a single receive call into a ParsedRequest, or fails
with an exception that says exactly which fixed error response to send.

=============================================================================
WHAT WE ACTUALLY LOOK AT
=============================================================================

A file server that only answers GET needs very little of the request:

    GET /docs/a%20b.txt HTTP/1.1\r\n     ◄── request line: the only line parsed
    Host: localhost:8080\r\n             ◄── ignored
    User-Agent: curl/8.0\r\n             ◄── ignored
    \r\n                                 ◄── terminator: must be present
    (body)                               ◄── never read

The parser checks, in order:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. "\r\n\r\n" present?            no  → MalformedRequest   (500)   │
    │  2. space in the first line?       no  → MalformedRequest   (500)   │
    │  3. method == GET (any case)?      no  → UnsupportedMethod  (405)   │
    │  4. second space after target?     no  → MalformedRequest   (500)   │
    │  5. len(target) <= 1024 bytes?     no  → TargetTooLong      (414)   │
    └─────────────────────────────────────────────────────────────────────┘

The order matters: "POST" with a 5000-byte target is a 405, not a 414,
because the method is checked before the target is even located.

=============================================================================
WHY ONE RECEIVE IS ENOUGH
=============================================================================

The connection handler performs exactly one recv() into an 8 KB buffer.
A request whose headers do not fit, or that arrives split across TCP
segments after that first read, simply has no terminator in the buffer
and is reported as malformed. Nothing is reassembled.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional


# The raw target is kept as text decoded with latin-1, which maps every
# byte to exactly one code point, so len(target) is the on-wire byte length
# and target.encode("latin-1") gives back the original bytes.
TARGET_ENCODING = "latin-1"

HEADER_TERMINATOR = b"\r\n\r\n"
LINE_TERMINATOR = b"\r\n"
SUPPORTED_METHOD = "GET"
DEFAULT_MAX_TARGET_LENGTH = 1024


class HTTPParseError(Exception):
    """
    Raised when a request cannot be served.

    Carries the HTTP status code of the fixed response to send back.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class MalformedRequest(HTTPParseError):
    """Missing header terminator, or a request line without its two spaces."""

    status_code = 500


class UnsupportedMethod(HTTPParseError):
    """Any method other than GET."""

    status_code = 405


class TargetTooLong(HTTPParseError):
    """The raw (still percent-encoded) target exceeds the length limit."""

    status_code = 414


@dataclass(frozen=True)
class ParsedRequest:
    """
    The parts of a request line the server acts on.

    Attributes:
        method: Method token exactly as sent (e.g. "GET" or "get").
        target: Request target exactly as sent, still percent-encoded,
                query string included.
    """

    method: str
    target: str

    @property
    def raw_target(self) -> bytes:
        """The target as the original bytes from the wire."""
        return self.target.encode(TARGET_ENCODING)


class RequestParser:
    """
    Parses the request line out of a raw receive buffer.

    The parser is stateless, so one instance is shared by every worker.

    Usage:
        parser = RequestParser(max_target_length=1024)
        request = parser.parse(b"GET /index.html HTTP/1.1\\r\\n\\r\\n")
        request.target  # "/index.html"
    """

    def __init__(self, max_target_length: int = DEFAULT_MAX_TARGET_LENGTH):
        """
        Initialize the request parser.

        Args:
            max_target_length: Longest raw target accepted, in bytes.
                               Longer targets fail with TargetTooLong.
        """
        self.max_target_length = max_target_length

    def parse(self, data: bytes) -> ParsedRequest:
        """
        Parse raw request bytes.

        Args:
            data: Bytes from one receive call. Trailing garbage after the
                  header terminator is allowed and ignored.

        Returns:
            The parsed request line.

        Raises:
            MalformedRequest: No terminator, or the request line is missing
                              one of its two spaces.
            UnsupportedMethod: The method is not GET (case-insensitive).
            TargetTooLong: The raw target is longer than the limit.
        """
        # ─────────────────────────────────────────────────────────────────
        # STEP 1: The request must be complete within the buffer
        # ─────────────────────────────────────────────────────────────────
        if HEADER_TERMINATOR not in data:
            raise MalformedRequest("Header terminator not found")

        # ─────────────────────────────────────────────────────────────────
        # STEP 2: Isolate the request line
        # ─────────────────────────────────────────────────────────────────
        # The terminator guarantees at least one CRLF exists.
        request_line = data[:data.index(LINE_TERMINATOR)]

        # ─────────────────────────────────────────────────────────────────
        # STEP 3: Method = everything before the first space
        # ─────────────────────────────────────────────────────────────────
        first_space = request_line.find(b" ")
        if first_space == -1:
            raise MalformedRequest("Request line has no space after the method")

        method = request_line[:first_space].decode(TARGET_ENCODING)
        if method.upper() != SUPPORTED_METHOD:
            raise UnsupportedMethod(f"Method not allowed: {method!r}")

        # ─────────────────────────────────────────────────────────────────
        # STEP 4: Target = everything up to the next space
        # ─────────────────────────────────────────────────────────────────
        target_start = first_space + 1
        second_space = request_line.find(b" ", target_start)
        if second_space == -1:
            raise MalformedRequest("Request line has no space after the target")

        target = request_line[target_start:second_space]

        # ─────────────────────────────────────────────────────────────────
        # STEP 5: Length limit applies to the raw, undecoded target
        # ─────────────────────────────────────────────────────────────────
        if len(target) > self.max_target_length:
            raise TargetTooLong(
                f"Target is {len(target)} bytes, limit is {self.max_target_length}"
            )

        return ParsedRequest(method=method, target=target.decode(TARGET_ENCODING))


def parse_request(data: bytes) -> ParsedRequest:
    """Parse with the default target length limit."""
    return RequestParser().parse(data)
