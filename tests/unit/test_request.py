"""
Unit tests for request line parsing.
"""

import pytest

from fileserver.http.request import (
    RequestParser,
    ParsedRequest,
    HTTPParseError,
    MalformedRequest,
    UnsupportedMethod,
    TargetTooLong,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self):
        """Test parsing a simple GET request."""
        request = parse_request(b"GET /index.html HTTP/1.1\r\nHost: test\r\n\r\n")

        assert request == ParsedRequest(method="GET", target="/index.html")

    def test_target_is_kept_encoded(self):
        """The target comes back exactly as sent, escapes and query included."""
        request = parse_request(b"GET /a%20b.txt?x=1 HTTP/1.1\r\n\r\n")

        assert request.target == "/a%20b.txt?x=1"
        assert request.raw_target == b"/a%20b.txt?x=1"

    def test_headers_are_ignored(self):
        """Garbage headers and a trailing body do not matter."""
        raw = b"GET / HTTP/1.1\r\nthis is not a header\r\n\r\nbody bytes"
        assert parse_request(raw).target == "/"

    def test_trailing_buffer_space_is_ignored(self):
        """Bytes after the terminator (unused buffer space) are fine."""
        raw = b"GET /x HTTP/1.0\r\n\r\n" + b"\x00" * 100
        assert parse_request(raw).target == "/x"

    @pytest.mark.parametrize("method", ["get", "Get", "gEt"])
    def test_method_is_case_insensitive(self, method: str):
        """GET matches in any case; the token is kept as sent."""
        request = parse_request(f"{method} / HTTP/1.1\r\n\r\n".encode())

        assert request.method == method

    @pytest.mark.parametrize("method", ["POST", "post", "DELETE", "PUT", "HEAD", "OPTIONS"])
    def test_other_methods_rejected(self, method: str):
        """Anything but GET is a 405."""
        with pytest.raises(UnsupportedMethod) as exc_info:
            parse_request(f"{method} / HTTP/1.1\r\n\r\n".encode())

        assert exc_info.value.status_code == 405

    def test_method_checked_before_target(self):
        """A non-GET request line without a target is still a 405."""
        with pytest.raises(UnsupportedMethod):
            parse_request(b"DELETE /\r\n\r\n")

    def test_missing_terminator(self):
        """No CRLFCRLF anywhere is malformed."""
        with pytest.raises(MalformedRequest) as exc_info:
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

        assert exc_info.value.status_code == 500

    def test_no_space_after_method(self):
        """Test handling of a request line that is one token."""
        with pytest.raises(MalformedRequest):
            parse_request(b"GET\r\nHost: test\r\n\r\n")

    def test_no_space_after_target(self):
        """The target must be followed by a space."""
        with pytest.raises(MalformedRequest):
            parse_request(b"GET /index.html\r\n\r\n")

    def test_target_at_limit_accepted(self):
        """Exactly 1024 bytes is still fine."""
        target = "/" + "a" * 1023
        request = parse_request(f"GET {target} HTTP/1.1\r\n\r\n".encode())

        assert len(request.target) == 1024

    def test_target_over_limit_rejected(self):
        """1025 bytes is a 414."""
        target = "a" * 1025
        with pytest.raises(TargetTooLong) as exc_info:
            parse_request(f"GET {target} HTTP/1.1\r\n\r\n".encode())

        assert exc_info.value.status_code == 414

    def test_limit_applies_before_decoding(self):
        """Escapes count as three bytes each."""
        parser = RequestParser(max_target_length=10)
        with pytest.raises(TargetTooLong):
            parser.parse(b"GET /%20%20%20%20 HTTP/1.1\r\n\r\n")

    def test_custom_limit(self):
        """Test a parser configured with a smaller limit."""
        parser = RequestParser(max_target_length=5)

        assert parser.parse(b"GET /abcd HTTP/1.1\r\n\r\n").target == "/abcd"
        with pytest.raises(TargetTooLong):
            parser.parse(b"GET /abcde HTTP/1.1\r\n\r\n")

    def test_non_ascii_target_bytes_survive(self):
        """Raw bytes in the target round-trip through raw_target."""
        request = parse_request(b"GET /caf\xc3\xa9 HTTP/1.1\r\n\r\n")

        assert request.raw_target == b"/caf\xc3\xa9"

    def test_all_errors_share_a_base(self):
        """Callers can catch every parse failure at once."""
        for exc in (MalformedRequest, UnsupportedMethod, TargetTooLong):
            assert issubclass(exc, HTTPParseError)

    def test_status_code_override(self):
        """An explicit status code wins over the class default."""
        assert HTTPParseError("boom", status_code=414).status_code == 414
        assert HTTPParseError("boom").status_code == 500
