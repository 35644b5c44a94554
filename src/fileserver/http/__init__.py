"""
=============================================================================
HTTP PROTOCOL
=============================================================================

    raw bytes ──► RequestParser ──► ParsedRequest(method, target)
                                          │
                                          ▼
                  PathResolver ──► ResolvedTarget(decoded, location, kind)
                                          │
                                          ▼
                  (handlers.static) ──► HTTPResponse ──► to_bytes()

Only the request line is ever parsed. Header fields and bodies are
neither read nor validated.
"""

from .request import (
    RequestParser, ParsedRequest, parse_request,
    HTTPParseError, MalformedRequest, UnsupportedMethod, TargetTooLong,
)
from .resolver import PathResolver, ResolvedTarget, Classification
from .response import (
    HTTPResponse, ResponseBuilder,
    error_response, not_found, internal_error,
)
from .status_codes import HTTPStatus
from .mime_types import MIME_TYPES, get_mime_type

__all__ = [
    # Request parsing
    "RequestParser",
    "ParsedRequest",
    "parse_request",
    "HTTPParseError",
    "MalformedRequest",
    "UnsupportedMethod",
    "TargetTooLong",

    # Resolution
    "PathResolver",
    "ResolvedTarget",
    "Classification",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "not_found",
    "internal_error",

    # Status codes
    "HTTPStatus",

    # MIME types
    "MIME_TYPES",
    "get_mime_type",
]
