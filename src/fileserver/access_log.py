"""
=============================================================================
ACCESS LOG
=============================================================================

One line per response written, on the "fileserver.access" logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default), Apache-like:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 10.0.0.7 - - [16/Oct/2026:10:55:36 +0000] "GET /index.html" 200 42 │
    │ 0.84ms [a1b2c3d4]                                                   │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (log_format="json"), for log aggregators:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "client_ip": "10.0.0.7",              │
    │  "method": "GET", "target": "/index.html", "status_code": 200,      │
    │  "content_length": 42, "duration_ms": 0.84, "timestamp": "..."}     │
    └─────────────────────────────────────────────────────────────────────┘

The connection id is the same short id that prefixes every diagnostic
line for the connection, so an access line and its warnings correlate.

Method and target are "-" when the request never parsed (a 500 for a
malformed request line, a receive timeout).

Route or silence it like any other logger:

    logging.getLogger("fileserver.access").setLevel(logging.WARNING)

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass, asdict


logger = logging.getLogger("fileserver.access")

TIMESTAMP_FORMAT = "%d/%b/%Y:%H:%M:%S %z"


@dataclass
class RequestLog:
    """
    Structured log entry for one response.

    Attributes:
        connection_id: Short id of the connection.
        client_ip: Peer address.
        method: Request method, or "-".
        target: Raw request target, or "-".
        status_code: Status sent.
        content_length: Body size in bytes.
        duration_ms: Time from accept to response written.
        timestamp: When the response was written.
    """

    connection_id: str
    client_ip: str
    method: str
    target: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        """Convert to a dictionary for JSON serialization."""
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Format as an Apache-style access line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms [{self.connection_id}]'
        )


def log_request(entry: RequestLog, log_format: str = "text"):
    """Emit an access log entry in the configured format."""
    if not logger.isEnabledFor(logging.INFO):
        return
    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())


def now() -> str:
    """Current local time in access log format."""
    return time.strftime(TIMESTAMP_FORMAT)
