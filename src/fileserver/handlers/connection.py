"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Owns one accepted connection from the moment a worker picks it up until
the socket is closed. One ConnectionHandler is one thread pool task.

=============================================================================
STATE MACHINE
=============================================================================

    ACCEPTED
       │ arm 5s receive timeout ─── fails ───────────────────────┐
       ▼                                                          │
    TIMEOUT_ARMED                                                 │
       │ one recv() ──────────── peer closed (0 bytes) ──────────┤
       │            └─────────── timeout / error ──────► 500 ──┐  │
       ▼                                                       │  │
    RECEIVED                                                   │  │
       │ parse ──── Malformed 500 / Unsupported 405 / TooLong 414 │
       ▼                                                       │  │
    PARSED                                                     │  │
       │ resolve against the root                              │  │
       ▼                                                       │  │
    RESOLVED                                                   │  │
       │ file / listing / 404                                  │  │
       ▼                                                       ▼  │
    RESPONDED ◄────────────────────────────────────────────────┘  │
       │ sendall(), access log                                    │
       ▼                                                          │
    CLOSED ◄──────────────────────────────────────────────────────┘
              half-close, drain, close (always, exactly once)

=============================================================================
FAILURE POLICY
=============================================================================

    ┌─────────────────────────────┬──────────┬──────────────────────────┐
    │ Failure                     │ Response │ Log                      │
    ├─────────────────────────────┼──────────┼──────────────────────────┤
    │ TimeoutSetupFailure         │ none     │ warning                  │
    │ ReceiveClosed               │ none     │ debug                    │
    │ ReceiveFailure (incl. 5s)   │ 500      │ warning                  │
    │ MalformedRequest            │ 500      │ info                     │
    │ UnsupportedMethod           │ 405      │ info                     │
    │ TargetTooLong               │ 414      │ info                     │
    │ file/dir unreadable         │ 404      │ debug (in the handler)   │
    │ EncodingError (listing)     │ 500      │ error                    │
    │ anything else               │ 500      │ exception + traceback    │
    │ write / close failure       │ n/a      │ warning                  │
    └─────────────────────────────┴──────────┴──────────────────────────┘

Nothing escapes handle(). A failing connection never reaches the worker
thread, the pool or another connection.

=============================================================================
"""

import logging
from typing import Optional

from ..access_log import RequestLog, log_request, now
from ..core.connection import (
    Connection, ConnectionState,
    TimeoutSetupFailure, ReceiveFailure, ReceiveClosed,
)
from ..http.request import HTTPParseError, RequestParser
from ..http.resolver import PathResolver
from ..http.response import HTTPResponse, error_response, internal_error
from ..http.status_codes import HTTPStatus
from ..text import EncodingError
from .static import StaticFileHandler


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Runs one connection through receive → parse → resolve → respond → close.

    The parser, resolver and static handler are stateless and shared by
    every connection; the handler itself is created per connection.

    Usage:
        handler = ConnectionHandler(conn, parser, resolver, static)
        pool.submit(handler)
    """

    def __init__(
        self,
        connection: Connection,
        parser: RequestParser,
        resolver: PathResolver,
        static: StaticFileHandler,
        buffer_size: int = 8192,
        recv_timeout: float = 5.0,
        log_format: str = "text",
    ):
        self.connection = connection
        self.parser = parser
        self.resolver = resolver
        self.static = static
        self.buffer_size = buffer_size
        self.recv_timeout = recv_timeout
        self.log_format = log_format

        # Filled in once the request line parses, for the access log
        self.method = "-"
        self.target = "-"

    @property
    def server_name(self) -> str:
        return self.static.server_name

    def __call__(self):
        self.handle()

    def handle(self):
        """
        Handle the connection to completion.

        Never raises. The connection is closed on every path.
        """
        conn = self.connection
        with conn:
            try:
                response = self._process()
                if response is not None:
                    self._respond(response)
            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error handling connection: {e}")
                if conn.state is not ConnectionState.RESPONDED:
                    self._respond(internal_error(self.server_name))

    def _process(self) -> Optional[HTTPResponse]:
        """
        Drive the connection up to the point where a response is known.

        Returns:
            The response to send, or None to close without responding.
        """
        conn = self.connection

        # ─────────────────────────────────────────────────────────────────
        # ACCEPTED → TIMEOUT_ARMED
        # ─────────────────────────────────────────────────────────────────
        try:
            conn.arm_timeout(self.recv_timeout)
        except TimeoutSetupFailure as e:
            logger.warning(f"[{conn.id}] {e}")
            return None

        # ─────────────────────────────────────────────────────────────────
        # TIMEOUT_ARMED → RECEIVED
        # ─────────────────────────────────────────────────────────────────
        try:
            data = conn.receive_once(self.buffer_size)
        except ReceiveClosed:
            logger.debug(f"[{conn.id}] Peer closed without sending a request")
            return None
        except ReceiveFailure as e:
            logger.warning(f"[{conn.id}] {e} ({conn.client_ip})")
            return internal_error(self.server_name)

        # ─────────────────────────────────────────────────────────────────
        # RECEIVED → PARSED
        # ─────────────────────────────────────────────────────────────────
        try:
            request = self.parser.parse(data)
        except HTTPParseError as e:
            logger.info(f"[{conn.id}] Rejected request from {conn.client_ip}: {e}")
            return error_response(HTTPStatus(e.status_code), self.server_name)

        self.method, self.target = request.method, request.target
        conn.state = ConnectionState.PARSED

        # ─────────────────────────────────────────────────────────────────
        # PARSED → RESOLVED
        # ─────────────────────────────────────────────────────────────────
        resolved = self.resolver.resolve(request.target)
        conn.state = ConnectionState.RESOLVED
        logger.debug(
            f"[{conn.id}] {request.target!r} -> {resolved.location!r} "
            f"({resolved.classification.value})"
        )

        # ─────────────────────────────────────────────────────────────────
        # RESOLVED → RESPONDED
        # ─────────────────────────────────────────────────────────────────
        try:
            return self.static.respond(resolved)
        except EncodingError as e:
            logger.error(f"[{conn.id}] Cannot render {resolved.location!r}: {e}")
            return internal_error(self.server_name)

    def _respond(self, response: HTTPResponse):
        """Write the response and emit the access log line."""
        conn = self.connection
        conn.send_response(response.to_bytes())

        log_request(
            RequestLog(
                connection_id=conn.id,
                client_ip=conn.client_ip,
                method=self.method,
                target=self.target,
                status_code=int(response.status),
                content_length=len(response.body),
                duration_ms=conn.age * 1000,
                timestamp=now(),
            ),
            self.log_format,
        )
