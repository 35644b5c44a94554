"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the handful of operations the
connection handler needs: arm a receive timeout, receive once, write a
response, close.

=============================================================================
ONE RECEIVE, NO REASSEMBLY
=============================================================================

TCP is a byte stream. A request can in principle arrive in any number
of pieces:

    recv() → "GET /index.ht"
    recv() → "ml HTTP/1.1\r\n\r\n"

This server does exactly ONE recv() into a fixed 8 KB buffer and works
with whatever arrived. Real clients send a small GET request in a single
segment, so in practice the whole request line and headers are there.
If they are not, the parser finds no "\r\n\r\n" and the client gets a 500.

A connection holds a worker for at most one receive timeout plus the
DRAIN_TIMEOUT spent in close(), however slowly the client trickles bytes in.

=============================================================================
RECEIVE OUTCOMES
=============================================================================

    ┌──────────────────────┬───────────────────────────────────────────┐
    │ recv() result        │ What receive_once() does                  │
    ├──────────────────────┼───────────────────────────────────────────┤
    │ 1..buffer_size bytes │ returns them                              │
    │ b"" (peer closed)    │ raises ReceiveClosed                      │
    │ timeout / OSError    │ raises ReceiveFailure                     │
    └──────────────────────┴───────────────────────────────────────────┘

=============================================================================
CLOSING
=============================================================================

    Server                              Client
       │   response bytes ─────────────► │
       │   FIN ────────────────────────► │  shutdown(SHUT_WR)
       │ ◄──────────────── (leftovers)   │  drained and discarded
       │ ◄──────────────────────── FIN   │
    close()                              │

Closing a socket that still has unread request bytes in its kernel
buffer makes the OS send a RST, and a RST can destroy response data the
client has not read yet. Draining briefly after the half-close avoids
that. Every step is best-effort: failures are logged, never raised.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


# Total time close() waits for the peer to finish after our FIN
DRAIN_TIMEOUT = 0.5

# Unread request bytes close() will discard before giving up on the drain
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """
    Connection lifecycle states.

        ACCEPTED → TIMEOUT_ARMED → RECEIVED → PARSED → RESOLVED → RESPONDED → CLOSED

    Error branches jump from any intermediate state straight to RESPONDED
    (with an error response) or CLOSED (with no response at all).
    """
    ACCEPTED = "accepted"            # Fresh from accept()
    TIMEOUT_ARMED = "timeout_armed"  # Receive timeout set
    RECEIVED = "received"            # Request bytes in hand
    PARSED = "parsed"                # Request line understood
    RESOLVED = "resolved"            # Target classified on disk
    RESPONDED = "responded"          # Response written (or attempted)
    CLOSED = "closed"                # Socket released


class ConnectionFailure(Exception):
    """Base class for per-connection transport failures."""


class TimeoutSetupFailure(ConnectionFailure):
    """The receive timeout could not be set on the socket."""


class ReceiveFailure(ConnectionFailure):
    """recv() timed out or failed."""


class ReceiveClosed(ConnectionFailure):
    """The peer closed the connection without sending anything."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used to correlate log lines.
        state: Current lifecycle state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED
    created_at: float = field(default_factory=time.time)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return "-"

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def arm_timeout(self, seconds: float):
        """
        Set the receive timeout.

        Raises:
            TimeoutSetupFailure: If the socket rejects the timeout.
        """
        try:
            self.socket.settimeout(seconds)
        except (OSError, ValueError) as e:
            raise TimeoutSetupFailure(f"Cannot set receive timeout: {e}") from e
        self.state = ConnectionState.TIMEOUT_ARMED

    def receive_once(self, buffer_size: int) -> bytes:
        """
        Perform exactly one recv() call.

        Args:
            buffer_size: Maximum number of bytes to read.

        Returns:
            The received bytes (never empty).

        Raises:
            ReceiveClosed: The peer closed without sending data.
            ReceiveFailure: The read timed out or the socket errored.
        """
        try:
            data = self.socket.recv(buffer_size)
        except socket.timeout as e:
            raise ReceiveFailure("Receive timed out") from e
        except OSError as e:
            raise ReceiveFailure(f"Receive failed: {e}") from e

        if not data:
            raise ReceiveClosed("Peer closed the connection without sending data")

        self.state = ConnectionState.RECEIVED
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write response bytes to the client.

        Returns:
            True if the write succeeded, False if it failed (logged).
        """
        self.state = ConnectionState.RESPONDED
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Half-close, drain, then fully close the socket.

        Idempotent. Never raises.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError as e:
            # The peer may already be gone
            logger.debug(f"[{self.id}] Half-close failed: {e}")
        else:
            self._drain()

        try:
            self.socket.close()
        except OSError as e:
            logger.warning(f"[{self.id}] Close failed: {e}")

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self):
        # One deadline covers the whole drain, not each recv()
        deadline = time.monotonic() + DRAIN_TIMEOUT
        discarded = 0
        try:
            while discarded < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                discarded += len(chunk)
        except OSError:
            # Timeout or reset while draining; closing anyway
            pass

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows:

            with conn:
                data = conn.receive_once(8192)
                conn.send_response(response)
            # closed here on every path
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
