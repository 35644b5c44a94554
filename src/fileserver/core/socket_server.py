"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The dispatcher: binds a listening socket, accepts connections, and hands
each one to a callback (the file server submits it to the thread pool).
It never waits for a connection to be handled before accepting the next.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP/IPv4 socket
    2. setsockopt  SO_REUSEADDR, TCP_NODELAY
    3. bind()      Associate the socket with IP:PORT   ── fails → BindFailure
    4. listen()    Start queueing connections          ── fails → ListenFailure
    5. accept()    One new socket per client, forever
    6. close()     Only when shutdown() is requested

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client    │         │ Client    │         │ Client    │
    │ Socket 1  │         │ Socket 2  │         │ Socket 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Lets a restarted server bind while old connections from the previous
    run still sit in TIME_WAIT. Must be set BEFORE bind().

TCP_NODELAY:
    Disables Nagle's algorithm. A response is written with one sendall()
    and should leave immediately.

=============================================================================
ACCEPT FAILURES
=============================================================================

    ┌─────────────────────────────┬───────────────────────────────────────┐
    │ Failure                     │ What happens                          │
    ├─────────────────────────────┼───────────────────────────────────────┤
    │ bind() / listen()           │ StartupError raised, server not up    │
    │ accept() timeout (1s)       │ Normal, re-check the running flag     │
    │ accept() OSError            │ Logged, loop continues                │
    │ accept() after shutdown()   │ Loop exits                            │
    └─────────────────────────────┴───────────────────────────────────────┘

A transient accept() error (EMFILE, ECONNABORTED, ...) must never stop
the server. The loop has no exit reachable in normal operation; only
shutdown() (tests, SIGINT, SIGTERM) ends it.

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd, kill) call shutdown().
Python only lets the main thread install signal handlers, so a server
started on any other thread (as the tests do) leaves them alone.

=============================================================================
"""

import socket
import signal
import time
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


# How often accept() wakes up to check for shutdown
ACCEPT_POLL_INTERVAL = 1.0

# Pause after a failed accept(), so a persistent error (e.g. EMFILE)
# does not spin the loop
ACCEPT_ERROR_BACKOFF = 0.1


class StartupError(Exception):
    """The server could not start listening."""


class BindFailure(StartupError):
    """bind() failed (address in use, permission denied, bad address)."""


class ListenFailure(StartupError):
    """listen() failed."""


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(callback)                                                   │
    │        ├──► _create_socket()   socket() + setsockopt()               │
    │        ├──► bind()             BindFailure on error                  │
    │        ├──► listen()           ListenFailure on error                │
    │        ├──► _setup_signals()   main thread only                      │
    │        └──► _accept_loop()     blocks here                           │
    │                 └──► accept() → Connection → callback(conn)          │
    │                                                                      │
    │    shutdown()                  stops the loop within ~1s             │
    │    _cleanup()                  restore signals, close socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            pool.submit(ConnectionHandler(conn, ...))

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration containing host, port and backlog.

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False
        self._listening_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        Get the server's address (IP, port).

        Once listening this is the address actually bound, so port 0 in
        the config reports the port the OS picked.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket and set its options."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() returns at least this often so shutdown() is noticed
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """Install SIGTERM/SIGINT handlers that call shutdown()."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each new Connection. It must
                                return quickly; the next accept() waits
                                for it.

        Raises:
            BindFailure: The address could not be bound.
            ListenFailure: The socket could not be put in listening mode.
        """
        self._socket = self._create_socket()
        host, port = self.config.host, self.config.port

        try:
            try:
                self._socket.bind((host, port))
            except OSError as e:
                logger.error(f"Failed to bind to {host}:{port}: {e}")
                raise BindFailure(f"Cannot bind to {host}:{port}: {e}") from e

            try:
                self._socket.listen(self.config.backlog)
            except OSError as e:
                logger.error(f"Failed to listen on {host}:{port}: {e}")
                raise ListenFailure(f"Cannot listen on {host}:{port}: {e}") from e
        except StartupError:
            self._cleanup()
            raise

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._shutdown_event.clear()

        self._setup_signals()

        logger.info(f"Server listening on {self.address[0]}:{self.address[1]}")
        self._listening_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        ┌─────────────────────────────────────────────────────────────────┐
        │                     Accept Loop Flow                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while self._running:                                           │
        │       ├──► accept()          blocks up to 1s                     │
        │       ├──► Connection(sock, address)                             │
        │       └──► connection_handler(conn)                              │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"Accept error: {e}")
                time.sleep(ACCEPT_ERROR_BACKOFF)
                continue

            conn = Connection(socket=client_socket, address=client_address)
            logger.debug(
                f"[{conn.id}] Accepted connection from "
                f"{client_address[0]}:{client_address[1]}"
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from a signal handler or another thread, and more
        than once.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError as e:
                logger.debug(f"Closing listening socket failed: {e}")
            self._socket = None

        self._running = False
        self._listening_event.clear()
        logger.info("Socket server stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the server accepts connections.

        Returns:
            True once listening, False on timeout.
        """
        return self._listening_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for shutdown() to be called.

        Returns:
            True if shutdown was requested, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
