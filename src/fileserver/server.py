"""
=============================================================================
FILE SERVER
=============================================================================

The orchestrator: builds every component from one ServerConfig and wires
them together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     FILE SERVER ARCHITECTURE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   FileServer    │                          │
    │                        │  (Orchestrator) │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │ SocketServer │    │  ThreadPool  │    │ RequestParser    │    │
    │    │ (dispatcher) │    │  (workers)   │    │ PathResolver     │    │
    │    └──────┬───────┘    └──────┬───────┘    │ StaticFileHandler│    │
    │           │ Connection        │            │ (shared, no state)│   │
    │           └──────────►  ConnectionHandler ◄┴──────────────────┘    │
    │                           (one per task)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a TCP connection (accept thread)
    2. A ConnectionHandler wrapping it is queued in the ThreadPool
    3. A worker runs it: one recv(), parse, resolve, respond
    4. The connection is closed; the worker takes the next task

The accept thread never waits for step 3. Nothing is shared between
connections except the task queue and read-only tables.

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .handlers import ConnectionHandler, StaticFileHandler
from .http import RequestParser, PathResolver


logger = logging.getLogger(__name__)


class FileServer:
    """
    Static file server.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig(port=8080, root_dir="/srv/www")
        server = FileServer(config)
        server.run()   # Blocks until SIGINT/SIGTERM or shutdown()

    Embedding (tests do this):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_listening(timeout=5)
        host, port = server.address
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the file server.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: The configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(num_workers=self.config.effective_workers)

        # ─────────────────────────────────────────────────────────────────
        # REQUEST PIPELINE (stateless, shared by every worker)
        # ─────────────────────────────────────────────────────────────────
        self._parser = RequestParser(max_target_length=self.config.max_target_length)
        self._resolver = PathResolver(
            self.config.root_dir,
            allow_outside_root=self.config.allow_outside_root,
        )
        self._static = StaticFileHandler(server_name=self.config.server_name)

    @property
    def address(self) -> Tuple[str, int]:
        """Address the server is (or will be) listening on."""
        return self._socket_server.address

    @property
    def stats(self) -> dict:
        """Thread pool statistics."""
        return self._thread_pool.stats

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            BindFailure: The address could not be bound.
            ListenFailure: The socket could not listen.
        """
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Serving {self._resolver.root_dir} with "
            f"{self._thread_pool.num_workers} workers"
        )
        if self.config.allow_outside_root:
            logger.warning("Path containment disabled: '..' may leave the root")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections."""
        return self._socket_server.wait_until_listening(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = self.config.log_level_number

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("fileserver").setLevel(level)

    def _shutdown(self):
        """Let queued and running connections finish, then stop workers."""
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION DISPATCH
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accept thread).

        Args:
            conn: The accepted client connection.
        """
        handler = ConnectionHandler(
            conn,
            parser=self._parser,
            resolver=self._resolver,
            static=self._static,
            buffer_size=self.config.buffer_size,
            recv_timeout=self.config.recv_timeout,
            log_format=self.config.log_format,
        )
        try:
            self._thread_pool.submit(handler)
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Dropping connection: {e}")
            conn.close()


def serve(host: str, port: int, root: str, **options):
    """
    Serve root on host:port until interrupted.

    Args:
        host: IPv4 address to bind.
        port: TCP port.
        root: Directory to serve.
        **options: Any other ServerConfig field.
    """
    config = ServerConfig(host=host, port=port, root_dir=root, **options)
    FileServer(config).run()
