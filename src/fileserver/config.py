"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── fileserver 8080 /srv/www --workers 8                      │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── FILESERVER_WORKERS=8 fileserver 8080 /srv/www             │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The CLI seeds its option defaults from from_env(). Port and root are
required positionals there, so FILESERVER_PORT and FILESERVER_ROOT only
apply to programs that build the config with from_env() themselves.

Validation is eager: FileServer calls validate() before binding, so a bad
value fails at startup instead of on the first request.

=============================================================================
"""

import os
import socket
import logging
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog

    PER-CONNECTION LIMITS
    - buffer_size, recv_timeout, max_target_length

    FILES
    - root_dir, allow_outside_root

    THREADING
    - workers

    LOGGING & IDENTITY
    - log_level, log_format, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """IPv4 address to bind to. "0.0.0.0" is every interface."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one (used by tests)."""

    backlog: int = socket.SOMAXCONN
    """listen() backlog; the system maximum by default."""

    # ─────────────────────────────────────────────────────────────────────
    # PER-CONNECTION LIMITS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 8192
    """
    Size of the single receive. Bytes beyond this, or arriving after the
    first recv(), are never read.
    """

    recv_timeout: float = 5.0
    """Seconds a connection may stay silent before it is answered with 500."""

    max_target_length: int = 1024
    """Longest raw request target accepted; longer gets 414."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """Directory that "/" maps to."""

    allow_outside_root: bool = False
    """
    Let ".." segments reach outside root_dir. Off by default: escaping
    targets get a 404.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    workers: Optional[int] = None
    """Number of worker threads. None means one per CPU."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING & IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    server_name: str = "fileserver/1.0"
    """Value of the Server header."""

    @property
    def effective_workers(self) -> int:
        """Worker count with the CPU-based default applied."""
        if self.workers is not None:
            return self.workers
        return os.cpu_count() or 1

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        FILESERVER_HOST        Bind address (default: 0.0.0.0)
        FILESERVER_PORT        Port (default: 8080)
        FILESERVER_ROOT        Document root (default: .)
        FILESERVER_WORKERS     Worker threads (default: CPU count)
        FILESERVER_TIMEOUT     Receive timeout in seconds (default: 5)
        FILESERVER_LOG_LEVEL   Logging level (default: INFO)
        FILESERVER_LOG_FORMAT  Access log format (default: text)

        =====================================================================

        Raises:
            ValueError: A numeric variable does not parse.
        """
        workers = os.getenv("FILESERVER_WORKERS")
        return cls(
            host=os.getenv("FILESERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("FILESERVER_PORT", "8080")),
            root_dir=os.getenv("FILESERVER_ROOT", "."),
            workers=int(workers) if workers else None,
            recv_timeout=float(os.getenv("FILESERVER_TIMEOUT", "5")),
            log_level=os.getenv("FILESERVER_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("FILESERVER_LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: Describing the first invalid value found.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"root_dir is not a directory: {self.root_dir!r}")

        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.recv_timeout <= 0:
            raise ValueError("recv_timeout must be > 0")

        if self.max_target_length < 1:
            raise ValueError("max_target_length must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log_level {self.log_level!r}. Use one of {', '.join(LOG_LEVELS)}."
            )

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log_format {self.log_format!r}. Use 'text' or 'json'."
            )

    @property
    def log_level_number(self) -> int:
        """log_level as a logging module constant."""
        return getattr(logging, self.log_level.upper())
