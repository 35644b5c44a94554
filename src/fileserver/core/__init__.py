"""
=============================================================================
CORE: TRANSPORT AND CONCURRENCY
=============================================================================

    ┌───────────────┐  Connection   ┌──────────────┐  task   ┌──────────┐
    │ SocketServer  │ ────────────► │  ThreadPool  │ ──────► │  Worker  │
    │ (accept loop) │   submit()    │ (FIFO queue) │  get()  │  thread  │
    └───────────────┘               └──────────────┘         └──────────┘

The accept loop never blocks on request handling, and a worker runs one
connection to completion before taking the next.
"""

from .socket_server import SocketServer, StartupError, BindFailure, ListenFailure
from .connection import (
    Connection, ConnectionState,
    ConnectionFailure, TimeoutSetupFailure, ReceiveFailure, ReceiveClosed,
)
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",         # Bind, listen, accept loop
    "StartupError",
    "BindFailure",
    "ListenFailure",
    "Connection",           # One client socket
    "ConnectionState",
    "ConnectionFailure",
    "TimeoutSetupFailure",
    "ReceiveFailure",
    "ReceiveClosed",
    "ThreadPool",           # Fixed worker pool
]
