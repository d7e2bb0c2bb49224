"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

Networking plumbing under the inspector:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SOCKET SERVER (socket_server.py)                                    │
    │ bind/listen, accept loop, SIGINT/SIGTERM handling                   │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ Connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ THREAD POOL (thread_pool.py)                                        │
    │ bounded queue + workers; a full queue means 503                     │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ CONNECTION (connection.py)                                          │
    │ read one request line, write one response, close                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .thread_pool import ThreadPool, Worker, WorkerState
from .connection import Connection, ConnectionState, RequestLineTooLong

__all__ = [
    "SocketServer",
    "ThreadPool",
    "Worker",
    "WorkerState",
    "Connection",
    "ConnectionState",
    "RequestLineTooLong",
]
