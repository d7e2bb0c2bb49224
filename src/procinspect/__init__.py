"""
=============================================================================
PROCINSPECT - PROCESS STATE OVER HTTP
=============================================================================

A small raw-socket HTTP/1.1 service that exposes a snapshot of operating
system process state, guarded by a shared-secret query parameter:

    GET /?key=debugger                  process table (via ps)
    GET /proc?key=debugger              pids under /proc
    GET /proc/1?key=debugger            entries of /proc/1
    GET /proc/1/status?key=debugger     /proc/1/status as a JSON map
    GET /proc/1/cmdline?key=debugger    raw file text

=============================================================================
PACKAGE LAYOUT
=============================================================================

    procinspect/
    ├── config.py          ServerConfig (defaults, env, validation)
    ├── server.py          ProcInspectorServer: accept → pool → respond
    ├── core/              sockets, connections, worker pool
    ├── http/              request line, access gate, router, responses
    ├── middleware/        access log, access-key check
    └── handlers/          ps, /proc reads, route handlers

Only the request line is read. No headers, no bodies, no keep-alive,
no writes to the inspected system.

=============================================================================
"""

__version__ = "1.0.0"

from .server import ProcInspectorServer, create_app
from .config import ServerConfig

__all__ = ["ProcInspectorServer", "ServerConfig", "create_app", "__version__"]
