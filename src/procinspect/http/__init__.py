"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

The (small) subset of HTTP/1.1 the inspector speaks: one request line in,
one response out, connection closed.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   b"GET /proc/1/status?key=debugger HTTP/1.1\r\n"            │
    │ Output:  HTTPRequest(method="GET", path="/proc/1/status",           │
    │                      query="key=debugger")                          │
    │ Errors:  400 (< 2 tokens), 405 (not GET)                            │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ACCESS GATE (auth.py)                                               │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Exact-token match of key=<secret> among "&"-split query tokens      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTER (router.py)                                                  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   "/proc/1/../../etc/passwd"                                 │
    │ Output:  RouteTarget(PID_FILE, pid="1", segments=("etc","passwd"))  │
    │ Errors:  400 (non-digit pid), 404 (unknown path)                    │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE BUILDER (response.py) + STATUS CODES (status_codes.py)     │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Status line, Content-Type, byte-accurate Content-Length, body       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
    tokenize_request_line,
    split_target,
    split_query,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok_json,             # 200 application/json
    ok_text,             # 200 text/plain
    error_response,      # any status, {"error": ...}
    bad_request,         # 400
    forbidden,           # 403
    not_found,           # 404
    method_not_allowed,  # 405
    internal_error,      # 500
    service_unavailable, # 503
)
from .auth import AccessGate, is_authorized
from .router import (
    Router,
    RouteKind,
    RouteTarget,
    RouteError,
    InvalidIdentifier,
    RouteNotFound,
    resolve_route,
    sanitize_segments,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "tokenize_request_line",
    "split_target",
    "split_query",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok_json",
    "ok_text",
    "error_response",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "service_unavailable",

    # Authorization
    "AccessGate",
    "is_authorized",

    # Routing
    "Router",
    "RouteKind",
    "RouteTarget",
    "RouteError",
    "InvalidIdentifier",
    "RouteNotFound",
    "resolve_route",
    "sanitize_segments",

    # Status codes
    "HTTPStatus",
]
