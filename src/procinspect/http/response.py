"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Builds the bytes the inspector writes back on the socket.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                      ← Status line           │
    │    Content-Type: application/json\r\n       ← Headers               │
    │    Content-Length: 27\r\n                                           │
    │    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n                          │
    │    Server: procinspect/1.0\r\n                                      │
    │    Connection: close\r\n                                            │
    │    \r\n                                     ← Empty line            │
    │    {"pids": ["1", "42"]}                    ← Body (bytes)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONTENT-LENGTH IS A BYTE COUNT
=============================================================================

Content-Length counts BYTES of the encoded body, not characters:

    "ü"             → 1 character
    "ü".encode()    → 2 bytes (b'\\xc3\\xbc')

Process names and /proc file contents are not guaranteed to be ASCII, so
the body is always encoded FIRST and the header is computed from the
encoded bytes in to_bytes(). Nothing else is allowed to set it.

=============================================================================
CONTENT TYPES
=============================================================================

Only two media types ever leave the server:

    application/json   listings, status maps, every error body
    text/plain         raw file contents

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder (or the helpers at the bottom of this module)
    instead of constructing this directly.

        Handler returns          to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 403 Forbidden"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> Optional[str]:
        """Get the Content-Type header, if set."""
        return self.headers.get("Content-Type")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "procinspect/1.0") -> bytes:
        """
        Serialize the response to bytes for sending over the socket.

        Content-Length is always recomputed from the final body, so a
        stale value set by a caller can never reach the wire.

        Args:
            server_name: Value for the Server header.

        Returns:
            Complete HTTP response ready for socket.sendall().
        """
        response_headers = dict(self.headers)
        response_headers["Content-Length"] = str(len(self.body))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)
        response_headers.setdefault("Connection", "close")

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .json({"error": "Not Found"})
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw response body (strings are UTF-8 encoded)."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """
        Set a plain text body.

        Used for raw /proc file contents, which are served verbatim.
        """
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = TEXT_CONTENT_TYPE
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        Set a JSON response body.

        Args:
            data: Any JSON-serializable data.
            pretty: Indent with two spaces (used for status maps).

        ensure_ascii=False keeps process names readable; the body is
        UTF-8 encoded afterwards so Content-Length stays a byte count.
        """
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    HTTP dates are always GMT and always English, whatever the locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok_json(data: Any, pretty: bool = False) -> HTTPResponse:
    """Create a 200 OK JSON response."""
    return ResponseBuilder().status(HTTPStatus.OK).json(data, pretty=pretty).build()


def ok_text(text: str) -> HTTPResponse:
    """Create a 200 OK text/plain response."""
    return ResponseBuilder().status(HTTPStatus.OK).text(text).build()


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """
    Create an error response with a JSON body.

    Every error the inspector produces goes through here, so all error
    bodies share one shape: {"error": "<message>"}.
    """
    return ResponseBuilder().status(status).json({"error": message}).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    """Create a 400 Bad Request response."""
    return error_response(HTTPStatus.BAD_REQUEST, message)


def forbidden(message: str = "Access denied.") -> HTTPResponse:
    """Create a 403 Forbidden response."""
    return error_response(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    """Create a 404 Not Found response."""
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(message: str = "Only GET is supported.") -> HTTPResponse:
    """
    Create a 405 Method Not Allowed response.

    Includes the Allow header (RFC 7231 requires it on 405).
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", "GET")
        .json({"error": message})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """Create a 500 Internal Server Error response."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def service_unavailable(message: str = "Server overloaded") -> HTTPResponse:
    """Create a 503 Service Unavailable response."""
    return error_response(HTTPStatus.SERVICE_UNAVAILABLE, message)
