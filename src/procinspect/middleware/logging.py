"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per routed request, emitted on the "procinspect.access"
logger after the response has been produced:

    text:  127.0.0.1 - - [19/Oct/2026:12:00:00 +0000] "GET /proc/1/status?key=***" 200 412 0.84ms
    json:  {"request_id": "a1b2c3d4", "method": "GET", "path": "/proc/1/status", ...}

=============================================================================
THE ACCESS KEY NEVER REACHES THE LOG
=============================================================================

The query string is logged with the value of every key= token masked:

    key=debugger&x=1      → key=***&x=1
    key=wrong             → key=***
    xkey=abc              → xkey=abc      (not the access parameter)

Wrong keys are masked as well; a near-miss is often the real key with a typo.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass

from ..http.request import HTTPRequest, split_query
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler


logger = logging.getLogger("procinspect.access")


REDACTED = "***"
_KEY_PREFIX = "key="


def redact_query(query: str) -> str:
    """Mask the value of every key= token in a query string."""
    if not query:
        return query
    tokens = []
    for token in split_query(query):
        if token.startswith(_KEY_PREFIX):
            token = _KEY_PREFIX + REDACTED
        tokens.append(token)
    return "&".join(tokens)


@dataclass
class RequestLog:
    """Structured access-log entry for one request."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "client_ip": self.client_ip,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache-style access line."""
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with timing.

    Must be the first middleware in the pipeline so 403s from the access
    gate are logged too.

    Args:
        log_format: "text" (Apache-like) or "json".
        log_level: Level used for access lines.
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
    ):
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.monotonic()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.monotonic() - start_time) * 1000

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=redact_query(request.query),
            client_ip=request.client_ip,
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
