"""
Middleware run around the router for every parsed request.

    LoggingMiddleware      access log (outermost)
    AccessKeyMiddleware    403 unless key=<access key> is present
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .auth import AccessKeyMiddleware
from .logging import LoggingMiddleware, RequestLog, redact_query

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "AccessKeyMiddleware",
    "LoggingMiddleware",
    "RequestLog",
    "redact_query",
]
