"""
Access-key middleware.

Runs the AccessGate before routing, so an unauthorized request gets 403
whatever its path: /proc/12ab?key=wrong is a 403, not a 400.
"""

import logging

from ..http.auth import AccessGate
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, forbidden
from .base import Middleware, NextHandler


logger = logging.getLogger(__name__)


class AccessKeyMiddleware(Middleware):
    """
    Short-circuits with 403 unless the query carries key=<access key>.

    Args:
        access_key: The shared secret (from ServerConfig).
    """

    def __init__(self, access_key: str):
        self.gate = AccessGate(access_key)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if not self.gate.is_authorized(request.query_params):
            logger.info(f"Access denied for {request.client_ip} ({request.path})")
            return forbidden()
        return next(request)
