"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Every routed request passes through a fixed chain before the router:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   HTTPRequest                                                       │
    │       │                                                             │
    │       ▼                                                             │
    │   ┌──────────────┐   ┌────────────────┐   ┌──────────────────┐      │
    │   │   Logging    │──►│   Access key   │──►│  Router.handle   │      │
    │   │ (time + log) │   │ (403 or pass)  │   │ (route + read)   │      │
    │   └──────────────┘   └────────────────┘   └──────────────────┘      │
    │       ▲                      │                     │                │
    │       └──────────────────────┴─────────────────────┘                │
    │                         HTTPResponse                                │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

A middleware either answers on its own (short-circuit, e.g. 403) or calls
next(request) and returns what comes back. Because logging is outermost,
rejected requests are logged too.

The first middleware added is the outermost one.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# A handler takes a request and produces a response
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for pipeline stages.

        class Stamp(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Inspected", "1")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The parsed request line.
            next: The rest of the chain. Call it to continue, or return
                  a response without calling it to short-circuit.
        """

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered list of middleware wrapped around a final handler.

        pipeline = MiddlewarePipeline()
        pipeline.use(LoggingMiddleware(), AccessKeyMiddleware(key))
        handler = pipeline.wrap(router.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append a middleware (runs inside every earlier one)."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Append several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around handler.

        Wrapping happens innermost-first, so for [A, B] the result is
        A → B → handler.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
