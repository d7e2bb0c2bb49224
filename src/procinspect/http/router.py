"""
=============================================================================
PATH SANITIZER / ROUTER
=============================================================================

Maps an (already authorized) request path onto one of five route kinds,
then dispatches to the handler registered for that kind.

=============================================================================
ROUTE GRAMMAR
=============================================================================

    ┌──────────────────────────────┬───────────────┬──────────────────────┐
    │ Path                         │ RouteKind     │ Response             │
    ├──────────────────────────────┼───────────────┼──────────────────────┤
    │ /                            │ PROCESS_LIST  │ {"processes": [...]} │
    │ /proc                        │ ROOT          │ {"pids": [...]}      │
    │ /proc/<pid>                  │ PID_DIRECTORY │ {"files": [...]}     │
    │ /proc/<pid>/<seg>/.../status │ PID_STATUS    │ status map (JSON)    │
    │ /proc/<pid>/<seg>/...        │ PID_FILE      │ file text            │
    │ /proc/<not digits>[/...]     │ -             │ 400 Bad Request      │
    │ anything else                │ -             │ 404 Not Found        │
    └──────────────────────────────┴───────────────┴──────────────────────┘

    <pid> must match ^[0-9]+$ (ASCII digits only, at least one).

=============================================================================
SANITIZATION WORKS ON COMPONENTS, NOT STRINGS
=============================================================================

Searching the path for ".." is both too strict ("a..b" is a legal file
name) and too weak (it says nothing about "." or "//etc"). Instead the
part after the pid is split on "/" and every component that is not a
plain name is DROPPED:

    /proc/1/../../etc/passwd     → segments ("etc", "passwd")
    /proc/1/./status             → segments ("status",)
    /proc/1//net///tcp           → segments ("net", "tcp")
    /proc/1/task/1/status        → segments ("task", "1", "status")

What survives can only name something BELOW /proc/<pid>. The filesystem
reader (handlers/procfs.py) then resolves symlinks and re-checks that
the final path is still inside the introspection root.

Nothing is percent-decoded: "%2e%2e" is a literal (harmless) file name.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional, Tuple
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, bad_request, not_found
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


PROC_PREFIX = "/proc"
STATUS_FILENAME = "status"
PID_PATTERN = re.compile(r"[0-9]+")

# Components that never name a child entry
_REJECTED_SEGMENTS = frozenset({"", ".", ".."})


class RouteKind(Enum):
    """What a request path resolves to."""
    PROCESS_LIST = "process_list"     # /
    ROOT = "root"                     # /proc
    PID_DIRECTORY = "pid_directory"   # /proc/<pid>
    PID_FILE = "pid_file"             # /proc/<pid>/<segments>
    PID_STATUS = "pid_status"         # /proc/<pid>/.../status


class RouteError(Exception):
    """A path that cannot be routed. Carries the HTTP status to answer with."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidIdentifier(RouteError):
    """The pid component is not all digits."""
    status_code = HTTPStatus.BAD_REQUEST


class RouteNotFound(RouteError):
    """The path matches no route."""
    status_code = HTTPStatus.NOT_FOUND


@dataclass(frozen=True)
class RouteTarget:
    """
    A classified, sanitized request path.

    Attributes:
        kind:     Which route matched.
        pid:      Digits-only process id (None for PROCESS_LIST / ROOT).
        segments: Sanitized components below /proc/<pid> (PID_FILE and
                  PID_STATUS only; empty otherwise).
    """

    kind: RouteKind
    pid: Optional[str] = None
    segments: Tuple[str, ...] = ()

    @property
    def filename(self) -> Optional[str]:
        """Last sanitized segment ("status", "cmdline", ...)."""
        return self.segments[-1] if self.segments else None

    @property
    def relative_path(self) -> PurePosixPath:
        """
        Path relative to the introspection root.

            ROOT           → .
            PID_DIRECTORY  → 1
            PID_FILE       → 1/net/tcp
        """
        if self.pid is None:
            return PurePosixPath(".")
        return PurePosixPath(self.pid, *self.segments)


def is_valid_pid(value: str) -> bool:
    """True iff value is one or more ASCII decimal digits."""
    return PID_PATTERN.fullmatch(value) is not None


def is_plain_segment(segment: str) -> bool:
    """True iff segment names a child entry (not "", ".", ".." or NUL-bearing)."""
    return segment not in _REJECTED_SEGMENTS and "\x00" not in segment


def sanitize_segments(rest: str) -> Tuple[str, ...]:
    """
    Split the part of a path after /proc/<pid>/ into plain components.

    Components that are empty, ".", ".." or contain NUL are dropped.
    The result can only name entries below the pid's directory.
    """
    return tuple(seg for seg in rest.split("/") if is_plain_segment(seg))


def resolve_route(path: str) -> RouteTarget:
    """
    Classify a request path.

    Args:
        path: Request path without query string.

    Returns:
        RouteTarget describing what to read.

    Raises:
        InvalidIdentifier: /proc/<pid>... where pid is not all digits.
        RouteNotFound:     Anything outside the route grammar.
    """
    if path == "/":
        return RouteTarget(RouteKind.PROCESS_LIST)

    if path == PROC_PREFIX:
        return RouteTarget(RouteKind.ROOT)

    if not path.startswith(PROC_PREFIX + "/"):
        raise RouteNotFound(f"No route matches {path}")

    remainder = path[len(PROC_PREFIX) + 1:]
    pid, sep, rest = remainder.partition("/")

    if not is_valid_pid(pid):
        raise InvalidIdentifier("Invalid PID")

    if not sep:
        return RouteTarget(RouteKind.PID_DIRECTORY, pid=pid)

    segments = sanitize_segments(rest)
    if not segments:
        raise RouteNotFound("No file specified")

    kind = RouteKind.PID_STATUS if segments[-1] == STATUS_FILENAME else RouteKind.PID_FILE
    return RouteTarget(kind, pid=pid, segments=segments)


# Handlers receive the request and its classified target
RouteHandler = Callable[[HTTPRequest, RouteTarget], HTTPResponse]


# Printed in the startup banner
ROUTE_PATTERNS: Dict[RouteKind, str] = {
    RouteKind.PROCESS_LIST: "/",
    RouteKind.ROOT: "/proc",
    RouteKind.PID_DIRECTORY: "/proc/<pid>",
    RouteKind.PID_STATUS: "/proc/<pid>/.../status",
    RouteKind.PID_FILE: "/proc/<pid>/<path...>",
}


class Router:
    """
    Dispatches requests to the handler registered for their RouteKind.

        router = Router()

        @router.route(RouteKind.ROOT)
        def list_pids(request, target):
            return ok_json({"pids": [...]})

        response = router.handle(request)

    Route errors are answered here (400 / 404); a kind with no
    registered handler is a 404.
    """

    def __init__(self):
        self._handlers: Dict[RouteKind, RouteHandler] = {}

    def add_route(self, kind: RouteKind, handler: RouteHandler) -> None:
        """Register (or replace) the handler for a route kind."""
        self._handlers[kind] = handler

    def route(self, kind: RouteKind) -> Callable[[RouteHandler], RouteHandler]:
        """Decorator form of add_route()."""
        def decorator(handler: RouteHandler) -> RouteHandler:
            self.add_route(kind, handler)
            return handler
        return decorator

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

            1. resolve_route(request.path)
               └── RouteError → 400 / 404
            2. Look up handler for target.kind
               └── none registered → 404
            3. handler(request, target)
        """
        try:
            target = resolve_route(request.path)
        except InvalidIdentifier as e:
            return bad_request(e.message)
        except RouteError as e:
            return not_found(e.message)

        handler = self._handlers.get(target.kind)
        if handler is None:
            return not_found(f"No route matches {request.path}")

        logger.debug(f"Routing {request.path} → {target.kind.value}")
        return handler(request, target)

    def routes(self) -> List[Tuple[RouteKind, str]]:
        """Registered route kinds with their path patterns."""
        return [(kind, ROUTE_PATTERNS[kind]) for kind in RouteKind if kind in self._handlers]

    def print_routes(self) -> None:
        """Print the registered routes (startup banner)."""
        print("\nRegistered Routes:")
        print("-" * 60)
        for kind, pattern in self.routes():
            print(f"  GET      {pattern:32} {kind.value}")
        print("-" * 60)
