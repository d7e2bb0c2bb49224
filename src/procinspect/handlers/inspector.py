"""
=============================================================================
INSPECTOR ROUTE HANDLERS
=============================================================================

Binds each RouteKind to a read strategy and a response encoding:

    ┌───────────────┬─────────────────────────────┬──────────────┬────────┐
    │ RouteKind     │ Read                        │ Encoding     │ Fail   │
    ├───────────────┼─────────────────────────────┼──────────────┼────────┤
    │ PROCESS_LIST  │ ProcessLister.list_processes│ JSON         │ 500    │
    │ ROOT          │ ProcFS.list_pids            │ JSON         │ 500    │
    │ PID_DIRECTORY │ ProcFS.list_files           │ JSON         │ 404    │
    │ PID_STATUS    │ ProcFS.read_status          │ JSON, pretty │ 404    │
    │ PID_FILE      │ ProcFS.read_text            │ text/plain   │ 404    │
    └───────────────┴─────────────────────────────┴──────────────┴────────┘

Handlers never raise for expected failures; every domain error becomes
a JSON error response here.

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, internal_error, not_found, ok_json, ok_text
from ..http.router import RouteKind, RouteTarget, Router
from .processes import ProcessListError, ProcessLister
from .procfs import IntrospectionUnavailable, ProcFS, ProcessNotFound


logger = logging.getLogger(__name__)


class InspectorHandlers:
    """
    Route handlers for the five inspector routes.

    Usage:
        handlers = InspectorHandlers(ProcFS("/proc"), ProcessLister())
        handlers.register(router)
    """

    def __init__(self, procfs: ProcFS, lister: ProcessLister):
        self.procfs = procfs
        self.lister = lister

    def register(self, router: Router) -> None:
        """Register every handler on the router."""
        router.add_route(RouteKind.PROCESS_LIST, self.process_list)
        router.add_route(RouteKind.ROOT, self.pid_list)
        router.add_route(RouteKind.PID_DIRECTORY, self.pid_directory)
        router.add_route(RouteKind.PID_STATUS, self.pid_status)
        router.add_route(RouteKind.PID_FILE, self.pid_file)

    def process_list(self, request: HTTPRequest, target: RouteTarget) -> HTTPResponse:
        try:
            processes = self.lister.list_processes()
        except ProcessListError as e:
            return internal_error(str(e))

        return ok_json({"processes": [p.to_dict() for p in processes]})

    def pid_list(self, request: HTTPRequest, target: RouteTarget) -> HTTPResponse:
        try:
            pids = self.procfs.list_pids()
        except IntrospectionUnavailable as e:
            return internal_error(str(e))

        return ok_json({"pids": pids})

    def pid_directory(self, request: HTTPRequest, target: RouteTarget) -> HTTPResponse:
        try:
            files = self.procfs.list_files(target.pid)
        except ProcessNotFound as e:
            return not_found(str(e))

        return ok_json({"files": files})

    def pid_status(self, request: HTTPRequest, target: RouteTarget) -> HTTPResponse:
        try:
            status = self.procfs.read_status(target.relative_path)
        except ProcessNotFound as e:
            return not_found(str(e))

        return ok_json(status, pretty=True)

    def pid_file(self, request: HTTPRequest, target: RouteTarget) -> HTTPResponse:
        try:
            text = self.procfs.read_text(target.relative_path)
        except ProcessNotFound as e:
            return not_found(str(e))

        return ok_text(text)
