"""
Unit tests for path classification, sanitization and dispatch.
"""

import json
from pathlib import PurePosixPath

import pytest

from procinspect.http.request import parse_request
from procinspect.http.response import ok_json
from procinspect.http.router import (
    InvalidIdentifier,
    RouteKind,
    RouteNotFound,
    RouteTarget,
    Router,
    is_valid_pid,
    resolve_route,
    sanitize_segments,
)
from procinspect.http.status_codes import HTTPStatus


def make_request(path: str):
    """Helper to create a request for testing."""
    return parse_request(f"GET {path} HTTP/1.1\r\n".encode())


class TestResolveRoute:
    """Tests for the route grammar."""

    def test_process_list(self):
        assert resolve_route("/") == RouteTarget(RouteKind.PROCESS_LIST)

    def test_root(self):
        assert resolve_route("/proc") == RouteTarget(RouteKind.ROOT)

    def test_pid_directory(self):
        target = resolve_route("/proc/1")
        assert target.kind == RouteKind.PID_DIRECTORY
        assert target.pid == "1"
        assert target.relative_path == PurePosixPath("1")

    def test_pid_file(self):
        target = resolve_route("/proc/1/cmdline")
        assert target.kind == RouteKind.PID_FILE
        assert target.segments == ("cmdline",)
        assert target.filename == "cmdline"

    def test_pid_status(self):
        target = resolve_route("/proc/1/status")
        assert target.kind == RouteKind.PID_STATUS
        assert target.relative_path == PurePosixPath("1/status")

    def test_nested_status_is_status(self):
        """Test the last segment decides the status encoding."""
        target = resolve_route("/proc/1/task/1/status")
        assert target.kind == RouteKind.PID_STATUS
        assert target.segments == ("task", "1", "status")

    def test_status_prefix_is_plain_file(self):
        assert resolve_route("/proc/1/status2").kind == RouteKind.PID_FILE

    @pytest.mark.parametrize("path", ["/proc/12ab", "/proc/abc/status", "/proc/-1", "/proc/1.0", "/proc/"])
    def test_invalid_pid(self, path):
        """Test a non-digit pid is a 400, not a 404."""
        with pytest.raises(InvalidIdentifier) as exc_info:
            resolve_route(path)
        assert exc_info.value.status_code == HTTPStatus.BAD_REQUEST

    @pytest.mark.parametrize("path", ["/unknown", "/procs", "/proc2/1", "", "/status", "//proc"])
    def test_unknown_path(self, path):
        with pytest.raises(RouteNotFound):
            resolve_route(path)

    @pytest.mark.parametrize("path", ["/proc/1/", "/proc/1/..", "/proc/1/./.", "/proc/1//"])
    def test_no_file_named(self, path):
        """Test a rest made only of dropped components is a 404."""
        with pytest.raises(RouteNotFound):
            resolve_route(path)


class TestSanitizeSegments:
    """Tests for component-wise traversal stripping."""

    @pytest.mark.parametrize("rest,expected", [
        ("status", ("status",)),
        ("../../etc/passwd", ("etc", "passwd")),
        ("./status", ("status",)),
        ("net///tcp", ("net", "tcp")),
        ("a..b", ("a..b",)),
        ("...", ("...",)),
        ("%2e%2e/x", ("%2e%2e", "x")),
        ("bad\x00name/ok", ("ok",)),
    ])
    def test_sanitize(self, rest, expected):
        assert sanitize_segments(rest) == expected

    def test_traversal_stays_below_pid(self):
        """Test no surviving component can climb out of /proc/<pid>."""
        target = resolve_route("/proc/1/../../../etc/passwd")
        assert target.pid == "1"
        assert ".." not in target.relative_path.parts
        assert target.relative_path == PurePosixPath("1/etc/passwd")


class TestIsValidPid:

    @pytest.mark.parametrize("value", ["1", "0", "42", "0012", "99999999999999999999"])
    def test_valid(self, value):
        assert is_valid_pid(value)

    @pytest.mark.parametrize("value", ["", "12ab", " 1", "+1", "١٢"])
    def test_invalid(self, value):
        """Test only ASCII digits count (no Unicode digits)."""
        assert not is_valid_pid(value)


class TestRouter:
    """Tests for Router dispatch."""

    def setup_method(self):
        self.router = Router()
        self.seen = []

        @self.router.route(RouteKind.ROOT)
        def root(request, target):
            self.seen.append(target)
            return ok_json({"pids": []})

    def test_dispatch(self):
        response = self.router.handle(make_request("/proc?key=x"))
        assert response.status == HTTPStatus.OK
        assert self.seen == [RouteTarget(RouteKind.ROOT)]

    def test_invalid_pid_400(self):
        response = self.router.handle(make_request("/proc/12ab"))
        assert response.status == HTTPStatus.BAD_REQUEST
        assert json.loads(response.body) == {"error": "Invalid PID"}

    def test_unknown_404(self):
        response = self.router.handle(make_request("/nope"))
        assert response.status == HTTPStatus.NOT_FOUND

    def test_unregistered_kind_404(self):
        response = self.router.handle(make_request("/proc/1"))
        assert response.status == HTTPStatus.NOT_FOUND
        assert self.seen == []

    def test_routes_listing(self):
        assert self.router.routes() == [(RouteKind.ROOT, "/proc")]
