"""
Unit tests for the full Gate → Router → handler flow, without sockets.
"""

import json

import pytest

from procinspect import ProcInspectorServer
from procinspect.http.status_codes import HTTPStatus

from conftest import fake_ps_command


def request(app, line: str):
    return app.handle_request_line(line.encode() + b"\r\n", ("127.0.0.1", 40000))


def body_json(response):
    return json.loads(response.body.decode("utf-8"))


class TestProcessList:

    def test_process_list(self, app):
        response = request(app, "GET /?key=debugger HTTP/1.1")

        assert response.status == HTTPStatus.OK
        assert response.content_type == "application/json"
        assert body_json(response) == {
            "processes": [{"pid": 1, "name": "init", "cpu": 0.0, "mem_kb": 1200}]
        }

    def test_facility_failure_is_500(self, config):
        config.ps_command = ("/nonexistent/definitely-not-ps",)
        app = ProcInspectorServer(config)

        response = request(app, "GET /?key=debugger HTTP/1.1")

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert "error" in body_json(response)

    def test_empty_table(self, config):
        config.ps_command = fake_ps_command("PID COMMAND %CPU RSS\n")
        app = ProcInspectorServer(config)

        assert body_json(request(app, "GET /?key=debugger")) == {"processes": []}


class TestProcRoutes:

    def test_pid_list(self, app):
        response = request(app, "GET /proc?key=debugger HTTP/1.1")
        assert response.status == HTTPStatus.OK
        assert body_json(response) == {"pids": ["1", "42"]}

    def test_pid_list_missing_root_is_500(self, config, tmp_path):
        config.proc_root = str(tmp_path / "missing")
        app = ProcInspectorServer(config)

        response = request(app, "GET /proc?key=debugger")
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_pid_directory(self, app):
        response = request(app, "GET /proc/1?key=debugger HTTP/1.1")
        assert body_json(response) == {"files": ["cmdline", "net", "status", "task"]}

    def test_missing_pid_directory(self, app):
        response = request(app, "GET /proc/999999?key=debugger HTTP/1.1")
        assert response.status == HTTPStatus.NOT_FOUND
        assert body_json(response) == {"error": "PID directory not found"}

    def test_status(self, app):
        response = request(app, "GET /proc/1/status?key=debugger HTTP/1.1")

        assert response.status == HTTPStatus.OK
        assert response.content_type == "application/json"
        assert body_json(response) == {"Name": "init", "Pid": "1"}
        assert response.body.startswith(b"{\n  ")

    def test_nested_status(self, app):
        response = request(app, "GET /proc/1/task/1/status?key=debugger")
        assert body_json(response) == {"Name": "init", "State": "S (sleeping)"}

    def test_missing_status_is_404(self, app):
        response = request(app, "GET /proc/999999/status?key=debugger")
        assert response.status == HTTPStatus.NOT_FOUND

    def test_plain_file(self, app):
        response = request(app, "GET /proc/1/net/tcp?key=debugger HTTP/1.1")

        assert response.status == HTTPStatus.OK
        assert response.content_type == "text/plain"
        assert response.body == b"  sl  local_address rem_address\n"

    def test_missing_file_is_404(self, app):
        response = request(app, "GET /proc/1/nope?key=debugger")
        assert response.status == HTTPStatus.NOT_FOUND
        assert body_json(response) == {"error": "File not found or unreadable"}

    def test_traversal_stays_in_pid_dir(self, app, fake_proc):
        """Test ../ is dropped, so the request names /proc/1/uptime, which does not exist."""
        response = request(app, "GET /proc/1/../uptime?key=debugger")
        assert response.status == HTTPStatus.NOT_FOUND


class TestRejections:
    """Tests for the ordering of early rejections."""

    def test_wrong_key_403(self, app):
        response = request(app, "GET /proc?key=wrong HTTP/1.1")
        assert response.status == HTTPStatus.FORBIDDEN
        assert body_json(response) == {"error": "Access denied."}

    def test_missing_key_403(self, app):
        assert request(app, "GET /proc HTTP/1.1").status == HTTPStatus.FORBIDDEN

    def test_gate_before_router(self, app):
        """Test an invalid pid with a wrong key is 403, not 400."""
        assert request(app, "GET /proc/12ab?key=wrong").status == HTTPStatus.FORBIDDEN

    def test_method_before_gate(self, app):
        """Test POST is 405 whatever the key."""
        assert request(app, "POST /?key=debugger HTTP/1.1").status == HTTPStatus.METHOD_NOT_ALLOWED
        assert request(app, "POST /?key=wrong HTTP/1.1").status == HTTPStatus.METHOD_NOT_ALLOWED

    def test_malformed_400(self, app):
        response = request(app, "GET")
        assert response.status == HTTPStatus.BAD_REQUEST
        assert body_json(response) == {"error": "Invalid request line"}

    def test_invalid_pid_400(self, app):
        assert request(app, "GET /proc/12ab?key=debugger").status == HTTPStatus.BAD_REQUEST

    @pytest.mark.parametrize("path", ["/unknown", "/proc/1/", "/favicon.ico"])
    def test_unknown_404(self, app, path):
        assert request(app, f"GET {path}?key=debugger").status == HTTPStatus.NOT_FOUND

    def test_handler_crash_is_500(self, app, monkeypatch):
        def boom():
            raise RuntimeError("boom")

        monkeypatch.setattr(app.procfs, "list_pids", boom)

        response = request(app, "GET /proc?key=debugger")
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_custom_access_key(self, config):
        config.access_key = "s3cret"
        app = ProcInspectorServer(config)

        assert request(app, "GET /proc?key=debugger").status == HTTPStatus.FORBIDDEN
        assert request(app, "GET /proc?key=s3cret").status == HTTPStatus.OK


def test_repeated_reads_are_identical(app):
    """Test the same request against an unchanged tree gives the same body."""
    for line in ("GET /proc?key=debugger", "GET /proc/1?key=debugger", "GET /proc/1/status?key=debugger"):
        assert request(app, line).body == request(app, line).body
