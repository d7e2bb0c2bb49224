"""
pytest configuration and fixtures.
"""

import json
import socket
import sys
import textwrap
import threading
from pathlib import Path
from typing import Generator, Optional, Tuple

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from procinspect import ProcInspectorServer, ServerConfig


ACCESS_KEY = "debugger"

PS_OUTPUT = textwrap.dedent("""\
      PID COMMAND         %CPU   RSS
        1 init             0.0  1200
""")

INIT_STATUS = "Name:\tinit\nPid:\t1\n"


def fake_ps_command(output: str, exit_code: int = 0) -> Tuple[str, ...]:
    """A command that prints `output` like ps would, using this interpreter."""
    script = f"import sys; sys.stdout.write({output!r}); sys.exit({exit_code})"
    return (sys.executable, "-c", script)


@pytest.fixture
def fake_proc(tmp_path: Path) -> Path:
    """
    A miniature /proc:

        proc/
        ├── 1/        status, cmdline, net/tcp, task/1/status
        ├── 42/       status
        ├── self      (not a pid)
        └── uptime
    """
    root = tmp_path / "proc"

    init = root / "1"
    (init / "net").mkdir(parents=True)
    (init / "task" / "1").mkdir(parents=True)
    (init / "status").write_text(INIT_STATUS)
    (init / "cmdline").write_bytes(b"/sbin/init\x00splash\x00")
    (init / "net" / "tcp").write_text("  sl  local_address rem_address\n")
    (init / "task" / "1" / "status").write_text("Name:\tinit\nState:\tS (sleeping)\n")

    other = root / "42"
    other.mkdir()
    (other / "status").write_text("Name:\tworker\nPid:\t42\n")

    (root / "self").mkdir()
    (root / "uptime").write_text("12345.67 54321.00\n")

    return root


@pytest.fixture
def config(fake_proc: Path) -> ServerConfig:
    """Test configuration against the fake /proc and a canned ps."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        proc_root=str(fake_proc),
        ps_command=fake_ps_command(PS_OUTPUT),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def app(config: ServerConfig) -> ProcInspectorServer:
    """A server that is built but not listening."""
    return ProcInspectorServer(config)


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: ProcInspectorServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def raw(self, data: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes, half-close, and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(data)
            s.shutdown(socket.SHUT_WR)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def get(self, target: str) -> "RawResponse":
        """Send a GET request line for target and parse the reply."""
        return RawResponse.parse(self.raw(f"GET {target} HTTP/1.1\r\n\r\n".encode()))


class RawResponse:
    """Minimal parsed HTTP response for assertions."""

    __test__ = False

    def __init__(self, status: int, reason: str, headers: dict, body: bytes):
        self.status = status
        self.reason = reason
        self.headers = headers
        self.body = body

    @classmethod
    def parse(cls, data: bytes) -> "RawResponse":
        head, _, body = data.partition(b"\r\n\r\n")
        lines = head.decode("utf-8").split("\r\n")
        _, status, reason = lines[0].split(" ", 2)
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(":")
            headers[name.strip()] = value.strip()
        return cls(int(status), reason, headers, body)

    def json(self):
        return json.loads(self.body.decode("utf-8"))


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A real server listening on an ephemeral port."""
    test_srv = TestServer(ProcInspectorServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
