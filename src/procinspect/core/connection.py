"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket for its whole (short) life:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED

Exactly one request line is read, exactly one response is written, and
the socket is closed. There is no keep-alive.

=============================================================================
TCP IS A STREAM
=============================================================================

recv() returns whatever has arrived, not "one line":

    First recv():   b"GET /proc/1/st"
    Second recv():  b"atus?key=debugger HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

So bytes are buffered until the first b"\\n". Everything after it
(headers, body) is ignored, and drained at close so the kernel does not
answer our response with a reset. The drain is bounded by DRAIN_TIMEOUT
in total and DRAIN_LIMIT bytes, so a peer that keeps sending cannot
hold the worker.

`timeout` is a deadline for the whole request line, not an idle timer:
a client trickling one byte at a time is dropped once it runs out.

=============================================================================
HOW A READ CAN END
=============================================================================

    ┌──────────────────────────────────┬──────────────────────────────────┐
    │ Situation                        │ read_request_line()              │
    ├──────────────────────────────────┼──────────────────────────────────┤
    │ newline seen                     │ the line (newline included)      │
    │ EOF after some bytes, no newline │ the partial line                 │
    │ EOF before any byte              │ None                             │
    │ line longer than max_line_size   │ RequestLineTooLong               │
    │ socket deadline expired          │ TimeoutError                     │
    │ reset / other socket error       │ ConnectionError / OSError        │
    └──────────────────────────────────┴──────────────────────────────────┘

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


logger = logging.getLogger(__name__)


# Upper bounds on reading leftover request bytes at close
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and idempotent close)."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestLineTooLong(ValueError):
    """No newline within max_line_size bytes."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current lifecycle state.
        timeout: Deadline in seconds for the whole request line, or None
                 to wait forever.
        max_line_size: Cap on request-line bytes.
    """

    socket: socket.socket
    address: Tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW

    buffer_size: int = 4096
    timeout: Optional[float] = 30.0
    max_line_size: int = 8192

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # Accepted sockets may inherit the listener's accept timeout
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def read_request_line(self) -> Optional[bytes]:
        """
        Read bytes up to and including the first newline.

        Returns:
            The request line, or None if the peer closed before sending
            anything.

        Raises:
            RequestLineTooLong: max_line_size bytes without a newline.
            TimeoutError: The deadline expired before a full line arrived.
            OSError: Reset or any other socket failure.
        """
        self.state = ConnectionState.READING
        deadline = None if self.timeout is None else time.monotonic() + self.timeout

        while True:
            newline = self._buffer.find(b"\n")
            if newline != -1:
                line = self._buffer[:newline + 1]
                self._buffer = self._buffer[newline + 1:]
                break

            if len(self._buffer) > self.max_line_size:
                raise RequestLineTooLong(
                    f"Request line exceeds {self.max_line_size} bytes"
                )

            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError("Request read timeout")
                self.socket.settimeout(remaining)

            try:
                chunk = self.socket.recv(self.buffer_size)
            except socket.timeout as e:
                raise TimeoutError("Request read timeout") from e

            if not chunk:
                if not self._buffer:
                    return None
                line, self._buffer = self._buffer, b""
                break

            self._buffer += chunk

        if len(line) > self.max_line_size:
            raise RequestLineTooLong(f"Request line exceeds {self.max_line_size} bytes")

        self.state = ConnectionState.PROCESSING
        return line

    def send_response(self, data: bytes) -> bool:
        """
        Write the whole response.

        Returns:
            True if every byte was handed to the kernel, False if the
            peer went away (the failure is logged at DEBUG only).
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    def close(self, drain: bool = True):
        """
        Close gracefully: SHUT_WR, drain briefly, close.

        Args:
            drain: Read leftover request bytes first. Pass False where the
                   caller must not wait at all (the accept thread).

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        if drain:
            self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED

    def _drain(self):
        """Discard unread input until EOF, DRAIN_TIMEOUT or DRAIN_LIMIT."""
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(self.buffer_size)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"Connection(id={self.id}, client={self.client_ip}, state={self.state.value})"
