"""
=============================================================================
LISTENER / DISPATCH LOOP
=============================================================================

Owns the listening socket. Accepts connections forever and hands each
one, wrapped in a Connection, to a callback that must return quickly
(the server submits it to the worker pool).

    socket() → setsockopt() → bind() → listen() → accept() loop
                                                    │
                                                    ▼
                                     connection_handler(Connection)

=============================================================================
FAILURE POLICY
=============================================================================

    ┌───────────────────────────┬─────────────────────────────────────────┐
    │ bind() fails              │ logged, re-raised: the process exits    │
    │ accept() times out (1s)   │ loop re-checks the running flag         │
    │ accept() fails otherwise  │ logged, loop continues                  │
    │ SIGINT / SIGTERM          │ graceful shutdown (main thread only)    │
    └───────────────────────────┴─────────────────────────────────────────┘

One bad client (or a transient EMFILE) never stops the listener.

=============================================================================
"""

import socket
import signal
import logging
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


# Pause after a failed accept() so a persistent error cannot spin the CPU
ACCEPT_ERROR_BACKOFF = 0.1


class SocketServer:
    """
    TCP listener.

    Usage:
        def handle(conn: Connection):
            pool.submit(process, args=(conn,))

        server = SocketServer(config)
        server.start(handle)          # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._previous_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        Differs from the configured port when port 0 was requested.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        # Short accept timeout so shutdown() is noticed promptly
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """Route SIGTERM and SIGINT to shutdown(). No-op off the main thread."""
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._previous_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop until shutdown().

        Raises:
            OSError: The address could not be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"Accept error: {e}")
                time.sleep(ACCEPT_ERROR_BACKOFF)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                timeout=self.config.timeout,
                max_line_size=self.config.max_request_line,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting. Safe to call from any thread, more than once."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)
