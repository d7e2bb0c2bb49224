"""
=============================================================================
PROCESS INSPECTOR SERVER
=============================================================================

Wires the pieces together and owns the per-connection flow.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   1. ACCEPT          SocketServer accepts, wraps in Connection      │
    │          │                                                          │
    │          ▼                                                          │
    │   2. ADMIT           ThreadPool.submit()  ── queue full ──► 503     │
    │          │                                                          │
    │          ▼  (worker thread)                                         │
    │   3. READ            one line ── EOF / timeout / reset ──► drop     │
    │          │                     └─ too long ──────────────► 400      │
    │          ▼                                                          │
    │   4. PARSE           RequestParser ── < 2 tokens ──► 400            │
    │          │                         └─ not GET ────► 405             │
    │          ▼                                                          │
    │   5. PIPELINE        LoggingMiddleware                              │
    │          │             └─ AccessKeyMiddleware ── bad key ──► 403    │
    │          │                  └─ Router.handle                        │
    │          │                       ├─ non-digit pid ──► 400           │
    │          │                       ├─ unknown path ───► 404           │
    │          │                       └─ InspectorHandlers ──► 200/404/500
    │          ▼                                                          │
    │   6. WRITE           response.to_bytes() ── write fails ──► drop    │
    │          │                                                          │
    │          ▼                                                          │
    │   7. CLOSE           always                                         │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Every failure is turned into a response inside the same connection,
except the two I/O failures (cannot read, cannot write), which are only
logged at DEBUG. Nothing is retried and nothing crosses connections.

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestLineTooLong
from .handlers import InspectorHandlers, ProcFS, ProcessLister
from .http import (
    HTTPParseError,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    Router,
    bad_request,
    internal_error,
    method_not_allowed,
    service_unavailable,
)
from .middleware import AccessKeyMiddleware, LoggingMiddleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


# Cap on writing a 503 from the accept thread
REJECT_SEND_TIMEOUT = 0.5


class ProcInspectorServer:
    """
    HTTP service exposing process state.

    Usage:
        server = ProcInspectorServer(ServerConfig(port=7878))
        server.run()                    # blocks until SIGINT / SIGTERM

    Routes (all require ?key=<access key>):
        GET /                           {"processes": [...]}
        GET /proc                       {"pids": [...]}
        GET /proc/<pid>                 {"files": [...]}
        GET /proc/<pid>/.../status      parsed status map
        GET /proc/<pid>/<path>          raw file text
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser()
        self._router = Router()

        self.procfs = ProcFS(self.config.proc_root, self.config.max_read_size)
        self.lister = ProcessLister(self.config.ps_command, self.config.ps_timeout)
        InspectorHandlers(self.procfs, self.lister).register(self._router)

        self._middleware = MiddlewarePipeline()
        self._middleware.use(
            LoggingMiddleware(log_format=self.config.log_format),
            AccessKeyMiddleware(self.config.access_key),
        )
        self._handler = self._middleware.wrap(self._router.handle)

        self._running = False

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening with port=0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self):
        """Start the pool and the accept loop. Blocks until stop() or a signal."""
        self._running = True
        self._setup_logging()
        self._thread_pool.start()

        logger.info(f"Starting process inspector on {self.config.host}:{self.config.port}")
        logger.info(f"Introspection root: {self.procfs.root}")
        self.print_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener is bound. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def stop(self):
        """Ask the accept loop to exit; run() then shuts the pool down."""
        self._socket_server.shutdown()

    def print_banner(self):
        """Print the listening address and routes."""
        host, port = self.address
        print()
        print("╔══════════════════════════════════════════════════════════════╗")
        print(f"║  {self.config.server_name:<60}║")
        print(f"║  {'http://' + host + ':' + str(port):<60}║")
        workers = f"Workers: {self.config.min_workers}-{self.config.max_workers} threads"
        print(f"║  {workers:<60}║")
        print("║  Press Ctrl+C to stop                                        ║")
        print("╚══════════════════════════════════════════════════════════════╝")
        self._router.print_routes()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("procinspect").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        logger.info(f"Thread pool stats: {self._thread_pool.stats}")
        self._thread_pool.shutdown(wait=True, timeout=5.0)
        logger.info("Server stopped")

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION HANDLING
    # ─────────────────────────────────────────────────────────────────────

    def _handle_connection(self, conn: Connection):
        """Admit a connection into the pool (accept thread)."""
        if not self._thread_pool.submit(self._process_connection, args=(conn,)):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting {conn.client_ip}")
            self._reject(conn)

    def _reject(self, conn: Connection):
        """Answer 503 without reading from the client."""
        conn.socket.settimeout(REJECT_SEND_TIMEOUT)
        self._send(conn, service_unavailable())
        conn.close(drain=False)

    def _process_connection(self, conn: Connection):
        """Read, answer, close (worker thread)."""
        with conn:
            try:
                raw_line = conn.read_request_line()
            except RequestLineTooLong as e:
                logger.warning(f"[{conn.id}] {e}")
                self._send(conn, bad_request("Invalid request line"))
                return
            except OSError as e:
                logger.debug(f"[{conn.id}] Read failed: {e}")
                return

            if raw_line is None:
                logger.debug(f"[{conn.id}] Closed before sending a request")
                return

            response = self.handle_request_line(raw_line, conn.address)
            self._send(conn, response)

    def handle_request_line(
        self,
        raw_line: bytes,
        client_address: Tuple[str, int] = ("", 0)
    ) -> HTTPResponse:
        """
        Turn one raw request line into a response.

        Parse errors are answered directly (400 / 405); everything else
        goes through the middleware pipeline. Never raises.
        """
        try:
            request = self._parser.parse(raw_line, client_address)
        except HTTPParseError as e:
            logger.warning(f"Rejected request from {client_address[0] or '-'}: {e}")
            if e.status_code == HTTPStatus.METHOD_NOT_ALLOWED:
                return method_not_allowed()
            return bad_request(str(e))

        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.path}: {e}")
            return internal_error()

    def _send(self, conn: Connection, response: HTTPResponse) -> bool:
        return conn.send_response(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> ProcInspectorServer:
    """
    Build a server without starting it.

        app = create_app(ServerConfig(port=0, proc_root="/tmp/fakeproc"))
        threading.Thread(target=app.run, daemon=True).start()
    """
    return ProcInspectorServer(config)
