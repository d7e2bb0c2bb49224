"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One ServerConfig is built at startup and shared, read-only, by every
component. The access key lives here and nowhere else.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── procinspect --port 9000                                    │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── PROCINSPECT_PORT=9000 procinspect                          │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


ENV_PREFIX = "PROCINSPECT_"

LOG_FORMATS = ("text", "json")

# Values of PROCINSPECT_TIMEOUT that disable the per-connection deadline
_NO_TIMEOUT = ("", "none", "off")


@dataclass
class ServerConfig:
    """
    Configuration for the inspector.

    Development:
        ServerConfig(host="127.0.0.1", port=0, log_level="DEBUG")

    Hardened deployment:
        ServerConfig(access_key=os.environ["SECRET"], timeout=5.0, max_workers=8)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 7878
    """Port to listen on. 0 picks a free ephemeral port (tests)."""

    backlog: int = 128
    """Kernel accept-queue length."""

    timeout: Optional[float] = 30.0
    """
    Deadline in seconds for receiving the whole request line, counted from
    the first read. None = wait forever (a silent client then holds a
    worker indefinitely).
    """

    max_request_line: int = 8192
    """Longest request line accepted, in bytes. Longer lines get 400."""

    # ─────────────────────────────────────────────────────────────────────
    # ACCESS CONTROL
    # ─────────────────────────────────────────────────────────────────────

    access_key: str = "debugger"
    """Shared secret; every request must carry key=<access_key>."""

    # ─────────────────────────────────────────────────────────────────────
    # INTROSPECTION SOURCES
    # ─────────────────────────────────────────────────────────────────────

    proc_root: str = "/proc"
    """Root of the per-process virtual filesystem."""

    ps_command: Tuple[str, ...] = ("ps", "-eo", "pid,comm,%cpu,rss")
    """Process-listing command. Output: header line, then pid comm %cpu rss."""

    ps_timeout: float = 10.0
    """Seconds before the process-listing command is abandoned (500)."""

    max_read_size: int = 1024 * 1024
    """Bytes read at most from one introspected file; the rest is cut off."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads."""

    queue_size: int = 128
    """Connections allowed to wait for a worker. Beyond this: 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "procinspect/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            PROCINSPECT_HOST        bind address       (default: 0.0.0.0)
            PROCINSPECT_PORT        bind port          (default: 7878)
            PROCINSPECT_ACCESS_KEY  shared secret      (default: debugger)
            PROCINSPECT_PROC_ROOT   introspection root (default: /proc)
            PROCINSPECT_WORKERS     max worker threads (default: 16)
            PROCINSPECT_TIMEOUT     seconds, or "none" (default: 30)
            PROCINSPECT_LOG_LEVEL   logging level      (default: INFO)
            PROCINSPECT_LOG_FORMAT  text or json       (default: text)

        Raises:
            ValueError: A numeric variable does not parse.
        """
        defaults = cls()

        def env(name: str, default: str) -> str:
            return os.getenv(ENV_PREFIX + name, default)

        max_workers = int(env("WORKERS", str(defaults.max_workers)))

        raw_timeout = env("TIMEOUT", str(defaults.timeout)).strip()
        timeout = None if raw_timeout.lower() in _NO_TIMEOUT else float(raw_timeout)

        return cls(
            host=env("HOST", defaults.host),
            port=int(env("PORT", str(defaults.port))),
            access_key=env("ACCESS_KEY", defaults.access_key),
            proc_root=env("PROC_ROOT", defaults.proc_root),
            max_workers=max_workers,
            min_workers=min(defaults.min_workers, max_workers),
            timeout=timeout,
            log_level=env("LOG_LEVEL", defaults.log_level),
            log_format=env("LOG_FORMAT", defaults.log_format),
        )

    def validate(self) -> None:
        """
        Check every value; called once at startup.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not self.access_key:
            raise ValueError("access_key must not be empty")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 (or None)")

        if self.ps_timeout <= 0:
            raise ValueError("ps_timeout must be > 0")

        if not self.ps_command:
            raise ValueError("ps_command must not be empty")

        if self.max_read_size < 1:
            raise ValueError("max_read_size must be >= 1")

        if self.max_request_line < 1:
            raise ValueError("max_request_line must be >= 1")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log_format: {self.log_format!r}. Use one of {LOG_FORMATS}."
            )
