"""
Command-line entry point: ``python -m procinspect`` or ``procinspect``.

Settings start from the PROCINSPECT_* environment variables; flags given
on the command line override them.
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_FORMATS
from .server import ProcInspectorServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procinspect",
        description="HTTP service exposing process state from /proc and ps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  procinspect                                 # 0.0.0.0:7878, key "debugger"
  procinspect --port 9000 --access-key s3cret
  procinspect --proc-root /host/proc          # inspect a mounted host /proc
  curl 'http://localhost:7878/proc/1/status?key=debugger'
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 7878)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-connection socket deadline in seconds (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # INSPECTOR ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--access-key",
        help="Shared secret required as ?key=<secret> (default: debugger)"
    )
    parser.add_argument(
        "--proc-root",
        help="Introspection root (default: /proc)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Maximum worker threads (default: 16)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=list(LOG_FORMATS),
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"procinspect {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-derived config with the given flags applied on top."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "access_key": args.access_key,
        "proc_root": args.proc_root,
        "max_workers": args.workers,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    if args.workers is not None:
        config.min_workers = min(config.min_workers, args.workers)

    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = ProcInspectorServer(config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
