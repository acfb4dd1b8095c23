"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m tinyhttpd --directory /tmp/files
    tinyhttpd --port 8080 --workers 32

Every setting comes from the command line; nothing is read from the
environment.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    """The argument parser, separate from main() so it can be tested."""
    defaults = ServerConfig()

    parser = argparse.ArgumentParser(
        prog="tinyhttpd",
        description="Minimal threaded HTTP/1.1 server over raw sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tinyhttpd                            # Listen on 127.0.0.1:4221
  python -m tinyhttpd --directory /tmp/files     # Enable /files/
  python -m tinyhttpd --host 0.0.0.0 -p 8080     # All interfaces, port 8080
  python -m tinyhttpd --workers 32 --timeout 5   # More workers, shorter timeout
  python -m tinyhttpd --log-format json          # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Base directory for /files/ (without it, /files/ answers 500)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LIMITS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Worker threads, i.e. concurrent connections (default: {defaults.max_workers})"
    )

    parser.add_argument(
        "--queue-size",
        type=int,
        default=defaults.queue_size,
        help=f"Connections allowed to wait for a worker (default: {defaults.queue_size})"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults.timeout,
        help=f"Socket timeout in seconds (default: {defaults.timeout})"
    )

    parser.add_argument(
        "--max-request-size",
        type=int,
        default=defaults.max_request_size,
        help=f"Largest accepted request in bytes (default: {defaults.max_request_size})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tinyhttpd {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        max_request_size=args.max_request_size,
        max_workers=args.workers,
        queue_size=args.queue_size,
        directory=args.directory,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[List[str]] = None):
    """Parse arguments, build the server and run it until interrupted."""
    args = build_parser().parse_args(argv)

    try:
        server = create_app(config_from_args(args))
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
