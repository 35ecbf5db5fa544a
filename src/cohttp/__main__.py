"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Run with defaults (localhost 8080)
    python -m cohttp

    # Custom port, all interfaces
    python -m cohttp --host 0.0.0.0 --service 3000

    # Verbose: log every header received and response sent
    python -m cohttp --log-level DEBUG

    # JSON access log, give up on clients idle for 30s
    python -m cohttp --log-format json --read-timeout 30

Environment variables (COHTTP_*) are read first; flags override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .errors import ServerError
from .server import Server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cohttp",
        description="Minimal thread-per-connection HTTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cohttp                           # localhost:8080
  python -m cohttp --service 3000            # Custom port
  python -m cohttp --host 0.0.0.0            # Listen on all interfaces
  python -m cohttp --log-level DEBUG         # Log headers and responses
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    # Defaults are None so unset flags fall back to the environment

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host name or address to bind to (default: localhost)"
    )

    parser.add_argument(
        "--service", "-p",
        default=None,
        help="Service name or port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=None,
        help="Bytes per socket read (default: 1024)"
    )

    parser.add_argument(
        "--read-timeout",
        type=float,
        default=None,
        help="Seconds to wait on each read before dropping the client (default: wait forever)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE / LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--body",
        default=None,
        help="Body of the static response (default: 'Hello, World!')"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"cohttp {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment config with CLI flags layered on top."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "service": args.service,
        "buffer_size": args.buffer_size,
        "read_timeout": args.read_timeout,
        "response_body": args.body,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = Server(config)
        server.run()
    except (ServerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
