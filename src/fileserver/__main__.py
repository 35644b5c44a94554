"""
=============================================================================
FILE SERVER CLI ENTRY POINT
=============================================================================

    fileserver <port> <root_path> [options]
    python -m fileserver <port> <root_path> [options]

=============================================================================
USAGE
=============================================================================

    # Serve the current directory on port 8080
    fileserver 8080 .

    # Localhost only, 8 workers, verbose
    fileserver 8080 /srv/www --host 127.0.0.1 --workers 8 --log-level DEBUG

    # JSON access log for a log shipper
    fileserver 8080 /srv/www --log-format json

    # Defaults from the environment; flags still win
    FILESERVER_WORKERS=8 FILESERVER_TIMEOUT=2 fileserver 8080 /srv/www

=============================================================================
EXIT STATUS
=============================================================================

    0   Stopped by SIGINT/SIGTERM
    1   Could not bind or listen (port in use, permission denied, ...),
        or a FILESERVER_* variable does not parse
    2   Bad arguments: port not a number or out of 1-65535, root path
        not an existing directory (reported by argparse)

Arguments are checked before anything touches the network.

=============================================================================
"""

import argparse
import dataclasses
import os
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS
from .core.socket_server import StartupError
from .server import FileServer
from .text import EncodingError, to_native_path


def parse_port(value: str) -> int:
    """
    argparse type for the port argument.

    Raises:
        argparse.ArgumentTypeError: Not an integer, or outside 1-65535.
    """
    try:
        port = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"port must be a number, got {value!r}")
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def parse_root(value: str) -> str:
    """
    argparse type for the root path argument.

    Raises:
        argparse.ArgumentTypeError: Not representable, or not a directory.
    """
    try:
        root = to_native_path(value)
    except EncodingError as e:
        raise argparse.ArgumentTypeError(str(e))

    if not os.path.isdir(root):
        raise argparse.ArgumentTypeError(f"not an existing directory: {value!r}")
    return root


def parse_workers(value: str) -> int:
    """argparse type for --workers."""
    try:
        workers = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"workers must be a number, got {value!r}")
    if workers < 1:
        raise argparse.ArgumentTypeError("workers must be at least 1")
    return workers


def build_parser(defaults: Optional[ServerConfig] = None) -> argparse.ArgumentParser:
    """
    Create the argument parser.

    Args:
        defaults: Configuration whose values become the option defaults,
                  normally ServerConfig.from_env(). Options given on the
                  command line override them.
    """
    defaults = defaults or ServerConfig()

    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Serve a directory over HTTP, one request per connection.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fileserver 8080 .                          # Serve the current directory
  fileserver 8080 /srv/www -H 127.0.0.1      # Localhost only
  fileserver 8080 /srv/www -w 8 -l DEBUG     # 8 workers, verbose
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # POSITIONAL ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("port", type=parse_port, help="Port to listen on (1-65535)")
    parser.add_argument("root_path", type=parse_root, help="Directory to serve")

    # ─────────────────────────────────────────────────────────────────────
    # OPTIONS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help="IPv4 address to bind to (default: $FILESERVER_HOST or 0.0.0.0)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=parse_workers,
        default=defaults.workers,
        help="Number of worker threads (default: $FILESERVER_WORKERS or one per CPU)"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level,
        help="Logging level (default: $FILESERVER_LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help="Access log format (default: $FILESERVER_LOG_FORMAT or text)"
    )

    parser.add_argument(
        "--allow-outside-root",
        action="store_true",
        help="Do not reject targets whose '..' segments leave the root"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}"
    )

    return parser


def config_from_args(
    args: argparse.Namespace,
    base: Optional[ServerConfig] = None,
) -> ServerConfig:
    """
    Translate parsed arguments into a ServerConfig.

    Settings with no command-line option (recv_timeout, ...) are taken
    from base.
    """
    return dataclasses.replace(
        base or ServerConfig(),
        host=args.host,
        port=args.port,
        root_dir=args.root_path,
        workers=args.workers,
        log_level=args.log_level,
        log_format=args.log_format,
        allow_outside_root=args.allow_outside_root,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    try:
        env = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: bad FILESERVER_* environment variable: {e}", file=sys.stderr)
        return 1

    args = build_parser(env).parse_args(argv)
    config = config_from_args(args, env)

    try:
        server = FileServer(config)
        server.run()
    except (StartupError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
