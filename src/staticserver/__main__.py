"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    $ staticserver                                 # ./static on localhost:8080
    $ staticserver --root ./public --port 3000
    $ staticserver --host 0.0.0.0 --workers 32 --log-format json
    $ python -m staticserver --version

Flags win over STATIC_* environment variables, which win over defaults.
Exit status is 0 after a clean shutdown and 2 for a bad configuration.

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .server import StaticServer, configure_logging


logger = logging.getLogger("staticserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Serve a directory over HTTP with listings, caching, compression and ranges.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserver                         # serve ./static on localhost:8080
  staticserver --root ./public         # serve another directory
  staticserver --host 0.0.0.0 -p 80    # all interfaces
  STATIC_PORT=3000 staticserver        # environment works too
        """,
    )

    parser.add_argument("--host", "-H", default=None,
                        help="address to bind (default: localhost)")
    parser.add_argument("--port", "-p", type=int, default=None,
                        help="port to listen on (default: 8080, 0 = any free port)")
    parser.add_argument("--root", "-r", default=None,
                        help="directory to serve (default: ./static)")
    parser.add_argument("--workers", "-w", type=int, default=None,
                        help="maximum worker threads (default: 16)")
    parser.add_argument("--log-level", "-l", choices=LOG_LEVELS, default=None,
                        type=str.upper, help="logging level (default: INFO)")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None,
                        help="access log format (default: text)")
    parser.add_argument("--version", "-v", action="version",
                        version=f"staticserver {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig.from_env(
        host=args.host,
        port=args.port,
        root=args.root,
        max_workers=args.workers,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        configure_logging(config.log_level)
        server = StaticServer(config)
    except ValueError as e:
        print(f"staticserver: {e}", file=sys.stderr)
        return 2

    try:
        server.start()
    except OSError as e:
        logger.error("Cannot start: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
