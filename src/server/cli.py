"""CLI for the server command.

Provides the `server` verb: `start` runs the manifest server in the
foreground, `status` probes a running server's health endpoint.
"""

import argparse
import http.client
import json
import logging
import sys
from pathlib import Path

from config import ConfigError, DEFAULT_PORT, configure_logging, load_config
from server.httpd import Server

logger = logging.getLogger(__name__)


def health_check(port: int, host: str = "127.0.0.1", timeout: float = 2.0) -> bool:
    """Check server health via /health endpoint.

    Returns True if server responds with 200.
    """
    try:
        conn = http.client.HTTPConnection(host, port, timeout=timeout)
        try:
            conn.request("GET", "/health")
            response = conn.getresponse()
            return response.status == 200
        finally:
            conn.close()
    except (OSError, http.client.HTTPException):
        return False


def _handle_start(argv):
    """Handle 'server start': run the server in the foreground."""
    parser = argparse.ArgumentParser(
        prog="weave-manifest server start",
        description="Start the manifest server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: config/PORT or 8080)",
    )
    parser.add_argument(
        "--bind", "-b",
        help="Address to bind to (default: config/BIND or 0.0.0.0)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="YAML config file",
    )
    parser.add_argument(
        "--static-dir",
        type=Path,
        help="Directory with static files for the landing page",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    if args.port is not None:
        config.port = args.port
    if args.bind:
        config.bind = args.bind
    if args.static_dir:
        config.static_dir = args.static_dir

    server = Server(config=config)
    try:
        server.start()
    except RuntimeError as e:
        logger.error("Failed to start server: %s", e)
        return 1

    print(f"\nServer running at http://{server.bind}:{server.port}")
    print(f"Weave Net release: {config.weave_version}")
    print("\nPress Ctrl+C to stop...")

    server.serve_forever()
    return 0


def _handle_status(argv):
    """Handle 'server status': check server health."""
    parser = argparse.ArgumentParser(
        prog="weave-manifest server status",
        description="Check manifest server health",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=DEFAULT_PORT,
        help="Port to check",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to check",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    args = parser.parse_args(argv)

    healthy = health_check(args.port, host=args.host)

    if args.json:
        print(json.dumps({"port": args.port, "healthy": healthy}, indent=2))
    elif healthy:
        print(f"Server: healthy (port {args.port})")
    else:
        print(f"Server: not reachable (port {args.port})")

    return 0 if healthy else 1


SUBCOMMANDS = {
    "start": (_handle_start, "Run the manifest server in the foreground"),
    "status": (_handle_status, "Probe a running server's /health endpoint"),
}


def main(argv=None):
    """Run a `server` subcommand and return its exit code."""
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        print("Usage: weave-manifest server {start,status} [options]")
        for name, (_, summary) in SUBCOMMANDS.items():
            print(f"  {name:<8}{summary}")
        return 0

    name, rest = argv[0], argv[1:]
    if name not in SUBCOMMANDS:
        print(f"Error: Unknown server command '{name}' (expected one of: {', '.join(SUBCOMMANDS)})")
        return 1

    handler, _ = SUBCOMMANDS[name]
    return handler(rest)


if __name__ == "__main__":
    sys.exit(main())
