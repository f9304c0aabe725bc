#!/usr/bin/env python3
"""CLI entry point for weave-manifest.

Nouns:
- server: Manifest server (start/status)
- resolve: Print the upstream manifest URL for a request path
- render: Build a customized manifest for a request path and print it

Request paths use the same shapes the server accepts, e.g.
  weave-manifest render '/k8s/v1.28/net.yaml?env.WEAVE_MTU=1337'
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from config import ConfigError, configure_logging, load_config, manifest_table
from resolver.version import query_params, resolve_path
from weave.cache import DocumentCache
from weave.errors import FetchError
from weave.pipeline import ManifestProcessor

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_NO_MANIFEST = 1  # Unresolvable version, bad config
EXIT_PROCESS_ERROR = 2  # Fetch, parse or structural error

NOUN_COMMANDS = {
    "server": "Manifest server (start/status)",
    "resolve": "Print the upstream manifest URL for a request path",
    "render": "Build a customized manifest and print it",
}


def print_usage():
    """Print top-level usage."""
    print("Usage: weave-manifest <command> [options]")
    print()
    print("Commands:")
    for noun, description in NOUN_COMMANDS.items():
        print(f"  {noun:<9}{description}")
    print()
    print("Run 'weave-manifest <command> --help' for command-specific options.")


def _path_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "path",
        help="Request path, e.g. /k8s/v1.28/net.yaml or /k8s/net?k8s-version=...",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="YAML config file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def _setup(args):
    """Configure logging and load config; returns (config, exit_code)."""
    configure_logging(args.verbose)
    try:
        return load_config(args.config), None
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return None, EXIT_NO_MANIFEST


def resolve_main(argv: list) -> int:
    """Handle 'resolve': print the source manifest URL."""
    args = _path_parser(
        "weave-manifest resolve", "Print the upstream manifest URL for a request path"
    ).parse_args(argv)
    config, rc = _setup(args)
    if config is None:
        return rc

    source = resolve_path(args.path, manifest_table(config))
    if not source.matched:
        logger.error("No manifest found for %s", args.path)
        return EXIT_NO_MANIFEST

    print(source.source_url)
    return EXIT_SUCCESS


def render_main(argv: list, cache: Optional[DocumentCache] = None) -> int:
    """Handle 'render': build the customized manifest and print it."""
    args = _path_parser(
        "weave-manifest render", "Build a customized manifest for a request path"
    ).parse_args(argv)
    config, rc = _setup(args)
    if config is None:
        return rc

    source = resolve_path(args.path, manifest_table(config))
    if not source.matched:
        logger.error("No manifest found for %s", args.path)
        return EXIT_NO_MANIFEST

    if cache is None:
        cache = DocumentCache(timeout=config.fetch_timeout)
    processor = ManifestProcessor(cache)
    try:
        result = processor.process(source.source_url, query_params(args.path))
    except FetchError as e:
        logger.error("Error: %s - %s", e.code, e.message)
        return EXIT_PROCESS_ERROR

    if not result.ok:
        logger.error("Error: %s", result.body)
        return EXIT_PROCESS_ERROR

    sys.stdout.write(result.body)
    return EXIT_SUCCESS


def dispatch_noun(noun: str, argv: list) -> int:
    """Dispatch to noun-specific CLI handler.

    Args:
        noun: The noun command (e.g., "server", "render")
        argv: Remaining command line arguments

    Returns:
        Exit code
    """
    if noun == "server":
        from server.cli import main as server_main
        rc: int = server_main(argv)
        return rc

    if noun == "resolve":
        return resolve_main(argv)

    if noun == "render":
        return render_main(argv)

    print(f"Error: Unknown command '{noun}'")
    print_usage()
    return 1


def main(argv=None) -> int:
    """CLI entry point."""
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        print_usage()
        return 0

    return dispatch_noun(argv[0], argv[1:])


if __name__ == "__main__":
    sys.exit(main())
