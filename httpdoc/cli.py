"""Command-line interface.

Builds the argparse parser for the ``httpdoc`` command and validates the
parsed arguments.
"""

import argparse
import logging
import os
import sys

from httpdoc import __version__
from httpdoc.config import Settings, load_settings


def build_parser(settings: Settings | None = None) -> argparse.ArgumentParser:
    """Build and return the argument parser for the httpdoc CLI."""
    if settings is None:
        try:
            settings = load_settings()
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)

    parser = argparse.ArgumentParser(
        prog="httpdoc",
        description=(
            "httpdoc v{ver} - Parse and send requests from .http documents.\n\n"
            "Variables declared with '@name = value' are resolved in document "
            "order, '{{$date}}' style dynamic variables are computed on use, "
            "and pre-request scripts may set further variables."
        ).format(ver=__version__),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  httpdoc api.http --list\n"
            "  httpdoc api.http --name login --env-file .env\n"
            "  httpdoc api.http --all --dry-run --var host=localhost:8000\n"
        ),
    )

    parser.add_argument(
        "file",
        help="Path to the .http document.",
    )

    selection = parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--name",
        default=None,
        help="Send only the request with this name (default: the first request).",
    )
    selection.add_argument(
        "--all",
        action="store_true",
        dest="send_all",
        help="Send every request in the document, in order.",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        dest="list_names",
        help="Print the names of the document's requests and exit.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the parsed requests as JSON instead of sending them.",
    )
    parser.add_argument(
        "--env-file",
        default=settings.env_file,
        help="dotenv file providing fallback variables (env: HTTPDOC_ENV_FILE).",
    )
    parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Fallback variable, may be repeated. Document declarations win.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.timeout,
        help="Request timeout in seconds (default: %(default)s).",
    )
    parser.add_argument(
        "--proxy",
        default=None,
        help=(
            "Route traffic through a proxy for debugging "
            "(e.g. http://127.0.0.1:8080)."
        ),
    )
    parser.add_argument(
        "--insecure",
        action="store_false",
        default=settings.verify_tls,
        dest="verify",
        help="Do not verify TLS certificates.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log more detail (-v for info, -vv for debug).",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate parsed CLI arguments.

    Raises:
        SystemExit: If a file is missing or a --var item is malformed.
    """
    if not os.path.isfile(args.file):
        print(f"Error: Document not found: '{args.file}'", file=sys.stderr)
        sys.exit(1)

    if not os.access(args.file, os.R_OK):
        print(f"Error: Document is not readable: '{args.file}'", file=sys.stderr)
        sys.exit(1)

    if args.env_file and not os.path.isfile(args.env_file):
        print(f"Error: Env file not found: '{args.env_file}'", file=sys.stderr)
        sys.exit(1)

    for item in args.var:
        name, sep, _ = item.partition("=")
        if not sep or not name.strip():
            print(f"Error: --var expects NAME=VALUE, got '{item}'", file=sys.stderr)
            sys.exit(1)

    if args.timeout <= 0:
        print("Error: Timeout must be positive.", file=sys.stderr)
        sys.exit(1)


def parse_var_items(items: list[str]) -> dict[str, str]:
    """Turn validated ``NAME=VALUE`` items into a dict."""
    parsed = {}
    for item in items:
        name, _, value = item.partition("=")
        parsed[name.strip()] = value
    return parsed


def log_level(args: argparse.Namespace) -> int:
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    return getattr(logging, str(args.log_level).upper(), logging.WARNING)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse and validate command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed and validated argument namespace.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    validate_args(args)
    return args
