"""Command-line interface for curl-parser.

Provides an argparse front end that reads a curl command from a file or
the command line, optionally fills in template variables, and prints or
sends the resulting request.
"""

import argparse
import json
import os
import sys

from curl_parser import __version__
from curl_parser.engine import DEFAULT_TIMEOUT


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for the curl-parser CLI."""
    parser = argparse.ArgumentParser(
        prog="curl-parser",
        description=(
            "curl-parser v{ver}: convert a curl command into a structured "
            "HTTP request.\n\n"
            "Reads a curl command (multi-line, with comments and "
            "{{{{ variable }}}} placeholders), prints the parsed method, URL, "
            "headers and body, and can send the request."
        ).format(ver=__version__),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  curl-parser --file request.curl\n"
            "  curl-parser --command \"curl -u me:pw https://httpbin.org/get\" "
            "--send\n"
            "  curl-parser --file request.curl --var token=abc123 --json\n"
        ),
    )

    source = parser.add_argument_group("input (one required)")
    exclusive = source.add_mutually_exclusive_group(required=True)
    exclusive.add_argument(
        "--file",
        dest="request_file",
        help="Path to a file containing the curl command.",
    )
    exclusive.add_argument(
        "--command",
        help="The curl command itself.",
    )

    parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Template variable, repeatable (e.g. --var token=abc123).",
    )
    parser.add_argument(
        "--context-file",
        default=None,
        help="Path to a JSON object used as the template context.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Print the parsed request as JSON.",
    )
    parser.add_argument(
        "--send",
        action="store_true",
        help="Send the request after parsing it.",
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
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"Request timeout in seconds (default: {DEFAULT_TIMEOUT}).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
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
        SystemExit: If an input file is missing or unreadable, or a
            ``--var`` is not ``KEY=VALUE``.
    """
    for label, path in (
        ("Request file", args.request_file),
        ("Context file", args.context_file),
    ):
        if path is None:
            continue
        if not os.path.isfile(path):
            print(f"Error: {label} not found: '{path}'", file=sys.stderr)
            sys.exit(1)
        if not os.access(path, os.R_OK):
            print(f"Error: {label} is not readable: '{path}'", file=sys.stderr)
            sys.exit(1)

    for item in args.var:
        key, sep, _ = item.partition("=")
        if not sep or not key.strip():
            print(
                f"Error: Template variable must be KEY=VALUE: '{item}'",
                file=sys.stderr,
            )
            sys.exit(1)

    if args.timeout <= 0:
        print("Error: Timeout must be a positive number.", file=sys.stderr)
        sys.exit(1)


def build_context(args: argparse.Namespace) -> dict | None:
    """Collect the template context from ``--context-file`` and ``--var``.

    ``--var`` entries override keys from the context file. Returns ``None``
    when neither option was given.

    Raises:
        ValueError: If the context file is not a JSON object.
    """
    if args.context_file is None and not args.var:
        return None

    context: dict = {}
    if args.context_file is not None:
        with open(args.context_file, "r", encoding="utf-8") as fh:
            loaded = json.load(fh)
        if not isinstance(loaded, dict):
            raise ValueError(
                f"Context file must hold a JSON object: '{args.context_file}'"
            )
        context.update(loaded)

    for item in args.var:
        key, _, value = item.partition("=")
        context[key.strip()] = value
    return context


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
