"""curl-parser main entry point.

Ties together the CLI, template pre-pass, parser, and engine modules.
"""

import json
import logging
import sys

import requests

from curl_parser.cli import build_context, parse_cli
from curl_parser.engine import print_request, print_response, send
from curl_parser.errors import CurlParserError
from curl_parser.parser import load, load_request_file


def main(argv: list[str] | None = None) -> int:
    """Run the curl-parser tool.

    Args:
        argv: Optional argument list (defaults to sys.argv).

    Returns:
        Exit code (0 = success, 2 = error).
    """
    args = parse_cli(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    # Progress lines go to stderr when stdout carries JSON
    status = sys.stderr if args.as_json else sys.stdout

    if args.request_file is not None:
        print(f"[*] Loading curl command from: {args.request_file}", file=status)
        try:
            text = load_request_file(args.request_file)
        except (FileNotFoundError, IOError) as exc:
            print(f"Error reading request file: {exc}", file=sys.stderr)
            return 2
    else:
        text = args.command

    try:
        context = build_context(args)
    except (OSError, ValueError) as exc:
        print(f"Error reading template context: {exc}", file=sys.stderr)
        return 2

    print("[*] Parsing curl command...", file=status)
    try:
        parsed = load(text, context)
    except CurlParserError as exc:
        print(f"Error parsing command: {exc}", file=sys.stderr)
        return 2

    if args.as_json:
        print(json.dumps(parsed.to_dict(), indent=2))
    else:
        print_request(parsed)

    if not args.send:
        return 0

    print(f"[*] Sending {parsed.method} {parsed.url}...", file=status)
    if args.proxy:
        print(f"    Proxy  : {args.proxy}", file=status)

    try:
        response = send(parsed, proxy=args.proxy, timeout=args.timeout)
    except (CurlParserError, requests.RequestException) as exc:
        print(f"Error sending request: {exc}", file=sys.stderr)
        return 2

    print_response(response)
    return 0


if __name__ == "__main__":
    sys.exit(main())
