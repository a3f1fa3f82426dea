"""Execution bridge: hand a ParsedRequest to the requests library.

Parsing never touches the network; this module is the only place that does,
and only when asked to.
"""

from __future__ import annotations

import logging

import requests
import urllib3

from curl_parser.parser import ParsedRequest

logger = logging.getLogger(__name__)

# Seconds to wait for the server before giving up
DEFAULT_TIMEOUT = 30


def to_request(parsed: ParsedRequest) -> requests.Request:
    """Build an unprepared :class:`requests.Request` from a parsed command.

    Raises:
        UnsupportedContentType: If the body cannot be encoded.
    """
    return requests.Request(
        method=parsed.method,
        url=parsed.url,
        headers=dict(parsed.headers),
        data=parsed.body(),
    )


def send(
    parsed: ParsedRequest,
    session: requests.Session | None = None,
    proxy: str | None = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> requests.Response:
    """Send the parsed request and return the response.

    TLS verification follows ``parsed.insecure``; redirects are not
    followed since ``-L`` only names the target URL.

    Args:
        parsed: The parsed curl command.
        session: Optional session to send through (a new one otherwise).
        proxy: Optional proxy URL for debugging.
        timeout: Request timeout in seconds.
    """
    if parsed.insecure:
        # Suppress InsecureRequestWarning, the user asked for -k
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    proxies = None
    if proxy:
        proxies = {"http": proxy, "https": proxy}

    own_session = session is None
    session = session or requests.Session()
    try:
        prepared = session.prepare_request(to_request(parsed))
        logger.debug("Sending %s %s", prepared.method, prepared.url)
        return session.send(
            prepared,
            proxies=proxies,
            timeout=timeout,
            verify=not parsed.insecure,
            allow_redirects=False,
        )
    finally:
        if own_session:
            session.close()


def print_request(parsed: ParsedRequest) -> None:
    """Print a formatted summary of a parsed request to stdout."""
    banner = "=" * 60
    print(f"\n{banner}")
    print(f"  {parsed.method} {parsed.url}")
    print(banner)
    print("\n  Headers:")
    for key, value in parsed.headers.items():
        print(f"    {key}: {value}")
    if parsed.data:
        print(f"\n  Body ({len(parsed.data)} parts):")
        for part in parsed.data:
            print(f"    {part}")
    print(f"\n  Insecure    : {'YES' if parsed.insecure else 'NO'}")
    print(f"\n{banner}\n")


def print_response(response: requests.Response) -> None:
    """Print the status, headers and start of the body of a response."""
    print(f"  Status Code : {response.status_code}")
    print("\n  Response Headers:")
    for key, value in response.headers.items():
        print(f"    {key}: {value}")
    print(f"\n  Response Body (first 500 chars):\n    {response.text[:500]}")
