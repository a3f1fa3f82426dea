"""Fragment reduction, normalization and the ParsedRequest value.

Converts the fragments produced by :mod:`curl_parser.grammar` into a
structured request that the Python requests library can use.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Any, Iterable, Mapping
from urllib.parse import quote_plus

from requests.structures import CaseInsensitiveDict
from urllib3.exceptions import LocationParseError
from urllib3.util import parse_url

from curl_parser import grammar, templating
from curl_parser.errors import (
    GrammarError,
    InvalidHeaderName,
    InvalidHeaderValue,
    InvalidMethod,
    InvalidUrl,
    UnsupportedContentType,
)

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "GET"
BODY_METHOD = "POST"
DEFAULT_SCHEME = "http"
DEFAULT_ACCEPT = "*/*"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

SCHEME_SEPARATOR = "://"
_AUTHORITY_END_RE = re.compile(r"[/?#]")

# RFC 7230 section 3.2.6
_TOKEN_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# Field values may hold visible ASCII, SP and HTAB only; obs-text is rejected
_BAD_VALUE_RE = re.compile(r"[^\t\x20-\x7e]")


def _form_quote(text: str) -> str:
    """Percent-encode for form bodies: ``*`` stays literal, ``~`` is encoded."""
    return quote_plus(text, safe="*").replace("~", "%7E")


def remove_quote(text: str) -> str:
    """Strip one layer of matching single or double quotes."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    return text


class ParsedRequest:
    """Container for a parsed curl command.

    ``data`` holds the raw ``-d`` fragments in source order; use
    :meth:`body` for the encoded request body. Instances are read-only.
    """

    __slots__ = ("method", "url", "headers", "data", "insecure")

    def __init__(
        self,
        method: str = DEFAULT_METHOD,
        url: str = "",
        headers: Mapping[str, str] | None = None,
        data: Iterable[str] = (),
        insecure: bool = False,
    ) -> None:
        setter = super().__setattr__
        setter("method", method)
        setter("url", url)
        setter("headers", CaseInsensitiveDict(headers or {}))
        setter("data", tuple(data))
        setter("insecure", insecure)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"ParsedRequest is read-only (tried to set {name!r})")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"ParsedRequest is read-only (tried to delete {name!r})")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParsedRequest):
            return NotImplemented
        return (
            self.method == other.method
            and self.url == other.url
            and self.headers == other.headers
            and self.data == other.data
            and self.insecure == other.insecure
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"ParsedRequest(method={self.method!r}, url={self.url!r}, "
            f"headers=<{len(self.headers)} headers>, "
            f"data=<{len(self.data)} parts>, insecure={self.insecure!r})"
        )

    @property
    def content_type(self) -> str | None:
        return self.headers.get("Content-Type")

    def body(self) -> str | None:
        """Encode the body fragments for this request's Content-Type.

        Returns:
            ``None`` when there is no body, the form-urlencoded pairs joined
            with ``&`` for form requests, or the last fragment verbatim for
            JSON requests.

        Raises:
            UnsupportedContentType: For any other Content-Type.
        """
        if not self.data:
            return None

        content_type = self.content_type
        if content_type == FORM_CONTENT_TYPE:
            return self._form_urlencoded()
        if content_type == JSON_CONTENT_TYPE:
            # Only the final -d survives for JSON, earlier ones are dropped.
            return self.data[-1]
        raise UnsupportedContentType(content_type)

    def _form_urlencoded(self) -> str:
        pairs = []
        for item in self.data:
            key, _, value = item.partition("=")
            pairs.append(
                f"{_form_quote(remove_quote(key))}={_form_quote(remove_quote(value))}"
            )
        return "&".join(pairs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "data": list(self.data),
            "insecure": self.insecure,
        }


class RequestAccumulator:
    """Mutable request state built up while reducing fragments."""

    __slots__ = ("method", "explicit_method", "url", "headers", "data", "insecure")

    def __init__(self) -> None:
        self.method = DEFAULT_METHOD
        self.explicit_method = False
        self.url: str | None = None
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self.data: list[str] = []
        self.insecure = False

    def freeze(self) -> ParsedRequest:
        return ParsedRequest(
            method=self.method,
            url=self.url or "",
            headers=self.headers,
            data=self.data,
            insecure=self.insecure,
        )


def _set_header(acc: RequestAccumulator, name: str, value: str) -> None:
    if not _TOKEN_RE.fullmatch(name):
        raise InvalidHeaderName(name)
    if _BAD_VALUE_RE.search(value):
        raise InvalidHeaderValue(
            value, "only visible ASCII, space and tab are allowed"
        )
    if name in acc.headers:
        logger.debug("Header %r overwritten", name)
    acc.headers[name] = value


def _unquoted(fragment: grammar.Fragment) -> str:
    """Trimmed fragment value with one layer of quotes removed.

    When the lexer already removed shell quotes, that was the layer.
    """
    value = fragment.value.strip()
    if fragment.quoted:
        return value
    return remove_quote(value)


def _reduce_method(acc: RequestAccumulator, fragment: grammar.Fragment) -> None:
    method = _unquoted(fragment)
    if not _TOKEN_RE.fullmatch(method):
        raise InvalidMethod(fragment.raw or fragment.value)
    acc.method = method
    acc.explicit_method = True


def _reduce_url(acc: RequestAccumulator, fragment: grammar.Fragment) -> None:
    if acc.url is not None:
        logger.debug("URL %r replaced by %r", acc.url, fragment.value)
    acc.url = fragment.value.strip()


def _reduce_header(acc: RequestAccumulator, fragment: grammar.Fragment) -> None:
    name, sep, value = fragment.value.partition(":")
    if not sep:
        raise GrammarError(
            f"header {fragment.value!r} has no ':' separator",
            line=fragment.line,
            col=fragment.col,
        )
    value = value.strip()
    # escaped covers the whole word: in a mixed word like 'a\"b'"c" the
    # single-quoted part is left as written.
    if not fragment.escaped:
        value = grammar.unescape(value)
    _set_header(acc, name.strip(), value)


def _reduce_auth(acc: RequestAccumulator, fragment: grammar.Fragment) -> None:
    encoded = base64.b64encode(fragment.value.encode("utf-8")).decode("ascii")
    _set_header(acc, "Authorization", f"Basic {encoded}")


def _reduce_body(acc: RequestAccumulator, fragment: grammar.Fragment) -> None:
    acc.data.append(_unquoted(fragment))


def _reduce_insecure(acc: RequestAccumulator, fragment: grammar.Fragment) -> None:
    acc.insecure = True


_REDUCERS = {
    grammar.METHOD: _reduce_method,
    grammar.URL: _reduce_url,
    # An explicit location replaces whatever URL came before it.
    grammar.LOCATION: _reduce_url,
    grammar.HEADER: _reduce_header,
    grammar.AUTH: _reduce_auth,
    grammar.BODY: _reduce_body,
    grammar.INSECURE: _reduce_insecure,
}


def reduce(fragments: Iterable[grammar.Fragment]) -> RequestAccumulator:
    """Fold fragments, in order, into a request accumulator."""
    acc = RequestAccumulator()
    for fragment in fragments:
        if fragment.kind == grammar.EOI:
            break
        try:
            reducer = _REDUCERS[fragment.kind]
        except KeyError:
            raise RuntimeError(f"Unexpected fragment kind: {fragment.kind!r}") from None
        reducer(acc, fragment)
    return acc


def default_scheme(url: str) -> str:
    """Prefix a schemeless URL with ``http://``.

    An empty path becomes ``/``, so ``example.com`` turns into
    ``http://example.com/`` and ``example.com?q=1`` into
    ``http://example.com/?q=1``.
    """
    if SCHEME_SEPARATOR in url:
        return url
    match = _AUTHORITY_END_RE.search(url)
    end = match.start() if match else len(url)
    if not url.startswith("/", end):
        url = f"{url[:end]}/{url[end:]}"
    return f"{DEFAULT_SCHEME}{SCHEME_SEPARATOR}{url}"


def _validate_url(url: str) -> None:
    try:
        parsed = parse_url(url)
    except LocationParseError as exc:
        raise InvalidUrl(url, str(exc)) from exc
    if not parsed.scheme or not parsed.host:
        raise InvalidUrl(url, "absolute URL with a host is required")


def normalize(acc: RequestAccumulator) -> ParsedRequest:
    """Apply URL defaulting, default headers and the method upgrade once."""
    if not acc.url:
        raise InvalidUrl("", "URL is required")
    acc.url = default_scheme(acc.url)
    _validate_url(acc.url)

    if acc.data and "Content-Type" not in acc.headers:
        acc.headers["Content-Type"] = FORM_CONTENT_TYPE
    if "Accept" not in acc.headers:
        acc.headers["Accept"] = DEFAULT_ACCEPT
    if acc.data and not acc.explicit_method and acc.method == DEFAULT_METHOD:
        acc.method = BODY_METHOD

    return acc.freeze()


def parse(text: str) -> ParsedRequest:
    """Parse a curl command into a ParsedRequest.

    Handles:
      - Methods (``-X``/``--request``), headers (``-H``/``--header``)
      - Bodies (``-d``/``--data``/``--data-raw``), repeatable and ordered
      - Basic auth (``-u``/``--user``), redirect targets (``-L``/``--location``)
      - TLS verification opt-out (``-k``/``--insecure``)
      - Comments, line continuations and multi-line quoted values

    Raises:
        GrammarError: If the text is not valid curl syntax.
        InvalidMethod, InvalidUrl, InvalidHeaderName, InvalidHeaderValue:
            If a fragment carries an invalid value.
    """
    fragments = grammar.tokenize(text)
    request = normalize(reduce(fragments))
    logger.debug("Parsed %r", request)
    return request


def load(text: str, context: Mapping[str, Any] | None = None) -> ParsedRequest:
    """Render ``{{ var }}`` placeholders against ``context``, then parse.

    Raises:
        TemplateRenderError: If rendering fails; nothing is tokenized then.
    """
    return parse(templating.render(text, context))


def load_request_file(filepath: str) -> str:
    """Read and return the contents of a curl command file.

    Raises:
        FileNotFoundError: If the file does not exist.
        IOError: If the file cannot be read.
    """
    with open(filepath, "r", encoding="utf-8") as fh:
        return fh.read()
