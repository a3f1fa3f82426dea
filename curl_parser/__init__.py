"""curl-parser: turn curl commands into structured HTTP requests."""

__version__ = "0.5.0"

from curl_parser.errors import (  # noqa: E402
    CurlParserError,
    GrammarError,
    InvalidHeaderName,
    InvalidHeaderValue,
    InvalidMethod,
    InvalidUrl,
    TemplateRenderError,
    UnsupportedContentType,
)
from curl_parser.parser import ParsedRequest, load, load_request_file, parse  # noqa: E402

__all__ = [
    "CurlParserError",
    "GrammarError",
    "InvalidHeaderName",
    "InvalidHeaderValue",
    "InvalidMethod",
    "InvalidUrl",
    "ParsedRequest",
    "TemplateRenderError",
    "UnsupportedContentType",
    "load",
    "load_request_file",
    "parse",
]
