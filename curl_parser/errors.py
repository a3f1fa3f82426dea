"""Error types raised while turning curl text into a ParsedRequest.

Every error derives from :class:`CurlParserError`, itself a ``ValueError``,
so callers that only care about "the input was bad" can catch one type.
"""

from __future__ import annotations


class CurlParserError(ValueError):
    """Base class for all curl parsing failures."""


class TemplateRenderError(CurlParserError):
    """The template pre-pass failed (undefined variable, bad syntax)."""


class GrammarError(CurlParserError):
    """The text is not valid curl syntax."""

    def __init__(
        self, message: str, *, line: int | None = None, col: int | None = None
    ) -> None:
        self.line = line
        self.col = col
        prefix = ""
        if line is not None and col is not None:
            prefix = f"line {line} col {col}: "
        super().__init__(prefix + message)


class _InvalidField(CurlParserError):
    label = "value"

    def __init__(self, raw: str, reason: str | None = None) -> None:
        self.raw = raw
        message = f"Invalid {self.label}: {raw!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class InvalidMethod(_InvalidField):
    label = "HTTP method"


class InvalidUrl(_InvalidField):
    label = "URL"


class InvalidHeaderName(_InvalidField):
    label = "header name"


class InvalidHeaderValue(_InvalidField):
    label = "header value"


class UnsupportedContentType(CurlParserError):
    """The body cannot be encoded for the request's Content-Type."""

    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(f"Unsupported content type: {content_type!r}")
