"""Template pre-pass: render ``{{ var }}`` placeholders before parsing."""

from __future__ import annotations

import functools
import logging
from typing import Any, Mapping

import jinja2

from curl_parser.errors import TemplateRenderError

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=None)
def get_environment() -> jinja2.Environment:
    """Return the shared, read-only template environment.

    Created on first use; undefined variables are errors rather than
    empty strings.
    """
    return jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


def render(text: str, context: Mapping[str, Any] | None = None) -> str:
    """Render ``text`` against ``context``.

    A ``None`` context means there is nothing to substitute, and the text is
    returned unchanged.

    Raises:
        TemplateRenderError: On an undefined variable or bad template syntax.
    """
    if context is None:
        return text
    env = get_environment()
    try:
        rendered = env.from_string(text).render(dict(context))
    except jinja2.TemplateError as exc:
        raise TemplateRenderError(f"Failed to render request template: {exc}") from exc
    logger.debug("Rendered template with %d context keys", len(context))
    return rendered
