"""Reusable handler shapes.

Every tool body is built from one of three higher-order factories, all
wrapped by ``safe_invoke``:

- ``list_and_summarize``: fetch a collection, render ``Found N ...`` or a
  fixed empty message.
- ``fetch_and_detail``: fetch one object, render a multi-field report or a
  fixed not-found message.
- ``fetch_and_transform``: fetch, normalise the payload, then serialise.

``safe_invoke`` is the handler boundary: any exception raised by the proxy
or by a malformed payload becomes a successful envelope whose text is
``Error: {message}``. Handlers never raise.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar
from urllib.parse import urlencode

import orjson
from pydantic import BaseModel

from .core import Handler, ResultEnvelope
from .proxy import RequestProxy

logger = logging.getLogger("gmailmcp.handlers")

P = TypeVar("P", bound=BaseModel)
PathFn = Callable[[P], str]
Body = Callable[[P], Awaitable[str | ResultEnvelope]]


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def endpoint(path: str, **query: object) -> str:
    """Build ``path?k=v&...`` with percent-encoding; None values are dropped.

    Example:
        >>> endpoint("/gmail/search", q="from:a@b.com is:unread")
        '/gmail/search?q=from%3Aa%40b.com+is%3Aunread'
    """
    pairs = {k: v for k, v in query.items() if v is not None}
    return f"{path}?{urlencode(pairs)}" if pairs else path


def to_json(value: Any) -> str:
    """Pretty JSON (2-space indent) for text output."""
    return orjson.dumps(value, option=orjson.OPT_INDENT_2).decode()


def field_line(label: str, value: object, *, indent: str = "") -> str:
    """``{indent}{label}: {value}\\n``, or an empty string when value is None or empty."""
    if value is None or value == "":
        return ""
    return f"{indent}{label}: {value}\n"


def error_text(exc: BaseException, hint: str | None = None) -> str:
    text = f"Error: {exc}"
    return f"{text}\n\n{hint}" if hint else text


# ─────────────────────────────────────────────────────────────────────────────
# Handler Boundary
# ─────────────────────────────────────────────────────────────────────────────

def safe_invoke(body: Body[P], *, hint: str | None = None) -> Handler:
    """Wrap a handler body so every failure renders as ``Error: ...`` text.

    Args:
        body: Async callable receiving validated params, returning text or an envelope
        hint: Optional guidance appended after a blank line on failure
    """
    @functools.wraps(body)
    async def handler(params: P) -> ResultEnvelope:
        try:
            result = await body(params)
        except Exception as e:
            logger.warning("handler %s failed: %s", getattr(body, "__name__", "?"), e)
            return ResultEnvelope.text(error_text(e, hint))
        return result if isinstance(result, ResultEnvelope) else ResultEnvelope.text(result)

    return handler


# ─────────────────────────────────────────────────────────────────────────────
# Shapes
# ─────────────────────────────────────────────────────────────────────────────

def list_and_summarize(
    proxy: RequestProxy,
    path: PathFn[P],
    *,
    key: str,
    empty: str,
    render: Callable[[dict[str, Any]], str],
    noun: str | None = None,
    header: str | None = None,
    separator: str = "\n",
) -> Handler:
    """Fetch a collection under ``payload[key]`` and summarise it.

    Output is ``Found {N} {noun}:\\n\\n{items}`` (or ``{header}\\n\\n{items}``
    when a header is given); an empty or absent collection yields ``empty``.
    """
    if noun is None and header is None:
        raise ValueError("list_and_summarize needs a noun or a header")

    async def body(params: P) -> str:
        payload = await proxy.request(path(params))
        items: Sequence[dict[str, Any]] = (payload or {}).get(key) or []
        if not items:
            return empty
        rendered = separator.join(render(item) for item in items)
        title = header if header is not None else f"Found {len(items)} {noun}:"
        return f"{title}\n\n{rendered}"

    body.__name__ = f"list:{key}"
    return safe_invoke(body)


def fetch_and_detail(
    proxy: RequestProxy,
    path: PathFn[P],
    *,
    render: Callable[[dict[str, Any]], str],
    not_found: str,
) -> Handler:
    """Fetch one object and render a detail report; falsy payload yields ``not_found``."""
    async def body(params: P) -> str:
        payload = await proxy.request(path(params))
        if not payload:
            return not_found
        return render(payload)

    body.__name__ = "detail"
    return safe_invoke(body)


def fetch_and_transform(
    proxy: RequestProxy,
    path: PathFn[P],
    *,
    transform: Callable[[dict[str, Any]], Any],
    render: Callable[[dict[str, Any], Any], str],
    empty: str,
) -> Handler:
    """Fetch, normalise with ``transform``, then ``render(payload, normalised)``.

    A falsy payload or falsy transform result yields ``empty``.
    """
    async def body(params: P) -> str:
        payload = await proxy.request(path(params))
        if not payload:
            return empty
        normalised = transform(payload)
        if not normalised:
            return empty
        return render(payload, normalised)

    body.__name__ = "transform"
    return safe_invoke(body)
