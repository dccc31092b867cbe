"""Upstream response normalization."""

from __future__ import annotations

import json
from typing import Any

from coachrelay.config.settings import settings


class EmptyUpstreamBody(ValueError):
    """Upstream answered 2xx with nothing usable."""


def wrap_output(text: str, limit: int | None = None) -> list[dict[str, str]]:
    max_chars = settings.max_raw_output_chars if limit is None else limit
    return [{"output": text[:max_chars]}]


def normalize_upstream_body(raw_text: str) -> Any:
    """Turn one upstream body into the caller-facing result.

    JSON arrays and objects pass through unchanged. JSON scalars and non-JSON
    text are wrapped as ``[{"output": ...}]``. Blank bodies and JSON ``null``
    raise ``EmptyUpstreamBody``.
    """
    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError:
        if raw_text.strip():
            return wrap_output(raw_text)
        raise EmptyUpstreamBody("empty response body") from None

    if isinstance(parsed, (list, dict)):
        return parsed
    if parsed is None:
        raise EmptyUpstreamBody("null response body")
    if isinstance(parsed, str):
        return wrap_output(parsed)
    return wrap_output(json.dumps(parsed))
