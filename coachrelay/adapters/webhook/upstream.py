"""
Outbound HTTP to upstream AI webhooks. One client per application, created
lazily and closed on shutdown.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from urllib.parse import urlparse

import httpx

from coachrelay.config.settings import settings
from coachrelay.util.logger import logger


def _upstream_http_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=max(10, int(settings.upstream_max_connections)),
        max_keepalive_connections=max(5, int(settings.upstream_max_keepalive_connections)),
    )


def _upstream_http_timeout() -> httpx.Timeout:
    timeout = float(settings.candidate_timeout_seconds)
    if timeout <= 0:
        return httpx.Timeout(None)
    return httpx.Timeout(connect=timeout, read=timeout, write=timeout, pool=timeout)


def _validate_candidate_url(url: str) -> str:
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("invalid_candidate_scheme")
    if not parsed.netloc:
        raise ValueError("invalid_candidate_host")
    return candidate


class UpstreamClient:
    """Owns the shared ``httpx.AsyncClient`` used for candidate POSTs."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client
        self._lock: asyncio.Lock | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    http2=False,
                    timeout=_upstream_http_timeout(),
                    limits=_upstream_http_limits(),
                )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def post_json(self, url: str, payload: dict[str, Any]) -> tuple[int, str]:
        """POST ``payload`` and return ``(status, body_text)``; the body is read once."""
        target = _validate_candidate_url(url)
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        logger.debug("post_json start url=%s payload_bytes=%d", target, len(body))
        client = await self._get_client()
        try:
            response = await client.post(
                url=target,
                content=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            detail = (str(exc) or "").strip() or type(exc).__name__
            logger.warning("post_json http_error url=%s error=%s", target, detail)
            raise RuntimeError(f"upstream_unreachable: {detail}") from exc
        logger.debug("post_json done url=%s status=%s", target, response.status_code)
        return response.status_code, response.content.decode("utf-8", errors="replace")
