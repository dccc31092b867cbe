import json

import httpx
import pytest

from coachrelay.adapters.webhook.upstream import UpstreamClient, _upstream_http_timeout
from coachrelay.config.settings import settings


@pytest.mark.asyncio
async def test_post_json_sends_json_and_returns_raw_text():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, text="accepted")

    client = UpstreamClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    try:
        status, text = await client.post_json("https://hooks.example.com/a", {"message": "hi"})
    finally:
        await client.aclose()

    assert status == 201
    assert text == "accepted"
    assert seen == {"content_type": "application/json", "body": {"message": "hi"}}


@pytest.mark.asyncio
async def test_post_json_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    client = UpstreamClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(RuntimeError, match="upstream_unreachable"):
        await client.post_json("https://hooks.example.com/a", {})
    await client.aclose()


@pytest.mark.asyncio
async def test_post_json_rejects_non_http_urls():
    client = UpstreamClient(httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))))
    with pytest.raises(ValueError, match="invalid_candidate_scheme"):
        await client.post_json("ftp://hooks.example.com/a", {})
    await client.aclose()


@pytest.mark.asyncio
async def test_client_is_created_lazily_and_closed():
    client = UpstreamClient()
    first = await client._get_client()
    assert await client._get_client() is first
    await client.aclose()
    assert client._client is None


def test_timeout_follows_candidate_setting(monkeypatch):
    monkeypatch.setattr(settings, "candidate_timeout_seconds", 7.5)
    assert _upstream_http_timeout().read == 7.5
    monkeypatch.setattr(settings, "candidate_timeout_seconds", 0)
    assert _upstream_http_timeout().read is None
