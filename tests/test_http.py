"""Tests for the HTTP wrapper: 5xx-only retry and error classification."""

import httpx
import pytest

from bili_relay.adapters.http import HttpClient
from bili_relay.core.exceptions import (
    APIError,
    AuthError,
    ConnectError,
    ParseError,
    RequestTimeout,
    ServerError,
)


def make_client(handler, retries: int = 3) -> tuple[HttpClient, list]:
    calls = []

    def record(request):
        calls.append(request)
        return handler(request, len(calls))

    return HttpClient("https://remote.test", retries=retries, transport=httpx.MockTransport(record)), calls


@pytest.mark.asyncio
async def test_retries_5xx_until_success(no_sleep):
    client, calls = make_client(
        lambda request, n: httpx.Response(502) if n < 3 else httpx.Response(200, json={"ok": True})
    )
    assert await client.get_json("/x") == {"ok": True}
    assert len(calls) == 3
    await client.close()


@pytest.mark.asyncio
async def test_gives_up_after_three_retries(no_sleep):
    client, calls = make_client(lambda request, n: httpx.Response(500, json={"msg": "boom"}))
    with pytest.raises(ServerError) as exc_info:
        await client.get_json("/x")
    assert len(calls) == 4
    assert "boom" in str(exc_info.value)
    await client.close()


@pytest.mark.asyncio
async def test_4xx_is_not_retried():
    client, calls = make_client(lambda request, n: httpx.Response(404, text="missing"))
    with pytest.raises(APIError) as exc_info:
        await client.get_json("/x")
    assert len(calls) == 1
    assert exc_info.value.status_code == 404
    await client.close()


@pytest.mark.asyncio
async def test_401_is_auth_error():
    client, calls = make_client(lambda request, n: httpx.Response(401, json={"message": "账号未登录"}))
    with pytest.raises(AuthError) as exc_info:
        await client.get_json("/x")
    assert "账号未登录" in str(exc_info.value)
    await client.close()


@pytest.mark.asyncio
async def test_connect_error_is_not_retried():
    def refuse(request, n):
        raise httpx.ConnectError("refused", request=request)

    client, calls = make_client(refuse)
    with pytest.raises(ConnectError):
        await client.get_json("/x")
    assert len(calls) == 1
    await client.close()


@pytest.mark.asyncio
async def test_timeout_is_not_retried():
    def slow(request, n):
        raise httpx.ReadTimeout("timed out", request=request)

    client, calls = make_client(slow)
    with pytest.raises(RequestTimeout):
        await client.get_json("/x")
    assert len(calls) == 1
    await client.close()


@pytest.mark.asyncio
async def test_non_json_body_raises_parse_error():
    client, _ = make_client(lambda request, n: httpx.Response(200, text="<html>"))
    with pytest.raises(ParseError):
        await client.get_json("/x")
    await client.close()


@pytest.mark.asyncio
async def test_post_text_returns_raw_body():
    client, calls = make_client(lambda request, n: httpx.Response(200, text="cipher=="))
    assert await client.post_text("/q", content="body") == "cipher=="
    assert calls[0].content == b"body"
    await client.close()


@pytest.mark.asyncio
async def test_async_context_manager_closes_client():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"code": 0}))
    async with HttpClient("https://remote.test", transport=transport) as client:
        assert await client.get_json("/x") == {"code": 0}
    assert client._client.is_closed
