"""Tests for CSRF extraction and sending private messages."""

import json

import httpx
import pytest

from bili_relay.adapters.bilibili import extract_csrf, parse_cookies
from bili_relay.core.exceptions import MissingCSRF, ServerError
from bili_relay.models import MyInfo
from bili_relay.relay import PollerState
from bili_relay.utils.config import DEFAULT_USER_AGENT

from conftest import COOKIES, MY_MID, form_of

SEND_PATH = "/web_im/v1/web_im/send_msg"


def test_csrf_from_bili_jct():
    assert extract_csrf("bili_jct=abc123; other=1") == "abc123"


@pytest.mark.parametrize("cookies", [
    "bili_jct=jct; bili_csrf=csrf",
    "bili_csrf=csrf; bili_jct=jct",
])
def test_csrf_prefers_bili_csrf(cookies):
    assert extract_csrf(cookies) == "csrf"


def test_csrf_is_url_decoded():
    assert extract_csrf("bili_jct=a%2Bb") == "a+b"


def test_missing_csrf():
    with pytest.raises(MissingCSRF):
        extract_csrf("SESSDATA=x; DedeUserID=1")


def test_parse_cookies_keeps_value_with_equals():
    assert parse_cookies("a=1; b=x=y")["b"] == "x=y"


@pytest.mark.asyncio
async def test_send_message_form(ctx, relay, remote):
    ctx.my_info = MyInfo(mid=MY_MID)
    remote.add(SEND_PATH, httpx.Response(200, json={"code": 0}))

    assert await relay.bilibili.send_message(42, "你好")

    request = remote.calls_to(SEND_PATH)[0]
    form = form_of(request)
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert request.headers["Cookie"] == COOKIES
    assert request.headers["User-Agent"] == DEFAULT_USER_AGENT
    assert form["msg[sender_uid]"] == str(MY_MID)
    assert form["msg[receiver_id]"] == "42"
    assert form["msg[msg_type]"] == "1"
    assert json.loads(form["msg[content]"]) == {"content": "你好"}
    assert form["csrf"] == form["csrf_token"] == "jct123"
    assert form["msg[dev_id]"]


@pytest.mark.asyncio
async def test_send_message_nonzero_code_is_logged_only(ctx, relay, remote):
    ctx.my_info = MyInfo(mid=MY_MID)
    remote.add(SEND_PATH, httpx.Response(200, json={"code": 21026, "message": "发送失败"}))
    ctx.poller.start()

    assert await relay.bilibili.send_message(42, "hi") is False
    assert ctx.poller.state is PollerState.RUNNING
    ctx.poller.stop()


@pytest.mark.asyncio
async def test_send_message_transport_failure_stops_poller(ctx, relay, remote, no_sleep):
    ctx.my_info = MyInfo(mid=MY_MID)
    remote.add(SEND_PATH, httpx.Response(503))
    ctx.poller.start()

    with pytest.raises(ServerError):
        await relay.bilibili.send_message(42, "hi")
    assert ctx.poller.state is PollerState.STOPPED
    assert len(remote.calls_to(SEND_PATH)) == 4


@pytest.mark.asyncio
async def test_send_message_without_csrf_stops_poller(ctx, relay, remote):
    relay.bilibili.update_cookies("SESSDATA=only")
    ctx.poller.start()

    with pytest.raises(MissingCSRF):
        await relay.bilibili.send_message(42, "hi")
    assert ctx.poller.state is PollerState.STOPPED
    assert remote.calls == []


@pytest.mark.asyncio
async def test_updated_cookies_are_sent(ctx, relay, remote):
    remote.add("/session_svr/v1/session_svr/single_unread", httpx.Response(200, json={"code": 0, "data": {}}))
    relay.bilibili.update_cookies("SESSDATA=new; bili_jct=new")

    await relay.bilibili.get_unread()
    assert remote.calls[0].headers["Cookie"] == "SESSDATA=new; bili_jct=new"
