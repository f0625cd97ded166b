"""Shared fixtures: settings with a valid key and a fake remote behind httpx.MockTransport."""

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from bili_relay.core.context import AppContext
from bili_relay.core.crypto import CryptoCodec
from bili_relay.main import build_relay
from bili_relay.utils.config import BilibiliConfig, BotServiceConfig, RelayConfig, Settings

AES_KEY_BYTES = bytes(range(32))
ENCODING_AES_KEY = base64.b64encode(AES_KEY_BYTES).decode().rstrip("=")
APP_ID = "test-app"
APP_SECRET = "test-secret"
COOKIES = "SESSDATA=sess; bili_jct=jct123; DedeUserID=1001"
MY_MID = 1001


def make_settings(**relay_overrides) -> Settings:
    relay = {"poll_interval": 3600, "http_retries": 3}
    relay.update(relay_overrides)
    return Settings(
        bot=BotServiceConfig(
            WX_APPID=APP_ID,
            WX_APPSECRET=APP_SECRET,
            ENCODING_AES_KEY=ENCODING_AES_KEY,
            WX_API_BASE_URL="https://bot.test/openapi",
            CACHE_EXPIRY=7200000,
        ),
        bilibili=BilibiliConfig(
            B_API_BASE_URL="https://vc.bili.test",
            B_LIVE_API_BASE_URL="https://live.bili.test",
            B_MAIN_API_BASE_URL="https://api.bili.test",
            B_COOKIES=COOKIES,
        ),
        relay=RelayConfig(**relay),
    )


class FakeRemote:
    """Routes requests by path; each route is a response, a list of responses or a handler."""

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.calls: list[httpx.Request] = []

    def add(self, path: str, response):
        self.routes[path] = response

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"code": -404, "msg": "not found"})
        if isinstance(route, list):
            return route.pop(0) if len(route) > 1 else route[0]
        if callable(route):
            return route(request)
        return route

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def form_of(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def bot_answer(codec: CryptoCodec, payload: dict) -> httpx.Response:
    return httpx.Response(200, text=codec.encrypt(json.dumps(payload, ensure_ascii=False)))


@pytest.fixture
def codec() -> CryptoCodec:
    return CryptoCodec(ENCODING_AES_KEY)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def ctx() -> AppContext:
    return AppContext(make_settings())


@pytest.fixture
def relay(ctx, remote):
    return build_relay(ctx, transport=remote.transport)


@pytest.fixture
def no_sleep(monkeypatch):
    """Retry backoff without waiting."""
    from bili_relay.core import resilience

    monkeypatch.setattr(resilience.BackoffStrategy, "get_delay", lambda self, attempt: 0.0)
