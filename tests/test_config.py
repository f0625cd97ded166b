"""Tests for environment-driven settings and .env hot reload."""

import os

from bili_relay.utils.config import BotServiceConfig, DEFAULT_USER_AGENT, BilibiliConfig, RelayConfig
from bili_relay.utils.env_loader import EnvLoader


def test_bot_config_from_env(monkeypatch):
    monkeypatch.setenv("WX_APPID", "app")
    monkeypatch.setenv("WX_APPSECRET", "secret")
    monkeypatch.setenv("CACHE_EXPIRY", "60000")

    cfg = BotServiceConfig(_env_file=None)

    assert cfg.app_id == "app"
    assert cfg.app_secret == "secret"
    assert cfg.cache_expiry == 60000
    assert cfg.base_url == "https://chatbot.weixin.qq.com/openapi"


def test_bilibili_defaults(monkeypatch):
    monkeypatch.delenv("B_USER_AGENT", raising=False)
    monkeypatch.delenv("B_API_BASE_URL", raising=False)

    cfg = BilibiliConfig(_env_file=None)

    assert cfg.user_agent == DEFAULT_USER_AGENT
    assert cfg.api_base_url == "https://api.vc.bilibili.com"


def test_relay_defaults():
    cfg = RelayConfig(_env_file=None)

    assert cfg.poll_interval == 30
    assert cfg.rate_limit_points == 30
    assert cfg.rate_limit_duration == 60
    assert cfg.rate_limit_block_duration == 60
    assert cfg.http_retries == 3


def test_env_reload_runs_callbacks(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("B_COOKIES=SESSDATA=new; bili_jct=x\n", encoding="utf-8")
    monkeypatch.delenv("B_COOKIES", raising=False)
    seen = []

    loader = EnvLoader(str(env_file))
    loader.add_callback(lambda: seen.append(os.getenv("B_COOKIES")))

    assert loader.reload() is True
    assert seen == ["SESSDATA=new; bili_jct=x"]


def test_env_reload_missing_file(tmp_path):
    loader = EnvLoader(str(tmp_path / "missing.env"))
    assert loader.reload() is False
