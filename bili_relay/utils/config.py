"""Configuration management using pydantic-settings"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/58.0.3029.110 Safari/537.36"
)


class BotServiceConfig(BaseSettings):
    """对话机器人开放平台配置"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    app_id: str = Field(default="", alias="WX_APPID")
    app_secret: str = Field(default="", alias="WX_APPSECRET")
    encoding_aes_key: str = Field(default="", alias="ENCODING_AES_KEY", description="43 位 base64 密钥")
    base_url: str = Field(default="https://chatbot.weixin.qq.com/openapi", alias="WX_API_BASE_URL")

    # Token 有效期 (毫秒)
    cache_expiry: int = Field(default=7200000, alias="CACHE_EXPIRY")


class BilibiliConfig(BaseSettings):
    """B 站接口配置"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    api_base_url: str = Field(default="https://api.vc.bilibili.com", alias="B_API_BASE_URL")
    live_api_base_url: str = Field(default="https://api.live.bilibili.com", alias="B_LIVE_API_BASE_URL")
    main_api_base_url: str = Field(default="https://api.bilibili.com", alias="B_MAIN_API_BASE_URL")
    cookies: str = Field(default="", alias="B_COOKIES", description="浏览器 Cookie 原文")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="B_USER_AGENT")


class RelayConfig(BaseSettings):
    """轮询与限流设置"""

    model_config = SettingsConfigDict(env_prefix="RELAY_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    poll_interval: float = Field(default=30.0, description="轮询间隔(秒)")

    rate_limit_points: int = Field(default=30, description="每个窗口允许的 Token 请求数")
    rate_limit_duration: float = Field(default=60.0, description="限流窗口(秒)")
    rate_limit_block_duration: float = Field(default=60.0, description="超限后的冷却时间(秒)")

    http_timeout: float = Field(default=10.0, description="请求超时(秒)")
    http_retries: int = Field(default=3, description="5xx 重试次数")


class Settings(BaseSettings):
    """Main settings container"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bot: BotServiceConfig = Field(default_factory=BotServiceConfig)
    bilibili: BilibiliConfig = Field(default_factory=BilibiliConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="日志级别: DEBUG/INFO/WARNING/ERROR")
    log_file: str | None = Field(default=None, alias="LOG_FILE")


def load_settings() -> Settings:
    """Load settings from environment and .env file"""
    return Settings()
