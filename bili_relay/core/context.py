"""
AppContext - 应用程序上下文

持有进程内唯一的共享状态 (Token 缓存、限流器、账号信息、轮询器、统计)，
显式传给各组件的构造函数。这些状态只在同一个事件循环中读写，不需要加锁。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from bili_relay.core.ratelimit import RateLimiter
from bili_relay.models.bot import TokenCache
from bili_relay.utils.config import Settings

if TYPE_CHECKING:
    from bili_relay.models.bilibili import MyInfo
    from bili_relay.relay.poller import Poller


@dataclass
class RelayStats:
    """运行时统计"""

    start_time: datetime = field(default_factory=datetime.now)
    messages_relayed: int = 0
    replies_sent: int = 0
    errors_count: int = 0
    last_tick_time: Optional[datetime] = None

    @property
    def uptime_seconds(self) -> float:
        """运行时间（秒）"""
        return (datetime.now() - self.start_time).total_seconds()

    @property
    def uptime_formatted(self) -> str:
        """格式化的运行时间"""
        seconds = int(self.uptime_seconds)
        days, remainder = divmod(seconds, 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, secs = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}天")
        if hours > 0:
            parts.append(f"{hours}小时")
        if minutes > 0:
            parts.append(f"{minutes}分钟")
        if secs > 0 or not parts:
            parts.append(f"{secs}秒")

        return "".join(parts)

    def record_tick(self):
        self.last_tick_time = datetime.now()

    def record_message(self):
        """记录一条转发给机器人的消息"""
        self.messages_relayed += 1

    def record_reply(self):
        self.replies_sent += 1

    def record_error(self):
        """记录一次错误"""
        self.errors_count += 1

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "start_time": self.start_time.isoformat(),
            "uptime": self.uptime_formatted,
            "uptime_seconds": self.uptime_seconds,
            "messages_relayed": self.messages_relayed,
            "replies_sent": self.replies_sent,
            "errors_count": self.errors_count,
            "last_tick_time": self.last_tick_time.isoformat() if self.last_tick_time else None,
        }


class AppContext:
    """应用程序上下文"""

    def __init__(self, settings: Settings, rate_limiter: RateLimiter | None = None):
        self.settings = settings
        self.token_cache = TokenCache()
        self.rate_limiter = rate_limiter or RateLimiter(
            points=settings.relay.rate_limit_points,
            duration=settings.relay.rate_limit_duration,
            block_duration=settings.relay.rate_limit_block_duration,
        )
        self.my_info: Optional[MyInfo] = None
        self.poller: Optional[Poller] = None
        self.stats = RelayStats()
        self._last_error: Exception | None = None

    def stop_polling(self, error: Exception | None = None) -> None:
        """停止轮询 (各组件遇到致命错误时调用)

        同一个异常逐层重新抛出时只计一次错误。
        """
        if error is not None and error is not self._last_error:
            self._last_error = error
            self.stats.record_error()
        if self.poller is not None:
            self.poller.stop(error=error)

    @property
    def is_polling(self) -> bool:
        return self.poller is not None and self.poller.is_running

    def get_status_summary(self) -> dict:
        """获取状态摘要"""
        return {
            "polling": self.is_polling,
            "poller_state": self.poller.state.value if self.poller else None,
            "account": self.my_info.uname if self.my_info else None,
            "token_cached": bool(self.token_cache.value),
            "rate_limit_remaining": self.rate_limiter.remaining,
            "stats": self.stats.to_dict(),
        }
