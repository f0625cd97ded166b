"""
固定窗口限流器 - 控制 Token 接口请求频率

每个窗口 (duration 秒) 最多消耗 points 点；超出后进入
block_duration 秒冷却，冷却期间即使窗口已经重置也一律拒绝。
"""

import time
from dataclasses import dataclass, field
from typing import Callable

from bili_relay.core.exceptions import RateLimitExceeded
from bili_relay.utils.logger import log


@dataclass
class RateLimiterState:
    remaining: int
    window_start: float | None = None
    blocked_until: float = 0


@dataclass
class RateLimiter:
    """
    Example:
        limiter = RateLimiter(points=30, duration=60, block_duration=60)
        limiter.consume()  # 超限时抛出 RateLimitExceeded
    """

    points: int = 30
    duration: float = 60.0
    block_duration: float = 60.0
    clock: Callable[[], float] = time.monotonic

    state: RateLimiterState = field(init=False)

    def __post_init__(self):
        self.state = RateLimiterState(remaining=self.points)

    @property
    def remaining(self) -> int:
        self._roll_window(self.clock())
        return self.state.remaining

    def _roll_window(self, now: float):
        state = self.state
        if state.window_start is None or now - state.window_start >= self.duration:
            state.window_start = now
            state.remaining = self.points

    def consume(self, points: int = 1) -> int:
        """消耗点数，返回剩余点数

        Raises:
            RateLimitExceeded: 点数不足或处于冷却期
        """
        now = self.clock()
        state = self.state

        if state.blocked_until > now:
            raise RateLimitExceeded(
                message=f"限流冷却中，剩余 {state.blocked_until - now:.0f}s",
                retry_after=state.blocked_until - now,
            )

        self._roll_window(now)

        if points > state.remaining:
            state.remaining = 0
            state.blocked_until = now + self.block_duration
            log.warning(f"🚦 Token 请求超过 {self.points} 次/{self.duration:g}s，冷却 {self.block_duration:g}s")
            raise RateLimitExceeded(
                message=f"每 {self.duration:g}s 最多 {self.points} 次请求",
                retry_after=self.block_duration,
            )

        state.remaining -= points
        return state.remaining

    def reset(self):
        """清空状态 (主要用于测试)"""
        self.state = RateLimiterState(remaining=self.points)
