"""
弹性机制 - 重试、退避

提供:
- retry_with_backoff: 带指数退避的重试装饰器
- BackoffStrategy: 退避策略计算

只有标记为 retryable 的 RelayError (5xx) 会被重试，
4xx、超时、连接错误立即抛出。
"""

import asyncio
import random
from functools import wraps
from typing import Callable, TypeVar

from bili_relay.core.exceptions import RelayError, ServerError
from bili_relay.utils.logger import log_retry

T = TypeVar("T")


# ==================== 退避策略 ====================

class BackoffStrategy:
    """指数退避策略 (带 jitter)"""

    def __init__(
        self,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def get_delay(self, attempt: int) -> float:
        """计算第 N 次重试的等待时间"""
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # 添加 ±25% 的随机抖动
            delay = delay * (0.75 + random.random() * 0.5)

        return delay


# ==================== 重试装饰器 ====================

def retry_with_backoff(
    max_retries: int | Callable[..., int] = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    retryable_exceptions: tuple = (ServerError,),
    on_retry: Callable[[Exception, int, float], None] | None = None,
):
    """
    带指数退避的异步重试装饰器

    Args:
        max_retries: 最大重试次数，也可以是 ``lambda self: ...`` 从实例读取
        base_delay: 基础延迟 (秒)
        max_delay: 最大延迟 (秒)
        retryable_exceptions: 可重试的异常类型
        on_retry: 重试时的回调 (exception, attempt, delay)

    Example:
        @retry_with_backoff(max_retries=3)
        async def fetch_data():
            ...
    """
    backoff = BackoffStrategy(base_delay, max_delay)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            retries = max_retries(*args[:1]) if callable(max_retries) else max_retries
            last_exception = None

            for attempt in range(retries + 1):
                try:
                    return await func(*args, **kwargs)

                except retryable_exceptions as e:
                    last_exception = e

                    if isinstance(e, RelayError) and not e.retryable:
                        raise

                    # 最后一次尝试，不再重试
                    if attempt >= retries:
                        break

                    delay = backoff.get_delay(attempt)
                    if isinstance(e, RelayError) and e.retry_after > 0:
                        delay = max(delay, e.retry_after)

                    if on_retry:
                        on_retry(e, attempt + 1, delay)
                    else:
                        log_retry(e, attempt + 1, retries, delay, context=func.__name__)

                    await asyncio.sleep(delay)

            # 所有重试都失败
            raise last_exception

        return wrapper
    return decorator
