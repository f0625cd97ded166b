"""
固定间隔轮询器

状态转换:
    IDLE    --start()------> RUNNING
    RUNNING --回调抛出异常--> STOPPED
    RUNNING --stop()-------> STOPPED
    STOPPED --start()------> RUNNING

一次失败即永久停止，需要外部显式 start() 才会恢复。
每次 tick 都作为独立任务运行，上一次未完成时下一次照常触发，
tick 之间没有互斥。
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Coroutine

from bili_relay.utils.logger import log, log_error, log_poller_status

PollCallback = Callable[[], Coroutine[Any, Any, None]]


class PollerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class Poller:
    """
    Example:
        poller = Poller(relay.poll_once, interval=30)
        poller.start()
    """

    def __init__(self, callback: PollCallback, interval: float = 30.0):
        self.callback = callback
        self.interval = interval
        self.state = PollerState.IDLE
        self.last_error: Exception | None = None

        self._timer: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self.state is PollerState.RUNNING

    def start(self) -> "Poller":
        """开始轮询 (需要在事件循环中调用)，已在运行时忽略"""
        if self.is_running:
            return self

        self._timer = asyncio.get_running_loop().create_task(self._run())
        self.state = PollerState.RUNNING
        self.last_error = None
        log_poller_status("started", interval=self.interval)
        return self

    def stop(self, error: Exception | None = None) -> "Poller":
        """停止轮询，未运行时忽略

        已经在执行中的 tick 不会被取消。
        """
        if not self.is_running:
            return self

        if self._timer:
            self._timer.cancel()
            self._timer = None
        self.state = PollerState.STOPPED
        if error is not None:
            self.last_error = error
        log_poller_status("failed" if error is not None else "stopped", error=error)
        return self

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            tick = asyncio.create_task(self._tick())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)

    async def _tick(self):
        log.debug("⏱️ 轮询 tick")
        try:
            await self.callback()
        except Exception as e:
            log_error(e, context="轮询")
            self.stop(error=e)

    async def wait_idle(self):
        """等待所有进行中的 tick 结束"""
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)
