"""Per-key circuit breaker.

A key is blocked ("open") while its last failure is younger than the cool-down
window. The breaker never swallows errors; it only gates future attempts.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from src.core.domain.exceptions import CircuitOpenError


@dataclass
class FailureRecord:
    """最近一次失败记录。"""

    key: str
    last_failure_at: float


class CircuitBreaker:
    """熔断器。

    - 冷却期内：直接抛出 CircuitOpenError，不发起调用
    - 调用成功：清除失败记录
    - 调用失败：记录当前时间并原样抛出异常
    """

    def __init__(
        self,
        cool_down_sec: float,
        *,
        ignored_exceptions: tuple[type[BaseException], ...] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        if cool_down_sec < 0:
            raise ValueError("cool_down_sec must not be negative")
        self.cool_down_sec = cool_down_sec
        self.ignored_exceptions = ignored_exceptions
        self._clock = clock
        self._failures: dict[str, FailureRecord] = {}
        self._pruner: asyncio.Task[None] | None = None

    def retry_in(self, key: str) -> float:
        """距离允许再次调用的剩余秒数（0 表示已关闭）。"""
        record = self._failures.get(key)
        if record is None:
            return 0.0
        remaining = self.cool_down_sec - (self._clock() - record.last_failure_at)
        return max(remaining, 0.0)

    def is_open(self, key: str) -> bool:
        return self.retry_in(key) > 0

    async def execute[T](self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` unless ``key`` is inside its cool-down window."""
        remaining = self.retry_in(key)
        if remaining > 0:
            raise CircuitOpenError(key, remaining)

        try:
            result = await operation()
        except asyncio.CancelledError:
            # 调用方放弃请求不算上游失败
            raise
        except Exception as e:
            if not isinstance(e, self.ignored_exceptions):
                self.record_failure(key)
            raise

        self.record_success(key)
        return result

    def record_failure(self, key: str) -> None:
        self._failures[key] = FailureRecord(key=key, last_failure_at=self._clock())

    def record_success(self, key: str) -> None:
        self._failures.pop(key, None)

    def prune(self) -> int:
        """删除已过冷却期的失败记录。"""
        now = self._clock()
        expired = [
            key
            for key, record in self._failures.items()
            if now - record.last_failure_at >= self.cool_down_sec
        ]
        for key in expired:
            del self._failures[key]
        return len(expired)

    def snapshot(self) -> dict[str, float]:
        """当前处于熔断状态的 key 及剩余冷却秒数。"""
        return {
            key: round(self.retry_in(key), 2)
            for key in self._failures
            if self.is_open(key)
        }

    def start_pruner(self, interval_sec: float) -> None:
        if self._pruner is not None and not self._pruner.done():
            return
        self._pruner = asyncio.create_task(
            self._prune_loop(interval_sec), name="circuit-breaker-pruner"
        )

    async def stop_pruner(self) -> None:
        if self._pruner is None:
            return
        self._pruner.cancel()
        try:
            await self._pruner
        except asyncio.CancelledError:
            pass
        self._pruner = None

    async def _prune_loop(self, interval_sec: float) -> None:
        while True:
            await asyncio.sleep(interval_sec)
            removed = self.prune()
            if removed:
                logger.debug(f"Circuit breaker: pruned {removed} expired failures")
