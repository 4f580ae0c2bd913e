"""进程内 TTL 缓存。

每个实例在构造时固定 TTL；过期条目在读取时惰性删除，
并由后台清扫任务周期性删除（防止从不再读取的 key 无限增长）。
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger


@dataclass
class CacheEntry[T]:
    """缓存条目。"""

    value: T
    created_at: float


class TTLCache[K, V]:
    """Key/value store with per-entry expiry.

    All mutations are synchronous, so within one event loop a sweep can never
    interleave with a foreground ``get``/``set``.
    """

    def __init__(
        self,
        ttl_sec: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_sec <= 0:
            raise ValueError("ttl_sec must be positive")
        self.ttl_sec = ttl_sec
        self.name = name
        self._clock = clock
        self._store: dict[K, CacheEntry[V]] = {}
        self._sweeper: asyncio.Task[None] | None = None

    def _is_valid(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.created_at < self.ttl_sec

    def set(self, key: K, value: V) -> None:
        self._store[key] = CacheEntry(value=value, created_at=self._clock())

    def get(self, key: K) -> V | None:
        """Return the cached value, or None on miss / expiry."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if not self._is_valid(entry, self._clock()):
            del self._store[key]
            return None
        return entry.value

    def delete(self, key: K) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def sweep(self) -> int:
        """删除所有过期条目，返回删除数量。"""
        now = self._clock()
        expired = [k for k, e in self._store.items() if not self._is_valid(e, now)]
        for key in expired:
            del self._store[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        entry = self._store.get(key)  # type: ignore[call-overload]
        return entry is not None and self._is_valid(entry, self._clock())

    # ------------------------------------------------------------------
    # 后台清扫
    # ------------------------------------------------------------------

    def start_sweeper(self, interval_sec: float) -> None:
        """在当前事件循环上启动周期清扫任务。"""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(
            self._sweep_loop(interval_sec), name=f"{self.name}-sweeper"
        )

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self, interval_sec: float) -> None:
        while True:
            await asyncio.sleep(interval_sec)
            removed = self.sweep()
            if removed:
                logger.debug(f"{self.name}: swept {removed} expired entries")
