"""Round-robin source registry."""

from collections.abc import Sequence

from src.modules.headlines.domain.entities import Source


class SourceRegistry:
    """有序的源集合，按轮询顺序返回源。

    轮询位置保存在实例字段中：每次返回的都是上一次返回源的下一个，
    到末尾回绕。只有一个源时才会连续返回同一个源。
    """

    def __init__(self, sources: Sequence[Source]):
        if not sources:
            raise ValueError("SourceRegistry requires at least one source")
        names = [s.name for s in sources]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate source names: {names}")
        self._sources: tuple[Source, ...] = tuple(sources)
        self._last_index: int | None = None

    @property
    def sources(self) -> tuple[Source, ...]:
        return self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def get_next_source(self) -> Source:
        if self._last_index is None:
            index = 0
        else:
            index = (self._last_index + 1) % len(self._sources)
        self._last_index = index
        return self._sources[index]

    def get_current_source(self) -> Source:
        """最近一次返回的源；尚未轮询时为第一个源。"""
        return self._sources[self._last_index or 0]
