"""标题轮换引擎。

为一次 (category, country) 请求返回一个未用过的标题：
1. 按轮询顺序选源，跳过本次请求已尝试过的源
2. 缓存命中且仍有未用标题 -> 随机取一个，标记已用
3. 否则经熔断器抓取该源（按顺序尝试各抓取方式），写入缓存后同 2
4. 源失败（网络错误 / 解析错误 / 熔断）-> 尝试下一个源
5. 所有源都无结果 -> 清空标题缓存和已用集合，抛出 AllSourcesExhaustedError
"""

import asyncio
import random
from typing import Any

from loguru import logger

from src.core.config import settings
from src.core.domain.exceptions import CircuitOpenError, DomainException
from src.core.infrastructure.cache import TTLCache
from src.core.infrastructure.circuit_breaker import CircuitBreaker
from src.core.infrastructure.logging import BusinessEvents
from src.modules.headlines.domain.catalog import SourceCatalog, SourceQuery
from src.modules.headlines.domain.entities import FeedFormat, Headline, Source
from src.modules.headlines.domain.exceptions import (
    AllSourcesExhaustedError,
    FeedParseError,
    FetchCancelledError,
)
from src.modules.headlines.domain.normalizer import (
    dedupe_by_title,
    is_usable_headline,
    normalize,
)
from src.modules.headlines.domain.registry import SourceRegistry
from src.modules.headlines.domain.used_headlines import UsedHeadlineSet
from src.modules.headlines.infrastructure.fetcher import (
    FEED_ACCEPT,
    HTML_ACCEPT,
    FeedFetcher,
    accept_language_for,
)
from src.modules.headlines.infrastructure.parsers import parse_feed


class HeadlineRotationEngine:
    """Owns every piece of rotation state: registries, cache, breaker, used set.

    Requests are serialised by one lock so two callers can never double-mark a
    headline or race a reset; each fetch still honours its own timeout and
    caller cancellation.
    """

    def __init__(
        self,
        catalog: SourceCatalog,
        fetcher: FeedFetcher,
        *,
        headline_cache: TTLCache[str, list[Headline]] | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        used_headlines: UsedHeadlineSet | None = None,
        headlines_per_source: int | None = None,
        rng: random.Random | None = None,
    ):
        self.catalog = catalog
        self.fetcher = fetcher
        if headline_cache is None:
            headline_cache = TTLCache(
                settings.HEADLINE_CACHE_TTL_SEC, name="headline-cache"
            )
        if circuit_breaker is None:
            circuit_breaker = CircuitBreaker(
                settings.CIRCUIT_COOL_DOWN_SEC,
                ignored_exceptions=(FetchCancelledError,),
            )
        if used_headlines is None:
            used_headlines = UsedHeadlineSet(settings.USED_HEADLINES_MAX)
        self.headline_cache: TTLCache[str, list[Headline]] = headline_cache
        self.circuit_breaker = circuit_breaker
        self.used_headlines = used_headlines
        self.headlines_per_source = (
            headlines_per_source or settings.HEADLINES_PER_SOURCE
        )
        self._rng = rng or random.Random()
        self._registries: dict[str, SourceRegistry] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_headline(
        self,
        category: str | None,
        country: str | None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Headline:
        """Return a fresh headline or raise AllSourcesExhaustedError."""
        query = SourceQuery.create(category, country)
        async with self._lock:
            return await self._rotate(query, cancel_event)

    async def warm_up(self, category: str | None, country: str | None) -> int:
        """并发预取该查询下所有未缓存的源，返回成功的源数量。"""
        query = SourceQuery.create(category, country)
        async with self._lock:
            registry = self._registry_for(query)
            pending = [
                source
                for source in registry.sources
                if self.headline_cache.get(self._cache_key(query, source)) is None
            ]
            results = await asyncio.gather(
                *(self._load_through_breaker(source, query) for source in pending),
                return_exceptions=True,
            )
            loaded = 0
            for source, result in zip(pending, results, strict=True):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, BaseException):
                    logger.info(f"Warm-up skipped {source.name}: {result}")
                    continue
                self.headline_cache.set(self._cache_key(query, source), result)
                loaded += 1
        return loaded

    def reset(self) -> None:
        """清空标题缓存与已用集合（全量重置）。"""
        self.headline_cache.clear()
        self.used_headlines.clear()

    def current_source(self, category: str | None, country: str | None) -> str | None:
        query = SourceQuery.create(category, country)
        registry = self._registries.get(query.key)
        return registry.get_current_source().name if registry else None

    def stats(self) -> dict[str, Any]:
        return {
            "headline_cache": len(self.headline_cache),
            "used_headlines": len(self.used_headlines),
            "open_circuits": self.circuit_breaker.snapshot(),
        }

    def start(self, interval_sec: float | None = None) -> None:
        """启动周期清扫（缓存过期条目、过期熔断记录）。"""
        interval = interval_sec or settings.CACHE_SWEEP_INTERVAL_SEC
        self.headline_cache.start_sweeper(interval)
        self.circuit_breaker.start_pruner(interval)

    async def stop(self) -> None:
        await self.headline_cache.stop_sweeper()
        await self.circuit_breaker.stop_pruner()
        await self.fetcher.aclose()

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def _registry_for(self, query: SourceQuery) -> SourceRegistry:
        registry = self._registries.get(query.key)
        if registry is None:
            registry = SourceRegistry(self.catalog.sources_for(query))
            self._registries[query.key] = registry
        return registry

    @staticmethod
    def _cache_key(query: SourceQuery, source: Source) -> str:
        return f"{query.key}:{source.name}"

    async def _rotate(
        self, query: SourceQuery, cancel_event: asyncio.Event | None
    ) -> Headline:
        try:
            registry = self._registry_for(query)
        except ValueError as e:
            logger.error(f"No sources configured for {query.key}: {e}")
            raise AllSourcesExhaustedError(query.category, query.country, []) from e

        tried: list[str] = []
        # 每个源最多一次；轮询 len(registry) 次即可覆盖全部源
        for _ in range(len(registry)):
            if cancel_event is not None and cancel_event.is_set():
                raise FetchCancelledError("Headline request cancelled")
            source = registry.get_next_source()
            if source.name in tried:
                continue
            tried.append(source.name)
            cache_key = self._cache_key(query, source)

            cached = self.headline_cache.get(cache_key)
            if cached is not None:
                headline = self._pick_unused(cached)
                if headline is not None:
                    self._served(headline, query, from_cache=True)
                    return headline

            try:
                headlines = await self._load_through_breaker(source, query, cancel_event)
            except FetchCancelledError:
                raise
            except CircuitOpenError as e:
                logger.info(f"Skipping {source.name}: {e.message}")
                BusinessEvents.circuit_open(source=source.name, retry_in_sec=e.retry_in_sec)
                continue
            except DomainException as e:
                logger.warning(f"Source {source.name} failed: {e.message}")
                BusinessEvents.source_fetch_failed(source=source.name, error=e.message)
                continue
            except Exception as e:
                logger.exception(f"Unexpected error from source {source.name}: {e}")
                BusinessEvents.source_fetch_failed(source=source.name, error=str(e))
                continue

            self.headline_cache.set(cache_key, headlines)
            headline = self._pick_unused(headlines)
            if headline is not None:
                self._served(headline, query, from_cache=False)
                return headline
            logger.info(f"All headlines from {source.name} already used")

        self.reset()
        BusinessEvents.rotation_exhausted(
            category=query.category, country=query.country, tried=tried
        )
        raise AllSourcesExhaustedError(query.category, query.country, tried)

    def _pick_unused(self, headlines: list[Headline]) -> Headline | None:
        available = [h for h in headlines if h.title not in self.used_headlines]
        if not available:
            return None
        headline = self._rng.choice(available)
        self.used_headlines.add(headline.title)
        return headline

    def _served(self, headline: Headline, query: SourceQuery, *, from_cache: bool) -> None:
        logger.info(f"Serving headline from {headline.source} ({query.key})")
        BusinessEvents.headline_served(
            source=headline.source,
            category=query.category,
            country=query.country,
            from_cache=from_cache,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _load_through_breaker(
        self,
        source: Source,
        query: SourceQuery,
        cancel_event: asyncio.Event | None = None,
    ) -> list[Headline]:
        return await self.circuit_breaker.execute(
            source.name, lambda: self._load_source(source, query, cancel_event)
        )

    async def _load_source(
        self,
        source: Source,
        query: SourceQuery,
        cancel_event: asyncio.Event | None = None,
    ) -> list[Headline]:
        """依次尝试源的各抓取方式，直到得到至少一个标题。"""
        last_error: DomainException | None = None

        for method in source.methods:
            headers = {
                "Accept": HTML_ACCEPT if method.format is FeedFormat.HTML else FEED_ACCEPT,
                "Accept-Language": accept_language_for(query.lang),
            }
            try:
                content = await self.fetcher.fetch_with_retry(
                    method.url,
                    source.timeout_sec,
                    headers,
                    cancel_event=cancel_event,
                )
                raw_items = parse_feed(
                    content,
                    method.format,
                    base_url=method.url,
                    selectors=method.selectors,
                )
            except FetchCancelledError:
                raise
            except DomainException as e:
                logger.warning(f"{source.name}: {method.url} failed: {e.message}")
                last_error = e
                continue

            headlines = [
                headline
                for headline in dedupe_by_title(normalize(raw_items, source.name))
                if is_usable_headline(headline.title)
            ]
            if headlines:
                logger.debug(f"{source.name}: {len(headlines)} headlines from {method.url}")
                return headlines[: self.headlines_per_source]
            last_error = FeedParseError(f"No usable headlines in {method.url}")

        raise last_error or FeedParseError(f"No fetch methods for {source.name}")
