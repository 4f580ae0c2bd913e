"""Feed fetcher.

单次有界超时的 HTTP GET，加上线性退避的有限重试。
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping

import httpx
from loguru import logger

from src.core.config import settings
from src.modules.headlines.domain.exceptions import (
    FetchCancelledError,
    FetchTimeoutError,
    HeadlineFetchError,
    UpstreamHttpError,
    UpstreamNetworkError,
)

FEED_ACCEPT = (
    "application/rss+xml, application/atom+xml, application/xml;q=0.9, "
    "text/xml;q=0.9, */*;q=0.8"
)
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def accept_language_for(lang: str) -> str:
    """e.g. ``lt`` -> ``lt,en-US;q=0.9,en;q=0.8``."""
    if not lang or lang == "en":
        return "en-US,en;q=0.9"
    return f"{lang},en-US;q=0.9,en;q=0.8"


class FeedFetcher:
    """HTTP 抓取器。

    - ``fetch``: 单次请求；超时 -> FetchTimeoutError，非 2xx -> UpstreamHttpError，
      连接层错误 -> UpstreamNetworkError
    - ``fetch_with_retry``: 最多 ``retries + 1`` 次尝试，第 k 次重试前等待
      ``k * backoff_base_sec``；只重试超时和连接层错误，HTTP 状态错误不重试，
      最后一次的错误原样抛出
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        user_agent: str | None = None,
        retries: int | None = None,
        backoff_base_sec: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._owns_client = client is None
        self.user_agent = user_agent or settings.FETCHER_USER_AGENT
        self.retries = settings.FETCH_RETRIES if retries is None else retries
        self.backoff_base_sec = (
            settings.FETCH_BACKOFF_BASE_SEC
            if backoff_base_sec is None
            else backoff_base_sec
        )
        self._sleep = sleep

    @property
    def client(self) -> httpx.AsyncClient:
        """获取 HTTP 客户端（延迟初始化）。"""
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, max_redirects=5)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": FEED_ACCEPT,
            "Accept-Language": accept_language_for("en"),
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            **(extra or {}),
        }

    async def fetch(
        self,
        url: str,
        timeout_sec: float,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Single GET bounded by ``timeout_sec`` (whole request, not per phase)."""
        try:
            async with asyncio.timeout(timeout_sec):
                response = await self.client.get(
                    url,
                    headers=self._headers(headers),
                    timeout=httpx.Timeout(timeout_sec),
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeoutError(url, timeout_sec) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamNetworkError(f"{type(e).__name__}: {e}", url=url) from e

        if not response.is_success:
            raise UpstreamHttpError(url, response.status_code)
        return response.text

    async def fetch_with_retry(
        self,
        url: str,
        timeout_sec: float,
        headers: Mapping[str, str] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        attempts = self.retries + 1
        last_error: HeadlineFetchError | None = None

        for attempt in range(attempts):
            if attempt > 0:
                delay = attempt * self.backoff_base_sec
                logger.debug(f"Retrying {url} in {delay:g}s ({attempt + 1}/{attempts})")
                await self._sleep(delay)
            if cancel_event is not None and cancel_event.is_set():
                raise FetchCancelledError(f"Fetch cancelled: {url}", url=url)

            try:
                return await self.fetch(url, timeout_sec, headers)
            except HeadlineFetchError as e:
                last_error = e
                if not e.retryable:
                    raise
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{attempts} failed for {url}: {e.message}"
                )

        assert last_error is not None
        raise last_error
