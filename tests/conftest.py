"""
pytest 配置和共享 fixtures。

测试分层：
- unit/: 单元测试（不访问网络，上游全部用 httpx.MockTransport / mock 替代）

使用方法：
    # 运行所有测试
    uv run pytest

    # 只运行单元测试
    uv run pytest tests/unit/

    # 运行带覆盖率
    uv run pytest --cov=src --cov-report=html
"""

from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from src.core.infrastructure.cache import TTLCache
from src.core.infrastructure.circuit_breaker import CircuitBreaker
from src.modules.haiku.application.haiku_service import HaikuService
from src.modules.headlines.application.rotation_engine import HeadlineRotationEngine
from src.modules.headlines.domain.catalog import SourceQuery
from src.modules.headlines.domain.entities import FeedFormat, FetchMethod, Source
from src.modules.headlines.domain.exceptions import FetchCancelledError
from src.modules.headlines.domain.used_headlines import UsedHeadlineSet
from src.modules.headlines.infrastructure.fetcher import FeedFetcher


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ============================================
# 时间控制 Fixtures
# ============================================


class FakeClock:
    """可手动推进的单调时钟。"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================
# Feed 样例
# ============================================


def rss_feed(*titles: str, link_base: str = "https://example.com/news") -> str:
    """生成一个 RSS 2.0 文档。"""
    items = "".join(
        f"<item><title>{title}</title><link>{link_base}/{i}</link></item>"
        for i, title in enumerate(titles)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel><title>Test</title>'
        f"{items}</channel></rss>"
    )


def atom_feed(*titles: str, link_base: str = "https://example.org/a") -> str:
    """生成一个 Atom 文档。"""
    entries = "".join(
        f'<entry><title>{title}</title><id>urn:{i}</id>'
        f'<link rel="alternate" href="{link_base}/{i}"/></entry>'
        for i, title in enumerate(titles)
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom"><title>Test</title>'
        f"{entries}</feed>"
    )


def rss_source(name: str, url: str | None = None, timeout_sec: float = 5.0) -> Source:
    return Source(
        name=name,
        methods=(FetchMethod(url=url or f"https://{name.lower()}.test/rss", format=FeedFormat.RSS),),
        timeout_sec=timeout_sec,
    )


class StaticCatalog:
    """对所有查询返回同一组源。"""

    def __init__(self, sources: list[Source]):
        self.sources = sources

    def sources_for(self, query: SourceQuery) -> list[Source]:
        return list(self.sources)


class RoutedTransport:
    """按 URL 返回预设响应的 MockTransport，并记录请求次数。

    值可以是：字符串（200 响应体）、整数（状态码）、异常实例（抛出）。
    """

    def __init__(self, routes: dict[str, str | int | Exception]):
        self.routes = routes
        self.calls: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        result = self.routes.get(url, 404)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, int):
            return httpx.Response(result, request=request)
        return httpx.Response(200, text=result, request=request)

    def count(self, url: str) -> int:
        return self.calls.count(url)


@pytest.fixture
def make_engine(clock: FakeClock) -> Callable[..., tuple[HeadlineRotationEngine, RoutedTransport]]:
    """构建使用假时钟、MockTransport 且退避不等待的引擎。"""

    def _make(
        sources: list[Source],
        routes: dict[str, str | int | Exception],
        *,
        ttl_sec: float = 300,
        cool_down_sec: float = 30,
        used_max: int = 100,
        retries: int = 2,
    ) -> tuple[HeadlineRotationEngine, RoutedTransport]:
        transport = RoutedTransport(routes)
        fetcher = FeedFetcher(
            httpx.AsyncClient(transport=httpx.MockTransport(transport.handler)),
            retries=retries,
            backoff_base_sec=1.0,
            sleep=AsyncMock(),
        )
        engine = HeadlineRotationEngine(
            StaticCatalog(sources),
            fetcher,
            headline_cache=TTLCache(ttl_sec, name="test-headlines", clock=clock),
            circuit_breaker=CircuitBreaker(
                cool_down_sec, ignored_exceptions=(FetchCancelledError,), clock=clock
            ),
            used_headlines=UsedHeadlineSet(used_max),
        )
        return engine, transport

    return _make


# ============================================
# LLM Fixtures
# ============================================


def chat_completion(content: str | None) -> MagicMock:
    return MagicMock(choices=[MagicMock(message=MagicMock(content=content))])


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """Mock OpenAI 客户端。"""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=chat_completion(
            "Quiet river bends\nmorning papers fold the news\nherons wait for spring"
        )
    )
    return client


# ============================================
# HTTP Fixtures
# ============================================


@pytest.fixture
async def async_client(
    make_engine, mock_openai_client: MagicMock
) -> AsyncGenerator[AsyncClient, None]:
    """ASGI 客户端；lifespan 不会运行，服务直接挂到 app.state 上。"""
    from main import app

    engine, _ = make_engine(
        [rss_source("Alpha")],
        {
            "https://alpha.test/rss": rss_feed(
                "Harbour reopens after storm", "Trams return to city centre"
            )
        },
    )
    app.state.rotation_engine = engine
    app.state.haiku_service = HaikuService(mock_openai_client, enabled=True)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    del app.state.rotation_engine
    del app.state.haiku_service
