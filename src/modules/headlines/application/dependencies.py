"""Headline module application dependencies.

引擎在应用启动时构建一次并挂在 ``app.state`` 上，路由通过依赖注入获取。
"""

from fastapi import Request

from src.core.config import settings
from src.modules.headlines.application.rotation_engine import HeadlineRotationEngine
from src.modules.headlines.infrastructure.catalog_provider import load_source_catalog
from src.modules.headlines.infrastructure.fetcher import FeedFetcher


def build_rotation_engine() -> HeadlineRotationEngine:
    """Wire catalog, fetcher and engine from settings."""
    fetcher = FeedFetcher(
        user_agent=settings.FETCHER_USER_AGENT,
        retries=settings.FETCH_RETRIES,
        backoff_base_sec=settings.FETCH_BACKOFF_BASE_SEC,
    )
    return HeadlineRotationEngine(load_source_catalog(), fetcher)


async def get_rotation_engine(request: Request) -> HeadlineRotationEngine:
    engine = getattr(request.app.state, "rotation_engine", None)
    if engine is None:
        raise RuntimeError("HeadlineRotationEngine is not initialised (app lifespan not run)")
    return engine
