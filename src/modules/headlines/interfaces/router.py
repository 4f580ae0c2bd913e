"""Headline API routes."""

import asyncio

from fastapi import APIRouter, Depends, Query

from src.core.config import settings
from src.core.interfaces.http.response import ApiResponse
from src.modules.headlines.application.dependencies import get_rotation_engine
from src.modules.headlines.application.rotation_engine import HeadlineRotationEngine
from src.modules.headlines.domain.catalog import ALLOWED_CATEGORIES
from src.modules.headlines.domain.entities import Headline
from src.modules.headlines.domain.exceptions import HeadlineRequestTimeoutError
from src.modules.headlines.interfaces.schemas import HeadlineResponse

router = APIRouter(prefix="/headlines", tags=["headlines"])


async def fetch_headline(
    engine: HeadlineRotationEngine,
    category: str | None,
    country: str | None,
) -> Headline:
    """带整体超时地取一个标题；超时后取消进行中的抓取。"""
    cancel_event = asyncio.Event()
    try:
        async with asyncio.timeout(settings.HEADLINE_REQUEST_TIMEOUT_SEC):
            return await engine.get_headline(
                category, country, cancel_event=cancel_event
            )
    except TimeoutError as e:
        cancel_event.set()
        raise HeadlineRequestTimeoutError(settings.HEADLINE_REQUEST_TIMEOUT_SEC) from e


@router.get("", response_model=ApiResponse[HeadlineResponse])
async def get_headline(
    category: str | None = Query(
        default=None, description=f"One of: {', '.join(sorted(ALLOWED_CATEGORIES))}"
    ),
    country: str | None = Query(default=None, description="ISO 3166-1 alpha-2 code"),
    engine: HeadlineRotationEngine = Depends(get_rotation_engine),
) -> ApiResponse[HeadlineResponse]:
    """Return one headline not served recently."""
    headline = await fetch_headline(engine, category, country)
    return ApiResponse.success(data=HeadlineResponse.from_headline(headline))
