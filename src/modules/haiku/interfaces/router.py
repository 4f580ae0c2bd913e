"""Haiku API routes."""

import time

from fastapi import APIRouter, Depends, Query
from loguru import logger

from src.core.interfaces.http.response import ApiResponse
from src.modules.haiku.application.dependencies import get_haiku_service
from src.modules.haiku.application.haiku_service import HaikuService
from src.modules.haiku.interfaces.schemas import (
    DailyHaikuResponse,
    HaikuRequest,
    HaikuResponse,
)
from src.modules.headlines.application.dependencies import get_rotation_engine
from src.modules.headlines.application.rotation_engine import HeadlineRotationEngine
from src.modules.headlines.domain.catalog import SourceQuery
from src.modules.headlines.interfaces.router import fetch_headline

router = APIRouter(prefix="/haiku", tags=["haiku"])


@router.post("", response_model=ApiResponse[HaikuResponse])
async def create_haiku(
    request: HaikuRequest,
    service: HaikuService = Depends(get_haiku_service),
) -> ApiResponse[HaikuResponse]:
    """Turn a headline into a haiku."""
    haiku = await service.generate(request.headline, request.lang)
    return ApiResponse.success(data=HaikuResponse.from_haiku(haiku))


@router.get("/daily", response_model=ApiResponse[DailyHaikuResponse])
async def daily_haiku(
    category: str | None = Query(default=None),
    country: str | None = Query(default=None),
    lang: str | None = Query(default=None, description="默认使用国家对应的语言"),
    engine: HeadlineRotationEngine = Depends(get_rotation_engine),
    service: HaikuService = Depends(get_haiku_service),
) -> ApiResponse[DailyHaikuResponse]:
    """Fetch a fresh headline and turn it into a haiku."""
    started = time.perf_counter()
    headline = await fetch_headline(engine, category, country)
    haiku = await service.generate(
        headline.title, lang or SourceQuery.create(category, country).lang
    )
    response_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(f"Daily haiku served in {response_time_ms}ms ({headline.source})")
    return ApiResponse.success(
        data=DailyHaikuResponse(
            headline=headline.title,
            haiku=haiku.text,
            source=headline.source,
            url=headline.url,
            lang=haiku.lang,
            response_time_ms=response_time_ms,
        )
    )
