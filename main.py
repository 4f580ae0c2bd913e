"""NewsHaiku Backend - 新闻标题轮换 + 俳句生成服务入口。"""

import time

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.concurrency import asynccontextmanager
from fastapi.routing import APIRoute
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.health import (
    HaikuServiceHealth,
    HeadlineEngineHealth,
    HealthStatus,
)
from src.core.infrastructure.logging import setup_logging
from src.core.interfaces.http.exceptions import (
    domain_exception_handler,
    global_exception_handler,
)
from src.core.interfaces.http.routers import api_router
from src.modules.haiku.application.dependencies import build_haiku_service
from src.modules.headlines.application.dependencies import build_rotation_engine

VERSION = "1.1.0"
STARTED_AT = time.monotonic()


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate unique operation IDs for OpenAPI."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


# Initialize Sentry if configured
if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(
        dsn=str(settings.SENTRY_DSN),
        enable_tracing=True,
        environment=settings.ENVIRONMENT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting NewsHaiku backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    engine = build_rotation_engine()
    haiku_service = build_haiku_service()
    engine.start()
    haiku_service.start()
    app.state.rotation_engine = engine
    app.state.haiku_service = haiku_service

    if not haiku_service.enabled:
        logger.warning("LLM not configured; haiku endpoints will answer 503")

    yield

    logger.info("Shutting down NewsHaiku backend...")
    await engine.stop()
    await haiku_service.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="新闻标题轮换服务：多源抓取、熔断、缓存，并将标题转写为俳句。",
    version=VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    root_path=settings.ROOTPATH,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Exception handlers
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# CORS middleware
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["health"])
async def health_check(request: Request):
    """Health check endpoint.

    只读取内存统计，不发起任何上游请求：
    - 标题缓存 / 已用集合大小
    - 熔断中的源
    - 俳句缓存大小及 LLM 是否已配置
    """
    engine = getattr(request.app.state, "rotation_engine", None)
    haiku_service = getattr(request.app.state, "haiku_service", None)

    components = {}
    if engine is not None:
        components["headlines"] = HeadlineEngineHealth.from_stats(engine.stats())
    if haiku_service is not None:
        components["haiku"] = HaikuServiceHealth.from_stats(haiku_service.stats())

    # - healthy: 没有熔断中的源
    # - degraded: 部分源熔断（仍可从其余源取标题）
    degraded = any(c.status is HealthStatus.DEGRADED for c in components.values())

    return {
        "status": "degraded" if degraded else "healthy",
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
        "uptime_sec": round(time.monotonic() - STARTED_AT, 1),
        "components": {name: c.model_dump(mode="json") for name, c in components.items()},
        "feature_flags": {"llm_enabled": settings.llm_configured},
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to NewsHaiku API",
        "docs": f"{settings.API_V1_STR}/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT == "local",
    )
