"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志
2. structlog: 用于关键业务事件的结构化日志
"""

import sys
from typing import Any

import structlog
from loguru import logger

from src.core.config import settings


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    """配置 structlog 处理器链。"""
    # 本地开发使用人类可读格式，其余环境输出 JSON
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru() -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/newshaiku_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="14 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# ============================================================================
# 业务事件日志记录器
# ============================================================================


class BusinessEvents:
    """业务事件日志助手类。

    Usage:
        from src.core.infrastructure.logging import BusinessEvents

        BusinessEvents.headline_served(source="BBC", category="general", country="GB")
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def headline_served(
        cls,
        source: str,
        category: str,
        country: str,
        from_cache: bool,
        **extra: Any,
    ) -> None:
        """记录标题下发事件。"""
        cls._log.info(
            "headline_served",
            event_type="headline",
            source=source,
            category=category,
            country=country,
            from_cache=from_cache,
            **extra,
        )

    @classmethod
    def source_fetch_failed(
        cls,
        source: str,
        error: str,
        **extra: Any,
    ) -> None:
        """记录源抓取失败事件。"""
        cls._log.warning(
            "source_fetch_failed",
            event_type="fetch_error",
            source=source,
            error=error,
            **extra,
        )

    @classmethod
    def circuit_open(cls, source: str, retry_in_sec: float, **extra: Any) -> None:
        """记录熔断跳过事件。"""
        cls._log.info(
            "circuit_open",
            event_type="circuit",
            source=source,
            retry_in_sec=round(retry_in_sec, 2),
            **extra,
        )

    @classmethod
    def rotation_exhausted(
        cls,
        category: str,
        country: str,
        tried: list[str],
        **extra: Any,
    ) -> None:
        """记录所有源耗尽（全量重置）事件。"""
        cls._log.warning(
            "rotation_exhausted",
            event_type="rotation",
            category=category,
            country=country,
            tried=tried,
            **extra,
        )

    @classmethod
    def haiku_generated(
        cls,
        lang: str,
        from_cache: bool,
        latency_ms: int,
        **extra: Any,
    ) -> None:
        """记录俳句生成事件。"""
        cls._log.info(
            "haiku_generated",
            event_type="haiku",
            lang=lang,
            from_cache=from_cache,
            latency_ms=latency_ms,
            **extra,
        )

    @classmethod
    def feature_degraded(
        cls,
        feature: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录功能降级事件。"""
        cls._log.warning(
            "feature_degraded",
            event_type="degradation",
            feature=feature,
            reason=reason,
            **extra,
        )
