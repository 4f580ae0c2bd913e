"""HTTP exception handlers.

将领域异常转换为统一的 ``{"error": {"code", "message"}}`` 响应。
各模块的异常类通过 http_status_code 和 error_code 类属性自定义响应。
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from src.core.domain.exceptions import DomainException
from src.core.interfaces.http.response import ErrorResponse


async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """Handle domain exceptions.

    5xx 记 warning（上游问题），4xx 记 info（调用方问题）。
    """
    status_code = getattr(exc, "http_status_code", 400)
    error_code = getattr(exc, "error_code", "DOMAIN_ERROR")

    log = logger.warning if status_code >= 500 else logger.info
    log(f"{request.method} {request.url.path} -> {status_code} {error_code}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.create(code=error_code, message=exc.message).model_dump(),
    )


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.create(
            code="INTERNAL_ERROR", message="An internal error occurred"
        ).model_dump(),
    )
