"""Haiku module application dependencies."""

from fastapi import Request

from src.modules.haiku.application.haiku_service import HaikuService


def build_haiku_service() -> HaikuService:
    return HaikuService()


async def get_haiku_service(request: Request) -> HaikuService:
    service = getattr(request.app.state, "haiku_service", None)
    if service is None:
        raise RuntimeError("HaikuService is not initialised (app lifespan not run)")
    return service
