"""API router configuration."""

from fastapi import APIRouter

from src.modules.haiku.interfaces.router import router as haiku_router
from src.modules.headlines.interfaces.router import router as headlines_router

api_router = APIRouter()

# Headlines
api_router.include_router(headlines_router)

# Haiku
api_router.include_router(haiku_router)
