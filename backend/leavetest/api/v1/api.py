from fastapi import APIRouter

from .endpoints import health, leaves, settings, tests

api_router = APIRouter()

api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
api_router.include_router(tests.router, prefix="/tests", tags=["tests"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(health.router, prefix="/health", tags=["health"])
