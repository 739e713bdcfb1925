import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.cache import cache
from ....core.database import get_async_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_health(db: AsyncSession = Depends(get_async_db)):
    """Liveness plus database and cache status - no authentication required"""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "service": "leavetest-api",
        "services": {},
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["services"]["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["services"]["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    if cache.enabled:
        cache_health = await cache.ahealth_check()
        health_status["services"]["cache"] = "healthy" if cache_health else "unhealthy"
    else:
        health_status["services"]["cache"] = "disabled"

    return health_status
