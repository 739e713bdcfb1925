from leavetest.core.celery_app import celery_app
from leavetest.core.database import AsyncSessionLocal
from leavetest.services.attempt_service import AttemptService
from leavetest.services.settings_service import SettingsService
import asyncio
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="finalize_expired_attempts")
def finalize_expired_attempts():
    """Task to submit attempts whose time limit has run out"""
    try:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        try:
            return loop.run_until_complete(_finalize_expired_internal())
        finally:
            loop.close()

    except Exception as exc:
        logger.error(f"Error in finalize_expired_attempts: {exc}")
        raise exc


async def _finalize_expired_internal():
    async with AsyncSessionLocal() as db:
        assessment_settings = await SettingsService(db).current()
        finalized = await AttemptService(db).finalize_expired_attempts(assessment_settings)
    return {'finalized': finalized, 'count': len(finalized)}
