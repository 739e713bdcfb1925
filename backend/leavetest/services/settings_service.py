import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.cache import cache
from ..models.assessment_settings import AssessmentSettingsRecord
from ..schemas.settings import AssessmentSettings, AssessmentSettingsUpdate

logger = logging.getLogger(__name__)

SETTINGS_CACHE_KEY = "assessment_settings:current"


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_record(self) -> Optional[AssessmentSettingsRecord]:
        result = await self.db.execute(
            select(AssessmentSettingsRecord).order_by(AssessmentSettingsRecord.id).limit(1)
        )
        return result.scalars().first()

    async def current(self) -> AssessmentSettings:
        """One snapshot of the settings; defaults when nothing is stored."""
        cached = await cache.aget(SETTINGS_CACHE_KEY)
        if cached:
            return AssessmentSettings(**cached)

        record = await self._get_record()
        snapshot = AssessmentSettings.model_validate(record) if record else AssessmentSettings()
        await cache.aset(SETTINGS_CACHE_KEY, snapshot.model_dump())
        return snapshot

    async def update(self, changes: AssessmentSettingsUpdate, updated_by: Optional[int] = None) -> AssessmentSettings:
        record = await self._get_record()
        if record is None:
            record = AssessmentSettingsRecord(**AssessmentSettings().model_dump())
            self.db.add(record)

        for field, value in changes.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(record, field, value)
        record.updated_by = updated_by

        await self.db.commit()
        await self.db.refresh(record)
        await cache.adelete(SETTINGS_CACHE_KEY)

        snapshot = AssessmentSettings.model_validate(record)
        logger.info(f"Assessment settings updated by {updated_by}: {changes.model_dump(exclude_unset=True)}")
        return snapshot
