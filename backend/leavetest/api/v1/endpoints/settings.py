from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.database import get_async_db
from ....schemas.settings import AssessmentSettings, AssessmentSettingsUpdate
from ....services.settings_service import SettingsService
from ...deps import CurrentUser, get_assessment_settings, get_current_staff_user

router = APIRouter()


@router.get("", response_model=AssessmentSettings)
async def read_settings(
    current_user: CurrentUser = Depends(get_current_staff_user),
    assessment_settings: AssessmentSettings = Depends(get_assessment_settings),
):
    return assessment_settings


@router.put("", response_model=AssessmentSettings)
async def update_settings(
    changes: AssessmentSettingsUpdate,
    current_user: CurrentUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Change the assessment rules used by tests created or finished from now on"""
    return await SettingsService(db).update(changes, updated_by=current_user.id)
