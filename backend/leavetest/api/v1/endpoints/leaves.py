from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.database import get_async_db
from ....schemas.assessment import LeaveApplyRequest, LeaveResponse
from ....schemas.settings import AssessmentSettings
from ....services.leave_service import LeaveService
from ...deps import CurrentUser, get_assessment_settings, get_current_user

router = APIRouter()


@router.post("", response_model=LeaveResponse, status_code=201)
async def apply_for_leave(
    request: LeaveApplyRequest,
    current_user: CurrentUser = Depends(get_current_user),
    assessment_settings: AssessmentSettings = Depends(get_assessment_settings),
    db: AsyncSession = Depends(get_async_db),
):
    """Submit a leave request and assign its qualification test"""
    leave, attempt = await LeaveService(db).apply_for_leave(current_user.id, request, assessment_settings)
    return LeaveResponse.model_validate(leave).model_copy(update={"test_attempt_id": attempt.id})
