from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.database import get_async_db
from ....schemas.assessment import (
    AnswerResult,
    AttemptResult,
    SubmitAnswerRequest,
    SubmitTestRequest,
    SubmitTestResult,
    TestPaper,
    ViolationRequest,
    ViolationResult,
    ViolationSummary,
)
from ....schemas.settings import AssessmentSettings
from ....services.attempt_service import AttemptService
from ....services.code_judge import CodeJudge
from ....services.proctoring_service import ProctoringService
from ...deps import CurrentUser, get_assessment_settings, get_code_judge, get_current_user

router = APIRouter()


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.get("/leave/{leave_id}", response_model=TestPaper)
async def get_test_for_leave(
    leave_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    assessment_settings: AssessmentSettings = Depends(get_assessment_settings),
    db: AsyncSession = Depends(get_async_db),
):
    """Questions of the current round, without answers"""
    return await AttemptService(db).get_test_for_leave(leave_id, current_user.id, assessment_settings)


@router.post("/{attempt_id}/answer", response_model=AnswerResult)
async def submit_answer(
    attempt_id: int,
    answer: SubmitAnswerRequest,
    current_user: CurrentUser = Depends(get_current_user),
    judge: CodeJudge = Depends(get_code_judge),
    db: AsyncSession = Depends(get_async_db),
):
    service = AttemptService(db, judge=judge)
    return await service.submit_answer(
        attempt_id,
        current_user.id,
        answer.question_id,
        answer,
        expected_version=answer.expected_version,
    )


@router.post("/{attempt_id}/submit", response_model=SubmitTestResult)
async def submit_test(
    attempt_id: int,
    request: Optional[SubmitTestRequest] = None,
    current_user: CurrentUser = Depends(get_current_user),
    assessment_settings: AssessmentSettings = Depends(get_assessment_settings),
    db: AsyncSession = Depends(get_async_db),
):
    """Finish the current round"""
    return await AttemptService(db).submit_test(
        attempt_id,
        current_user.id,
        assessment_settings,
        expected_version=request.expected_version if request else None,
    )


@router.post("/{attempt_id}/violation", response_model=ViolationResult)
async def record_violation(
    attempt_id: int,
    violation: ViolationRequest,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    assessment_settings: AssessmentSettings = Depends(get_assessment_settings),
    db: AsyncSession = Depends(get_async_db),
):
    """Log a proctoring violation"""
    return await ProctoringService(db).record_violation(
        attempt_id,
        current_user.id,
        violation.type,
        violation.detail,
        assessment_settings,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        expected_version=violation.expected_version,
    )


@router.get("/{attempt_id}/result", response_model=AttemptResult)
async def get_attempt_result(
    attempt_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await AttemptService(db).get_attempt_result(attempt_id, current_user.id, current_user.is_staff)


@router.get("/{attempt_id}/violations/summary", response_model=ViolationSummary)
async def get_violation_summary(
    attempt_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await ProctoringService(db).violation_summary(attempt_id, current_user.id, current_user.is_staff)
