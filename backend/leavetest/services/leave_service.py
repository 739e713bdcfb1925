import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, ValidationError
from ..models.leave import LeaveRequest
from ..models.test_attempt import TestAttempt
from ..schemas.assessment import LeaveApplyRequest
from ..schemas.settings import AssessmentSettings
from ..utils.timezone import get_local_today

logger = logging.getLogger(__name__)


class LeaveService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_leave(self, leave_id: int) -> Optional[LeaveRequest]:
        result = await self.db.execute(select(LeaveRequest).filter(LeaveRequest.id == leave_id))
        return result.scalars().first()

    async def record_result(self, leave_id: int, percentage: float, result: str) -> LeaveRequest:
        """Store the test outcome on the leave request.

        Does not commit: the caller commits it together with the attempt's
        final state so both land or neither does.
        """
        leave = await self.get_leave(leave_id)
        if not leave:
            raise NotFoundError("Leave request not found", leave_id=leave_id)

        leave.status = "test-completed"
        leave.test_score = percentage
        leave.test_result = result
        logger.info(f"Leave {leave_id}: test {result} with {percentage:.2f}%")
        return leave

    def validate_application(self, request: LeaveApplyRequest):
        subjects = [s.strip() for s in request.subjects if s and s.strip()]
        if not request.reason.strip() or not subjects:
            raise ValidationError("Please provide all required fields")
        if request.start_date < get_local_today():
            raise ValidationError("Start date cannot be in the past")
        if request.end_date < request.start_date:
            raise ValidationError("End date must be after start date")

    async def apply_for_leave(
        self,
        student_id: int,
        request: LeaveApplyRequest,
        settings: AssessmentSettings,
    ) -> tuple[LeaveRequest, TestAttempt]:
        """Create the leave request and the qualification test that gates it."""
        from .attempt_service import AttemptService

        self.validate_application(request)

        leave = LeaveRequest(
            student_id=student_id,
            reason=request.reason.strip(),
            start_date=request.start_date,
            end_date=request.end_date,
            subjects=[s.strip() for s in request.subjects if s and s.strip()],
            status="pending",
        )
        self.db.add(leave)
        try:
            await self.db.flush()
            attempt = await AttemptService(self.db).create_attempt_for_leave(leave, settings)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Leave {leave.id} created for student {student_id} with attempt {attempt.id}")
        return leave, attempt
