import logging
from collections import Counter
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, AuthorizationError
from ..models.test_attempt import TestAttempt, Violation
from ..schemas.assessment import ViolationOut, ViolationResult, ViolationSummary
from ..schemas.settings import AssessmentSettings
from ..utils.timezone import get_naive_now
from .attempt_service import AttemptService
from .attempt_state import ensure_open, is_terminal

logger = logging.getLogger(__name__)


def warning_level(violation_count: int, max_violations: int) -> str:
    if violation_count >= 0.6 * max_violations:
        return "critical"
    if violation_count >= 0.3 * max_violations:
        return "warning"
    return "normal"


def should_auto_submit(attempt: TestAttempt, settings: AssessmentSettings) -> bool:
    return (
        settings.auto_submit_on_violation
        and attempt.violation_count >= settings.max_violations
        and not is_terminal(attempt)
    )


class ProctoringService:
    def __init__(self, db: AsyncSession, attempts: Optional[AttemptService] = None):
        self.db = db
        self.attempts = attempts or AttemptService(db)

    async def record_violation(
        self,
        attempt_id: int,
        actor_id: int,
        violation_type: str,
        detail: str,
        settings: AssessmentSettings,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ViolationResult:
        attempt = await self.attempts.load_owned(attempt_id, actor_id)
        self.attempts.check_version(attempt, expected_version)
        ensure_open(attempt)

        attempt.violations.append(Violation(
            violation_type=violation_type,
            detail=detail or "",
            timestamp=get_naive_now(),
        ))
        attempt.violation_count += 1
        attempt.violation_penalty = attempt.violation_count * settings.violation_penalty_percent

        if attempt.violation_count == 1 and not attempt.ip_address:
            attempt.ip_address = ip_address
            attempt.user_agent = user_agent

        auto_submitted = should_auto_submit(attempt, settings)
        passed = False
        if auto_submitted:
            passed = await self.attempts.auto_submit(attempt, settings)

        await self.attempts.commit(attempt)

        if auto_submitted:
            logger.warning(
                f"Attempt {attempt.id} auto-submitted after {attempt.violation_count} violations, "
                f"penalty {attempt.violation_penalty}, final {attempt.percentage:.2f}%"
            )
            self.attempts.notify_result(attempt, passed)
        else:
            logger.info(f"Attempt {attempt.id}: violation {violation_type} ({attempt.violation_count}/{settings.max_violations})")

        return ViolationResult(
            auto_submitted=auto_submitted,
            violation_count=attempt.violation_count,
            max_violations=settings.max_violations,
            current_penalty=attempt.violation_penalty,
            penalty_per_violation=settings.violation_penalty_percent,
            warning_level=warning_level(attempt.violation_count, settings.max_violations),
            percentage=attempt.percentage if auto_submitted else None,
            version=attempt.version,
        )

    async def violation_summary(self, attempt_id: int, actor_id: int, is_staff: bool = False) -> ViolationSummary:
        attempt = await self.attempts.get_attempt(attempt_id)
        if not attempt:
            raise NotFoundError("Test not found", attempt_id=attempt_id)
        if not is_staff and attempt.student_id != actor_id:
            raise AuthorizationError("Access denied", attempt_id=attempt_id)

        return ViolationSummary(
            attempt_id=attempt.id,
            total_violations=attempt.violation_count,
            violation_penalty=attempt.violation_penalty,
            by_type=dict(Counter(v.violation_type for v in attempt.violations)),
            timeline=[ViolationOut.model_validate(v) for v in attempt.violations],
        )
