from datetime import timedelta

import pytest

from leavetest.schemas.assessment import AnswerPayload
from leavetest.services.attempt_state import AttemptStatus
from leavetest.services.proctoring_service import ProctoringService


async def test_expired_attempts_are_submitted(db, attempts, standard_bank, small_settings, apply_leave, notifications):
    leave, attempt = await apply_leave(small_settings)
    deadline = attempt.start_time + timedelta(minutes=attempt.time_limit)

    assert await attempts.finalize_expired_attempts(small_settings, now=deadline - timedelta(seconds=1)) == []
    assert attempt.status == AttemptStatus.IN_PROGRESS.value

    finalized = await attempts.finalize_expired_attempts(small_settings, now=deadline)

    assert finalized == [attempt.id]
    assert attempt.status == AttemptStatus.SUBMITTED.value
    assert attempt.end_time is not None
    assert leave.status == "test-completed"
    assert notifications[-1]["status"] == "submitted"


async def test_closed_attempts_are_left_alone(attempts, standard_bank, small_settings, apply_leave, notifications):
    _, attempt = await apply_leave(small_settings)
    await attempts.submit_test(attempt.id, 1, small_settings)
    later = attempt.start_time + timedelta(days=1)

    assert await attempts.finalize_expired_attempts(small_settings, now=later) == []
    assert attempt.status == AttemptStatus.COMPLETED.value
    assert len(notifications) == 1


async def test_expiry_applies_violation_penalty(attempts, standard_bank, small_settings, apply_leave):
    _, attempt = await apply_leave(small_settings)
    question = [aq.question for aq in attempt.questions if aq.round == 1][0]
    await attempts.submit_answer(attempt.id, 1, question.id, AnswerPayload(selected_option=0))
    await ProctoringService(attempts.db, attempts).record_violation(attempt.id, 1, "tab-switch", "", small_settings)

    await attempts.finalize_expired_attempts(small_settings, now=attempt.start_time + timedelta(hours=3))
    assert attempt.percentage == pytest.approx(10 / 70 * 100 - 5)
