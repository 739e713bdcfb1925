import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateAnswerError,
    NotFoundError,
    RoundLockedError,
    UnknownQuestionError,
)
from ..models.leave import LeaveRequest
from ..models.test_attempt import AttemptQuestion, AttemptResponse, TestAttempt
from ..schemas.assessment import (
    AnswerPayload,
    AnswerResult,
    AttemptResult,
    PublicQuestion,
    SampleCase,
    SubmitTestResult,
    TestPaper,
)
from ..schemas.settings import AssessmentSettings
from ..tasks.notifications import dispatch_result_notification
from ..utils.timezone import get_naive_now
from .attempt_state import (
    AttemptStatus,
    TERMINAL_STATUSES,
    advance_round,
    ensure_open,
    transition,
)
from .code_judge import CodeJudge
from .leave_service import LeaveService
from .question_bank import QuestionBank
from .scoring import apply_penalty, calculate_percentage, meets_threshold, percentage_meets, score_answer
from .test_composer import TestComposer, leave_duration_days

logger = logging.getLogger(__name__)


class AttemptService:
    def __init__(
        self,
        db: AsyncSession,
        judge: Optional[CodeJudge] = None,
        bank: Optional[QuestionBank] = None,
    ):
        self.db = db
        self.judge = judge or CodeJudge()
        self.bank = bank or QuestionBank(db)
        self.leaves = LeaveService(db)

    async def get_attempt(self, attempt_id: int) -> Optional[TestAttempt]:
        result = await self.db.execute(select(TestAttempt).filter(TestAttempt.id == attempt_id))
        return result.scalars().first()

    async def get_attempt_for_leave(self, leave_id: int) -> Optional[TestAttempt]:
        result = await self.db.execute(
            select(TestAttempt).filter(TestAttempt.leave_request_id == leave_id)
        )
        return result.scalars().first()

    async def load_owned(self, attempt_id: int, actor_id: int) -> TestAttempt:
        attempt = await self.get_attempt(attempt_id)
        if not attempt:
            raise NotFoundError("Test not found", attempt_id=attempt_id)
        if attempt.student_id != actor_id:
            raise AuthorizationError("Not authorized", attempt_id=attempt_id)
        return attempt

    @staticmethod
    def check_version(attempt: TestAttempt, expected_version: Optional[int]):
        if expected_version is not None and expected_version != attempt.version:
            raise ConflictError(
                "Test attempt was modified by another request, reload and retry",
                attempt_id=attempt.id,
                expected_version=expected_version,
                current_version=attempt.version,
            )

    async def commit(self, attempt: TestAttempt):
        attempt_id = attempt.id
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(f"Concurrent update on attempt {attempt_id}: {e}")
            raise ConflictError(
                "Test attempt was modified by another request, reload and retry",
                attempt_id=attempt_id,
            ) from e

    async def create_attempt_for_leave(self, leave: LeaveRequest, settings: AssessmentSettings) -> TestAttempt:
        """Compose and stage the attempt for a new leave request (caller commits)."""
        composer = TestComposer(self.bank)
        composed = await composer.compose_test(
            leave_duration_days(leave.start_date, leave.end_date),
            leave.subjects or [],
            settings,
        )

        attempt = TestAttempt(
            student_id=leave.student_id,
            leave_request_id=leave.id,
            max_score=composed.max_score,
            time_limit=composed.time_limit,
            current_round=1,
            status=AttemptStatus.IN_PROGRESS.value,
            start_time=get_naive_now(),
            round1_score=0.0,
            round2_score=0.0,
            total_score=0.0,
            percentage=0.0,
            violation_count=0,
            violation_penalty=0.0,
            questions=[
                AttemptQuestion(question=question, question_id=question.id, round=round_number, position=position)
                for position, (question, round_number) in enumerate(composed.questions)
            ],
            responses=[],
            violations=[],
        )
        self.db.add(attempt)
        leave.status = "test-assigned"
        await self.db.flush()
        return attempt

    async def get_test_for_leave(self, leave_id: int, actor_id: int, settings: AssessmentSettings) -> TestPaper:
        leave = await self.leaves.get_leave(leave_id)
        if not leave:
            raise NotFoundError("Leave request not found", leave_id=leave_id)
        if leave.student_id != actor_id:
            raise AuthorizationError("Not authorized", leave_id=leave_id)

        attempt = await self.get_attempt_for_leave(leave_id)
        if not attempt:
            raise NotFoundError("Test not found", leave_id=leave_id)

        answered = {r.question_id for r in attempt.responses}
        questions = [
            self._public_question(aq, aq.question_id in answered)
            for aq in attempt.questions
            if aq.round == attempt.current_round
        ]
        return TestPaper(
            test_id=attempt.id,
            current_round=attempt.current_round,
            status=attempt.status,
            time_limit=attempt.time_limit,
            start_time=attempt.start_time,
            require_fullscreen=settings.require_fullscreen,
            questions=questions,
            version=attempt.version,
        )

    @staticmethod
    def _public_question(aq: AttemptQuestion, answered: bool) -> PublicQuestion:
        q = aq.question
        return PublicQuestion(
            id=q.id,
            round=aq.round,
            question_type=q.question_type,
            subject=q.subject,
            difficulty=q.difficulty,
            points=q.points,
            question_text=q.question_text,
            options=[option.get("text", "") for option in (q.options or [])],
            problem_statement=q.problem_statement,
            constraints=q.constraints,
            input_format=q.input_format,
            output_format=q.output_format,
            sample_input=q.sample_input,
            sample_output=q.sample_output,
            starter_code=q.starter_code,
            sample_cases=[
                SampleCase(input=case.get("input", ""), expected_output=case.get("expected_output", ""))
                for case in (q.test_cases or [])
                if not case.get("is_hidden")
            ],
            answered=answered,
        )

    async def submit_answer(
        self,
        attempt_id: int,
        actor_id: int,
        question_id: int,
        payload: AnswerPayload,
        expected_version: Optional[int] = None,
    ) -> AnswerResult:
        attempt = await self.load_owned(attempt_id, actor_id)
        self.check_version(attempt, expected_version)
        ensure_open(attempt)

        attempt_question = next((aq for aq in attempt.questions if aq.question_id == question_id), None)
        if attempt_question is None:
            raise UnknownQuestionError("Question not found in this test", question_id=question_id)

        if attempt_question.round != attempt.current_round:
            raise RoundLockedError(
                f"Question belongs to round {attempt_question.round}, "
                f"the attempt is in round {attempt.current_round}",
                question_id=question_id,
            )

        if any(r.question_id == question_id for r in attempt.responses):
            raise DuplicateAnswerError("Question already answered", question_id=question_id)

        question = attempt_question.question
        scored = await score_answer(question, payload, self.judge)

        response = AttemptResponse(
            question_id=question_id,
            round=attempt_question.round,
            is_correct=scored.is_correct,
            score=scored.score,
            judge_passed=scored.judge_passed,
            judge_total=scored.judge_total,
            judge_error=scored.judge_error,
        )
        if question.question_type == "mcq":
            response.selected_option = payload.selected_option
        else:
            response.code = payload.code
            response.language = payload.language or "javascript"

        attempt.responses.append(response)
        if attempt_question.round == 1:
            attempt.round1_score += scored.score
        else:
            attempt.round2_score += scored.score
        attempt.total_score += scored.score
        # Zero-score answers change no column; the row must still be versioned
        flag_modified(attempt, "total_score")

        try:
            await self.commit(attempt)
        except IntegrityError as e:
            # A concurrent request stored a response for the same question first
            await self.db.rollback()
            raise DuplicateAnswerError("Question already answered", question_id=question_id) from e

        return AnswerResult(
            is_correct=scored.is_correct,
            score=scored.score,
            total_score=attempt.total_score,
            round=attempt_question.round,
            version=attempt.version,
            passed_cases=scored.judge_passed,
            total_cases=scored.judge_total,
            case_results=scored.case_results,
        )

    async def _finalize(
        self,
        attempt: TestAttempt,
        status: AttemptStatus,
        settings: AssessmentSettings,
        with_penalty: bool = True,
        force_fail: bool = False,
    ) -> bool:
        """Close the attempt, fix its percentage and record the leave result.

        Returns whether the attempt passed. Does not commit.
        """
        transition(attempt, status)
        attempt.end_time = get_naive_now()

        raw_percentage = calculate_percentage(attempt.total_score, attempt.max_score)
        if with_penalty:
            attempt.percentage = apply_penalty(raw_percentage, attempt.violation_penalty)
        else:
            attempt.percentage = apply_penalty(raw_percentage, 0)

        passed = not force_fail and percentage_meets(attempt.percentage, settings.passing_percentage)
        await self.leaves.record_result(attempt.leave_request_id, attempt.percentage, "pass" if passed else "fail")
        return passed

    def notify_result(self, attempt: TestAttempt, passed: bool):
        dispatch_result_notification(
            student_id=attempt.student_id,
            leave_id=attempt.leave_request_id,
            attempt_id=attempt.id,
            percentage=attempt.percentage,
            result="pass" if passed else "fail",
            status=attempt.status,
        )

    def _round1_max(self, attempt: TestAttempt) -> int:
        return sum(aq.question.points for aq in attempt.questions if aq.round == 1)

    async def submit_test(
        self,
        attempt_id: int,
        actor_id: int,
        settings: AssessmentSettings,
        expected_version: Optional[int] = None,
    ) -> SubmitTestResult:
        attempt = await self.load_owned(attempt_id, actor_id)
        self.check_version(attempt, expected_version)
        ensure_open(attempt)

        if attempt.current_round == 1:
            round1_max = self._round1_max(attempt)
            round1_percentage = calculate_percentage(attempt.round1_score, round1_max)

            if meets_threshold(attempt.round1_score, round1_max, settings.round1_passing_percentage):
                advance_round(attempt)
                await self.commit(attempt)
                return SubmitTestResult(
                    message="Round 1 completed. Proceed to Round 2.",
                    status=attempt.status,
                    current_round=attempt.current_round,
                    total_score=attempt.total_score,
                    max_score=attempt.max_score,
                    round1_score=attempt.round1_score,
                    round1_percentage=round1_percentage,
                    version=attempt.version,
                )

            # Round 1 failure closes the test without applying the violation penalty
            passed = await self._finalize(
                attempt, AttemptStatus.COMPLETED, settings, with_penalty=False, force_fail=True
            )
            await self.commit(attempt)
            self.notify_result(attempt, passed)
            return SubmitTestResult(
                message="Test completed. Did not qualify for Round 2.",
                status=attempt.status,
                current_round=attempt.current_round,
                total_score=attempt.total_score,
                max_score=attempt.max_score,
                round1_score=attempt.round1_score,
                round1_percentage=round1_percentage,
                percentage=attempt.percentage,
                passed=False,
                version=attempt.version,
            )

        passed = await self._finalize(attempt, AttemptStatus.COMPLETED, settings)
        await self.commit(attempt)
        self.notify_result(attempt, passed)
        return SubmitTestResult(
            message="Test completed successfully",
            status=attempt.status,
            current_round=attempt.current_round,
            total_score=attempt.total_score,
            max_score=attempt.max_score,
            round1_score=attempt.round1_score,
            percentage=attempt.percentage,
            passed=passed,
            version=attempt.version,
        )

    async def auto_submit(self, attempt: TestAttempt, settings: AssessmentSettings) -> bool:
        """Force-close an open attempt because of violations (caller commits)."""
        return await self._finalize(attempt, AttemptStatus.AUTO_SUBMITTED, settings)

    async def get_attempt_result(self, attempt_id: int, actor_id: int, is_staff: bool = False) -> AttemptResult:
        attempt = await self.get_attempt(attempt_id)
        if not attempt:
            raise NotFoundError("Test not found", attempt_id=attempt_id)
        if not is_staff and attempt.student_id != actor_id:
            raise AuthorizationError("Not authorized", attempt_id=attempt_id)
        return AttemptResult.model_validate(attempt)

    async def finalize_expired_attempts(self, settings: AssessmentSettings, now: Optional[datetime] = None) -> List[int]:
        """Submit every open attempt whose time limit has run out."""
        now = now or get_naive_now()
        open_statuses = [s.value for s in AttemptStatus if s not in TERMINAL_STATUSES]
        result = await self.db.execute(
            select(TestAttempt.id, TestAttempt.start_time, TestAttempt.time_limit)
            .filter(TestAttempt.status.in_(open_statuses))
        )
        expired_ids = [
            attempt_id
            for attempt_id, start_time, time_limit in result.all()
            if start_time + timedelta(minutes=time_limit) <= now
        ]

        finalized = []
        for attempt_id in expired_ids:
            attempt = await self.get_attempt(attempt_id)
            if attempt is None or attempt.status in {s.value for s in TERMINAL_STATUSES}:
                continue
            try:
                passed = await self._finalize(attempt, AttemptStatus.SUBMITTED, settings)
                await self.commit(attempt)
            except ConflictError:
                logger.warning(f"Attempt {attempt_id} changed while expiring, will retry on next sweep")
                continue
            self.notify_result(attempt, passed)
            finalized.append(attempt.id)

        if finalized:
            logger.info(f"Finalized {len(finalized)} expired attempt(s): {finalized}")
        return finalized
