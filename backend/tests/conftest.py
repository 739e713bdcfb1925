import os

# Must be set before leavetest reads its configuration
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["NOTIFICATIONS_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leavetest.api.deps import get_code_judge
from leavetest.core.database import create_db_and_tables, get_async_db
from leavetest.core.exceptions import JudgeError
from leavetest.main import app
from leavetest.models import Question
from leavetest.schemas.assessment import JudgeCaseResult, JudgeResult, LeaveApplyRequest
from leavetest.schemas.settings import AssessmentSettings
from leavetest.services import attempt_service as attempt_service_module
from leavetest.services.attempt_service import AttemptService
from leavetest.services.leave_service import LeaveService
from leavetest.utils.timezone import get_local_today


class FakeJudge:
    """Hands out queued 0..10 judge scores instead of running code."""

    def __init__(self, scores=()):
        self.scores = list(scores)
        self.calls = []

    async def evaluate(self, code, language, test_cases):
        self.calls.append((code, language, len(test_cases)))
        if not self.scores:
            raise JudgeError("No judge result queued", language=language)
        score = self.scores.pop(0)
        total = len(test_cases)
        passed = round(total * score / 10)
        if score < 10:
            passed = min(passed, total - 1)
        return JudgeResult(
            all_passed=passed == total,
            passed_count=passed,
            total_count=total,
            score=score,
            per_case=[JudgeCaseResult(passed=i < passed) for i in range(total)],
        )


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifications(monkeypatch):
    sent = []
    monkeypatch.setattr(
        attempt_service_module,
        "dispatch_result_notification",
        lambda **payload: sent.append(payload),
    )
    return sent


@pytest.fixture
def add_question(db):
    async def _add(
        question_type="mcq",
        subject="math",
        difficulty="easy",
        points=1,
        correct_option=0,
        test_cases=None,
        is_active=True,
    ):
        question = Question(
            question_type=question_type,
            subject=subject,
            difficulty=difficulty,
            points=points,
            question_text=f"{difficulty} {question_type} question on {subject}",
            is_active=is_active,
        )
        if question_type == "mcq":
            question.options = [
                {"text": f"option {i}", "is_correct": i == correct_option} for i in range(4)
            ]
        else:
            question.problem_statement = "Print the sum of two numbers"
            question.test_cases = test_cases if test_cases is not None else [
                {"input": "1 2", "expected_output": "3", "is_hidden": False},
                {"input": "5 5", "expected_output": "10", "is_hidden": True},
            ]
        db.add(question)
        await db.commit()
        return question

    return _add


@pytest.fixture
async def standard_bank(add_question):
    """Exactly the questions a one-day leave needs with mcq_count=5 and coding_count=2."""
    mcq = []
    for difficulty in ("easy", "easy", "easy", "medium", "medium"):
        mcq.append(await add_question("mcq", difficulty=difficulty, points=10))
    coding = [
        await add_question("coding", difficulty="easy", points=10),
        await add_question("coding", difficulty="medium", points=10),
    ]
    return {"mcq": mcq, "coding": coding}


@pytest.fixture
def small_settings():
    return AssessmentSettings(mcq_count=5, coding_count=2)


@pytest.fixture
def apply_leave(db):
    async def _apply(settings, student_id=1, subjects=("math",)):
        today = get_local_today()
        request = LeaveApplyRequest(
            reason="Family function",
            start_date=today,
            end_date=today,
            subjects=list(subjects),
        )
        return await LeaveService(db).apply_for_leave(student_id, request, settings)

    return _apply


@pytest.fixture
def fake_judge():
    return FakeJudge()


@pytest.fixture
def attempts(db, fake_judge):
    return AttemptService(db, judge=fake_judge)


@pytest.fixture
async def client(session_factory, fake_judge):
    async def override_get_async_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_get_async_db
    app.dependency_overrides[get_code_judge] = lambda: fake_judge
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
