import pytest
from pydantic import ValidationError as SchemaValidationError

from leavetest.admin_tools import describe_question, import_questions, question_stats
from leavetest.core.exceptions import NotFoundError
from leavetest.services.question_bank import QuestionBank

RECORDS = [
    {
        "question_type": "mcq",
        "subject": "math",
        "difficulty": "easy",
        "question_text": "2 + 2?",
        "points": 2,
        "options": [{"text": "3"}, {"text": "4", "is_correct": True}],
    },
    {
        "question_type": "coding",
        "subject": "math",
        "difficulty": "hard",
        "question_text": "Sum",
        "problem_statement": "Print a + b",
        "test_cases": [{"input": "1 2", "expected_output": "3", "is_hidden": True}],
    },
]


async def test_import_questions(db):
    ids = await import_questions(db, RECORDS)
    assert len(ids) == 2

    mcq, coding = await QuestionBank(db).find_many(ids)
    assert mcq.options[1] == {"text": "4", "is_correct": True}
    assert mcq.points == 2
    assert coding.test_cases[0]["is_hidden"] is True

    stats = await question_stats(db)
    assert ("math", "coding", "hard", 1) in [tuple(row) for row in stats]


async def test_invalid_import_stores_nothing(db):
    records = RECORDS + [{"question_type": "essay", "subject": "math", "question_text": "?"}]
    with pytest.raises(SchemaValidationError):
        await import_questions(db, records)
    assert await question_stats(db) == []


async def test_describe_question(db):
    mcq_id, coding_id = await import_questions(db, RECORDS)

    details = await describe_question(db, coding_id)
    assert details["type"] == "coding"
    assert (details["test_cases"], details["hidden_cases"]) == (1, 1)
    assert (await describe_question(db, mcq_id))["options"] == 2

    with pytest.raises(NotFoundError):
        await describe_question(db, 12345)
