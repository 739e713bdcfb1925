#!/usr/bin/env python3
"""
Admin tools for the Leave Qualification Test API
"""

import argparse
import asyncio
import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leavetest.core.database import AsyncSessionLocal, create_db_and_tables
from leavetest.core.exceptions import NotFoundError
from leavetest.models import Question, TestAttempt
from leavetest.schemas.assessment import QuestionImport
from leavetest.services.attempt_service import AttemptService
from leavetest.services.proctoring_service import ProctoringService
from leavetest.services.question_bank import QuestionBank
from leavetest.services.settings_service import SettingsService


async def import_questions(db: AsyncSession, records: List[Dict[str, Any]]) -> List[int]:
    """Validate and store bank questions; nothing is stored if any record is invalid"""
    parsed = [QuestionImport(**record) for record in records]
    questions = []
    for item in parsed:
        data = item.model_dump()
        data["options"] = [option.model_dump() for option in item.options]
        data["test_cases"] = [case.model_dump() for case in item.test_cases]
        questions.append(Question(**data))
    db.add_all(questions)
    await db.commit()
    return [q.id for q in questions]


async def question_stats(db: AsyncSession) -> List[tuple]:
    result = await db.execute(
        select(Question.subject, Question.question_type, Question.difficulty, func.count(Question.id))
        .filter(Question.is_active.is_(True))
        .group_by(Question.subject, Question.question_type, Question.difficulty)
        .order_by(Question.subject, Question.question_type, Question.difficulty)
    )
    return list(result.all())


async def describe_question(db: AsyncSession, question_id: int) -> Dict[str, Any]:
    question = await QuestionBank(db).find_by_id(question_id)
    if question is None:
        raise NotFoundError("Question not found", question_id=question_id)
    return {
        "id": question.id,
        "type": question.question_type,
        "subject": question.subject,
        "difficulty": question.difficulty,
        "points": question.points,
        "active": question.is_active,
        "text": question.question_text,
        "options": len(question.options or []),
        "test_cases": len(question.test_cases or []),
        "hidden_cases": sum(1 for case in (question.test_cases or []) if case.get("is_hidden")),
    }


async def _run_import(path: str):
    with open(path, encoding="utf8") as file:
        records = json.load(file)
    async with AsyncSessionLocal() as db:
        try:
            ids = await import_questions(db, records)
        except SchemaValidationError as e:
            print(f"❌ Invalid question file: {e}")
            return
    print(f"✅ Imported {len(ids)} question(s)")


async def _run_stats():
    async with AsyncSessionLocal() as db:
        rows = await question_stats(db)
    if not rows:
        print("Question bank is empty")
        return
    for subject, question_type, difficulty, count in rows:
        print(f"  • {subject:<20} {question_type:<7} {difficulty:<7} {count}")


async def _run_show_question(question_id: int):
    async with AsyncSessionLocal() as db:
        try:
            details = await describe_question(db, question_id)
        except NotFoundError as e:
            print(f"❌ {e.message}")
            return
    for key, value in details.items():
        print(f"  {key:<12} {value}")


async def _run_attempts(student_id: Optional[int]):
    async with AsyncSessionLocal() as db:
        stmt = select(TestAttempt).order_by(TestAttempt.start_time.desc()).limit(50)
        if student_id is not None:
            stmt = stmt.filter(TestAttempt.student_id == student_id)
        attempts = (await db.execute(stmt)).scalars().all()
    for attempt in attempts:
        print(
            f"  #{attempt.id} student={attempt.student_id} leave={attempt.leave_request_id} "
            f"{attempt.status} round={attempt.current_round} "
            f"score={attempt.total_score}/{attempt.max_score} ({attempt.percentage:.1f}%) "
            f"violations={attempt.violation_count}"
        )


async def _run_violations(attempt_id: int):
    async with AsyncSessionLocal() as db:
        summary = await ProctoringService(db).violation_summary(attempt_id, actor_id=0, is_staff=True)
    print(f"📊 Attempt {attempt_id}: {summary.total_violations} violation(s), penalty {summary.violation_penalty}%")
    for violation_type, count in sorted(summary.by_type.items(), key=lambda x: x[1], reverse=True):
        print(f"  • {violation_type}: {count}")


async def _run_expire():
    async with AsyncSessionLocal() as db:
        settings = await SettingsService(db).current()
        finalized = await AttemptService(db).finalize_expired_attempts(settings)
    print(f"✅ Finalized {len(finalized)} expired attempt(s)")


def main():
    parser = argparse.ArgumentParser(description="Admin tools for the Leave Qualification Test API")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('init-db', help='Create database tables')

    import_parser = subparsers.add_parser('import-questions', help='Load bank questions from a JSON file')
    import_parser.add_argument('--file', required=True, help='JSON list of questions')

    subparsers.add_parser('stats', help='Active questions per subject, type and difficulty')

    question_parser = subparsers.add_parser('show-question', help='Show one bank question')
    question_parser.add_argument('--id', type=int, required=True)

    attempts_parser = subparsers.add_parser('attempts', help='Show recent test attempts')
    attempts_parser.add_argument('--student-id', type=int, help='Only this student')

    violations_parser = subparsers.add_parser('violations', help='Violation summary for an attempt')
    violations_parser.add_argument('--attempt-id', type=int, required=True)

    subparsers.add_parser('expire', help='Submit attempts past their time limit now')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command == 'init-db':
        asyncio.run(create_db_and_tables())
    elif args.command == 'import-questions':
        asyncio.run(_run_import(args.file))
    elif args.command == 'stats':
        asyncio.run(_run_stats())
    elif args.command == 'show-question':
        asyncio.run(_run_show_question(args.id))
    elif args.command == 'attempts':
        asyncio.run(_run_attempts(args.student_id))
    elif args.command == 'violations':
        asyncio.run(_run_violations(args.attempt_id))
    elif args.command == 'expire':
        asyncio.run(_run_expire())


if __name__ == "__main__":
    main()
