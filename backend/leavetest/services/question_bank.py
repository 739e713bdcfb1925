from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.question import Question


@dataclass(frozen=True)
class QuestionFilter:
    subjects: Sequence[str]
    question_type: str
    difficulty: Optional[str] = None


class QuestionBank:
    """Read-only access to active bank questions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def sample(
        self,
        question_filter: QuestionFilter,
        count: int,
        exclude_ids: Iterable[int] = (),
    ) -> List[Question]:
        """Random sample of up to `count` matching questions; may return fewer."""
        if count <= 0 or not question_filter.subjects:
            return []

        stmt = select(Question).filter(
            Question.question_type == question_filter.question_type,
            Question.subject.in_(list(question_filter.subjects)),
            Question.is_active.is_(True),
        )
        if question_filter.difficulty:
            stmt = stmt.filter(Question.difficulty == question_filter.difficulty)

        exclude_ids = list(exclude_ids)
        if exclude_ids:
            stmt = stmt.filter(Question.id.not_in(exclude_ids))

        result = await self.db.execute(stmt.order_by(func.random()).limit(count))
        return list(result.scalars().all())

    async def find_by_id(self, question_id: int) -> Optional[Question]:
        result = await self.db.execute(select(Question).filter(Question.id == question_id))
        return result.scalars().first()

    async def find_many(self, question_ids: Iterable[int]) -> List[Question]:
        question_ids = list(question_ids)
        if not question_ids:
            return []
        result = await self.db.execute(select(Question).filter(Question.id.in_(question_ids)))
        by_id = {q.id: q for q in result.scalars().all()}
        return [by_id[qid] for qid in question_ids if qid in by_id]
