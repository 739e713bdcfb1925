from sqlalchemy import Column, String, DateTime, Text, Boolean, Integer, JSON, Index
from ..core.database import Base
from ..utils.timezone import get_naive_now


class Question(Base):
    """Bank question, either multiple choice or coding.

    MCQ `options` is a list of {"text", "is_correct"}; coding `test_cases` is a
    list of {"input", "expected_output", "is_hidden"}.
    """
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    question_type = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    difficulty = Column(String, default="medium", nullable=False)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, default=list)

    problem_statement = Column(Text, nullable=True)
    constraints = Column(Text, nullable=True)
    input_format = Column(Text, nullable=True)
    output_format = Column(Text, nullable=True)
    sample_input = Column(Text, nullable=True)
    sample_output = Column(Text, nullable=True)
    starter_code = Column(Text, nullable=True)
    test_cases = Column(JSON, default=list)

    points = Column(Integer, default=1, nullable=False)
    time_limit = Column(Integer, default=300)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=get_naive_now)

    __table_args__ = (
        Index("ix_questions_subject_difficulty_type", "subject", "difficulty", "question_type"),
    )

    def __repr__(self):
        return f"<Question {self.id} {self.question_type}/{self.difficulty} {self.subject}>"
