import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.exceptions import JudgeError, ValidationError
from ..models.question import Question
from ..schemas.assessment import AnswerPayload
from .code_judge import JUDGE_SCALE, CodeJudge, to_test_cases

logger = logging.getLogger(__name__)


@dataclass
class ScoredAnswer:
    is_correct: bool
    score: float
    judge_passed: Optional[int] = None
    judge_total: Optional[int] = None
    judge_error: Optional[str] = None
    # pass/fail per test case, in test case order; nothing else about hidden cases
    case_results: List[bool] = field(default_factory=list)


def correct_option_index(question: Question) -> Optional[int]:
    for index, option in enumerate(question.options or []):
        if option.get("is_correct"):
            return index
    return None


def score_mcq(question: Question, selected_option: Optional[int]) -> ScoredAnswer:
    correct = correct_option_index(question)
    is_correct = selected_option is not None and correct is not None and selected_option == correct
    return ScoredAnswer(is_correct=is_correct, score=float(question.points) if is_correct else 0.0)


def rescale_judge_score(judge_score: float, points: int) -> float:
    """Map the judge's fixed 0..10 score onto the question's own points."""
    return round(points * judge_score / JUDGE_SCALE, 2)


async def score_coding(question: Question, code: Optional[str], language: Optional[str], judge: CodeJudge) -> ScoredAnswer:
    try:
        result = await judge.evaluate(code or "", language or "", to_test_cases(question.test_cases))
    except JudgeError as e:
        # A judge outage never blocks the student; the answer just earns nothing
        logger.warning(f"Code judge failed for question {question.id} ({language}): {e.message}")
        return ScoredAnswer(is_correct=False, score=0.0, judge_error=e.message)

    return ScoredAnswer(
        is_correct=result.all_passed,
        score=rescale_judge_score(result.score, question.points),
        judge_passed=result.passed_count,
        judge_total=result.total_count,
        case_results=[case.passed for case in result.per_case],
    )


async def score_answer(question: Question, payload: AnswerPayload, judge: CodeJudge) -> ScoredAnswer:
    if question.question_type == "mcq":
        if payload.selected_option is None:
            raise ValidationError("selected_option is required for multiple choice questions")
        return score_mcq(question, payload.selected_option)

    if question.question_type == "coding":
        if not payload.code:
            raise ValidationError("code is required for coding questions")
        return await score_coding(question, payload.code, payload.language or "javascript", judge)

    raise ValidationError(f"Unsupported question type {question.question_type}")


def calculate_percentage(total_score: float, max_score: float) -> float:
    if not max_score:
        return 0.0
    return total_score / max_score * 100


def apply_penalty(raw_percentage: float, penalty: float) -> float:
    return min(100.0, max(0.0, raw_percentage - penalty))


def meets_threshold(score: float, max_score: float, threshold: float) -> bool:
    """score/max_score reaches threshold percent, compared without dividing.

    29/50 must meet 58% even though 29 / 50 * 100 is 57.99999999999999.
    """
    if not max_score:
        return threshold <= 0
    return round(score * 100, 6) >= round(threshold * max_score, 6)


def percentage_meets(percentage: float, threshold: float) -> bool:
    return round(percentage, 6) >= round(threshold, 6)
