from .settings import AssessmentSettings, AssessmentSettingsUpdate
from .assessment import (
    AnswerPayload,
    AnswerResult,
    AttemptResult,
    JudgeCaseResult,
    JudgeResult,
    LeaveApplyRequest,
    LeaveResponse,
    PublicQuestion,
    QuestionImport,
    QuestionOption,
    SubmitAnswerRequest,
    SubmitTestRequest,
    SubmitTestResult,
    TestCase,
    TestPaper,
    ViolationRequest,
    ViolationResult,
    ViolationSummary,
)

__all__ = [
    "AssessmentSettings",
    "AssessmentSettingsUpdate",
    "AnswerPayload",
    "AnswerResult",
    "AttemptResult",
    "JudgeCaseResult",
    "JudgeResult",
    "LeaveApplyRequest",
    "LeaveResponse",
    "PublicQuestion",
    "QuestionImport",
    "QuestionOption",
    "SubmitAnswerRequest",
    "SubmitTestRequest",
    "SubmitTestResult",
    "TestCase",
    "TestPaper",
    "ViolationRequest",
    "ViolationResult",
    "ViolationSummary",
]
