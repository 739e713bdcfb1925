from .question import Question
from .leave import LeaveRequest
from .assessment_settings import AssessmentSettingsRecord
from .test_attempt import TestAttempt, AttemptQuestion, AttemptResponse, Violation

__all__ = [
    "Question",
    "LeaveRequest",
    "AssessmentSettingsRecord",
    "TestAttempt",
    "AttemptQuestion",
    "AttemptResponse",
    "Violation",
]
