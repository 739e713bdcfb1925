"""Errors raised by the assessment engine.

Every error carries the HTTP status the API layer answers with, so endpoints
never translate them one by one.
"""
from typing import Any, Dict, Optional


class AssessmentError(Exception):
    status_code = 400
    code = "assessment_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {"success": False, "error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AssessmentError):
    status_code = 400
    code = "validation_error"


class NotFoundError(AssessmentError):
    status_code = 404
    code = "not_found"


class UnknownQuestionError(NotFoundError):
    code = "unknown_question"


class AuthorizationError(AssessmentError):
    status_code = 403
    code = "not_authorized"


class AttemptClosedError(AssessmentError):
    status_code = 409
    code = "attempt_closed"


class InvalidTransitionError(AssessmentError):
    status_code = 409
    code = "invalid_transition"


class RoundLockedError(AssessmentError):
    status_code = 409
    code = "round_locked"


class DuplicateAnswerError(AssessmentError):
    status_code = 409
    code = "duplicate_answer"


class ConflictError(AssessmentError):
    """The attempt changed underneath the caller; safe to reload and retry."""

    status_code = 409
    code = "conflict"
    retryable = True


class JudgeError(AssessmentError):
    status_code = 502
    code = "judge_error"

    def __init__(self, message: str, language: Optional[str] = None, **details: Any):
        super().__init__(message, **details)
        self.language = language
