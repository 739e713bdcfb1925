import enum
import logging

from ..core.exceptions import AttemptClosedError, InvalidTransitionError
from ..models.test_attempt import TestAttempt

logger = logging.getLogger(__name__)


class AttemptStatus(str, enum.Enum):
    IN_PROGRESS = "in-progress"
    ROUND1_COMPLETED = "round1-completed"
    COMPLETED = "completed"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto-submitted"


TERMINAL_STATUSES = frozenset({
    AttemptStatus.COMPLETED,
    AttemptStatus.SUBMITTED,
    AttemptStatus.AUTO_SUBMITTED,
})

# completed: student submitted; submitted: time limit ran out; auto-submitted: violations
TRANSITIONS = {
    AttemptStatus.IN_PROGRESS: frozenset({
        AttemptStatus.ROUND1_COMPLETED,
        AttemptStatus.COMPLETED,
        AttemptStatus.SUBMITTED,
        AttemptStatus.AUTO_SUBMITTED,
    }),
    AttemptStatus.ROUND1_COMPLETED: frozenset({
        AttemptStatus.COMPLETED,
        AttemptStatus.SUBMITTED,
        AttemptStatus.AUTO_SUBMITTED,
    }),
    AttemptStatus.COMPLETED: frozenset(),
    AttemptStatus.SUBMITTED: frozenset(),
    AttemptStatus.AUTO_SUBMITTED: frozenset(),
}


def status_of(attempt: TestAttempt) -> AttemptStatus:
    return AttemptStatus(attempt.status)


def is_terminal(attempt: TestAttempt) -> bool:
    return status_of(attempt) in TERMINAL_STATUSES


def ensure_open(attempt: TestAttempt):
    if is_terminal(attempt):
        raise AttemptClosedError(
            "Test already completed",
            attempt_id=attempt.id,
            status=attempt.status,
        )


def transition(attempt: TestAttempt, new_status: AttemptStatus):
    ensure_open(attempt)
    current = status_of(attempt)
    if new_status not in TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move attempt from {current.value} to {new_status.value}",
            attempt_id=attempt.id,
            status=current.value,
        )
    attempt.status = new_status.value
    logger.info(f"Attempt {attempt.id}: {current.value} -> {new_status.value}")


def advance_round(attempt: TestAttempt):
    """Unlock round 2. The round number never moves backwards."""
    if attempt.current_round != 1:
        raise InvalidTransitionError(
            f"Attempt is already in round {attempt.current_round}",
            attempt_id=attempt.id,
        )
    transition(attempt, AttemptStatus.ROUND1_COMPLETED)
    attempt.current_round = 2
