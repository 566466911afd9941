"""
Booking lifecycle

    pending -> confirmed -> in_progress -> completed
    any non-terminal state -> cancelled
"""

from datetime import datetime, timezone
from enum import Enum

from ...errors import InvalidTransitionError


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# The forward path, used when a booking is completed in one step
LIFECYCLE = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.COMPLETED,
)

# Statuses whose booking still holds its time slot
ACTIVE_STATUSES = frozenset(status for status in BookingStatus if status != BookingStatus.CANCELLED)


def is_terminal(status: BookingStatus) -> bool:
    return not TRANSITIONS[status]


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in TRANSITIONS[current]


def history_entry(status: BookingStatus, notes: str = "") -> dict:
    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "notes": notes,
    }


def transition(
    current: BookingStatus, target: BookingStatus, history: list[dict], notes: str = ""
) -> list[dict]:
    """Validate a single step and return the history with the new entry appended"""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change booking status from {current.value} to {target.value}"
        )
    return [*history, history_entry(target, notes)]


def advance_to(
    current: BookingStatus, target: BookingStatus, history: list[dict], notes: str = ""
) -> list[dict]:
    """
    Walk the forward lifecycle from current to target, recording each step.

    Used by the charge & complete flow, which may start from any
    non-terminal state before cancellation.
    """
    if current == target:
        return list(history)
    if current not in LIFECYCLE or target not in LIFECYCLE:
        return transition(current, target, history, notes)

    start, end = LIFECYCLE.index(current), LIFECYCLE.index(target)
    if end < start:
        raise InvalidTransitionError(
            f"Cannot change booking status from {current.value} to {target.value}"
        )

    new_history = list(history)
    step_from = current
    for step_to in LIFECYCLE[start + 1 : end + 1]:
        new_history = transition(step_from, step_to, new_history, notes)
        step_from = step_to
    return new_history
