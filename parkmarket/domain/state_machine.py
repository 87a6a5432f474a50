"""Legal booking status transitions."""
from typing import Dict, FrozenSet

from parkmarket.domain.common import BookingStatus, SessionStatus
from parkmarket.domain.errors import AlreadyCancelled, InvalidStateTransition

TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

SESSION_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.RESERVED: frozenset({SessionStatus.CHECKED_IN, SessionStatus.CANCELLED}),
    SessionStatus.PENDING: frozenset({SessionStatus.CHECKED_IN, SessionStatus.CANCELLED}),
    SessionStatus.CHECKED_IN: frozenset({SessionStatus.CHECKED_OUT}),
    SessionStatus.CHECKED_OUT: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in TRANSITIONS[BookingStatus(current)]


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    current = BookingStatus(current)
    target = BookingStatus(target)
    if target == BookingStatus.CANCELLED and current == BookingStatus.CANCELLED:
        raise AlreadyCancelled()
    if not can_transition(current, target):
        raise InvalidStateTransition(f"Cannot move booking from {current.value} to {target.value}.")


def ensure_session_transition(current: SessionStatus, target: SessionStatus) -> None:
    current = SessionStatus(current)
    target = SessionStatus(target)
    if target not in SESSION_TRANSITIONS[current]:
        raise InvalidStateTransition(f"Cannot move parking session from {current.value} to {target.value}.")
