"""
Finite state machine for the booking lifecycle.

Every status change a booking can undergo is listed in ``TRANSITIONS``.
The lifecycle engine asks the machine for the target status before it
touches the store; an action with no matching transition is rejected
with an error naming the current status and the attempted action.

Usage:
    sm = BookingStateMachine()
    sm.next_status(booking, BookingAction.CONFIRM)  # -> BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from booking_engine.errors import (
    BookingCannotCancelError,
    BookingCannotRescheduleError,
    InvalidTransitionError,
)
from booking_engine.schemas.booking_schema import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingAction(str, Enum):
    """Actions that move a booking between statuses."""
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"
    COMPLETE = "complete"
    ASSIGN = "assign"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus
    action: BookingAction
    guard: Optional[Callable[[Booking], bool]] = None


def _unassigned(booking: Booking) -> bool:
    return booking.professional_id is None


def _assigned(booking: Booking) -> bool:
    return booking.professional_id is not None


_ERRORS_BY_ACTION: dict[BookingAction, type[InvalidTransitionError]] = {
    BookingAction.CANCEL: BookingCannotCancelError,
    BookingAction.RESCHEDULE: BookingCannotRescheduleError,
}

TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
})


class BookingStateMachine:
    """Deterministic transition table for bookings."""

    TRANSITIONS: list[Transition] = [
        # --- Professional response ---
        Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingAction.CONFIRM,
                   guard=_assigned),
        Transition(BookingStatus.PENDING, BookingStatus.REJECTED, BookingAction.REJECT,
                   guard=_assigned),
        Transition(BookingStatus.PROCESSING, BookingStatus.CONFIRMED, BookingAction.CONFIRM),
        Transition(BookingStatus.PROCESSING, BookingStatus.REJECTED, BookingAction.REJECT),
        Transition(BookingStatus.RESCHEDULED, BookingStatus.CONFIRMED, BookingAction.CONFIRM),

        # --- Admin assignment ---
        Transition(BookingStatus.PENDING, BookingStatus.PROCESSING, BookingAction.ASSIGN,
                   guard=_unassigned),

        # --- Cancellation ---
        Transition(BookingStatus.PENDING, BookingStatus.CANCELLED, BookingAction.CANCEL),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingAction.CANCEL),
        Transition(BookingStatus.PROCESSING, BookingStatus.CANCELLED, BookingAction.CANCEL),
        Transition(BookingStatus.RESCHEDULED, BookingStatus.CANCELLED, BookingAction.CANCEL),

        # --- Rescheduling ---
        Transition(BookingStatus.PENDING, BookingStatus.RESCHEDULED, BookingAction.RESCHEDULE),
        Transition(BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED, BookingAction.RESCHEDULE),
        Transition(BookingStatus.PROCESSING, BookingStatus.RESCHEDULED, BookingAction.RESCHEDULE),
        Transition(BookingStatus.RESCHEDULED, BookingStatus.RESCHEDULED, BookingAction.RESCHEDULE),

        # --- Completion ---
        Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingAction.COMPLETE),
    ]

    def next_status(self, booking: Booking, action: BookingAction) -> BookingStatus:
        """
        Resolve the status ``action`` moves ``booking`` to.

        Raises:
            InvalidTransitionError: If no valid transition exists. Cancel and
                reschedule raise their dedicated subclasses.
        """
        current = booking.status
        for t in self.TRANSITIONS:
            if t.from_status == current and t.action == action:
                if t.guard is not None and not t.guard(booking):
                    continue
                logger.debug(
                    "Booking %s transition: %s -> %s (action: %s)",
                    booking.id, current.value, t.to_status.value, action.value,
                )
                return t.to_status

        error_cls = _ERRORS_BY_ACTION.get(action, InvalidTransitionError)
        valid = [a.value for a in self.get_valid_actions(booking)]
        raise error_cls(
            current.value,
            action.value,
            f"Cannot {action.value} booking {booking.id} in status '{current.value}'. "
            f"Valid actions: {valid}",
        )

    def get_valid_actions(self, booking: Booking) -> list[BookingAction]:
        """Return all actions currently allowed for the booking, in table order."""
        actions: list[BookingAction] = []
        for t in self.TRANSITIONS:
            if t.from_status != booking.status:
                continue
            if t.guard is not None and not t.guard(booking):
                continue
            if t.action not in actions:
                actions.append(t.action)
        return actions

    def can(self, booking: Booking, action: BookingAction) -> bool:
        return action in self.get_valid_actions(booking)

    @staticmethod
    def is_terminal(status: BookingStatus) -> bool:
        return status in TERMINAL_STATUSES
