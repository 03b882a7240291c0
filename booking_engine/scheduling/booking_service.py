"""
Booking lifecycle engine. Creates bookings and drives every status change.

Each public transition method follows the same shape:
Lock the booking -> Re-read it -> Ask the state machine -> Re-validate
(professional, conflicts) -> Write status and timestamp in one store call
-> Side effects (booking counter, notifications). Callers never patch
booking fields directly, so side effects cannot be skipped.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Optional, Union

from booking_engine.clock import SystemClock
from booking_engine.errors import (
    BookingNotFoundError,
    InvalidTransitionError,
    ProfessionalNotApprovedError,
    ProfessionalNotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from booking_engine.logging_context import booking_scope, get_request_logger
from booking_engine.notifications import NotificationService
from booking_engine.ports import (
    AvailabilityRepository,
    BookingRepository,
    Clock,
    ProfessionalDirectory,
)
from booking_engine.scheduling.availability import check_booking_policy
from booking_engine.scheduling.locks import SlotLockRegistry
from booking_engine.scheduling.matching import RankedProfessional, rank_professionals
from booking_engine.scheduling.reminders import ReminderSweep
from booking_engine.scheduling.state_machine import BookingAction, BookingStateMachine
from booking_engine.schemas.availability_schema import Availability
from booking_engine.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingStatus,
    BookingWindow,
    CancelledState,
    CompletedState,
    ConfirmedState,
    PendingState,
    ProcessingState,
    RejectedState,
    RescheduledState,
)
from booking_engine.schemas.directory_schema import Professional
from booking_engine.validation import parse_model

logger = get_request_logger(__name__)

# Policy source for bookings that have no professional yet.
UNASSIGNED = "__unassigned__"


class BookingService:
    """Booking creation, status transitions, queries, and reminders."""

    def __init__(
        self,
        booking_store: BookingRepository,
        availability_store: AvailabilityRepository,
        professionals: ProfessionalDirectory,
        notifications: NotificationService,
        clock: Optional[Clock] = None,
        locks: Optional[SlotLockRegistry] = None,
    ) -> None:
        self._bookings = booking_store
        self._availability = availability_store
        self._professionals = professionals
        self._notifications = notifications
        self._clock = clock or SystemClock()
        self._locks = locks if locks is not None else SlotLockRegistry()
        self._state_machine = BookingStateMachine()
        self._reminders = ReminderSweep(
            booking_store, professionals, notifications, clock=self._clock
        )

    # ------------------------------------------------------------------ #
    # Shared lookups
    # ------------------------------------------------------------------ #

    async def get_by_id(self, booking_id: str) -> Booking:
        booking = await self._bookings.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    async def _get_approved_professional(self, professional_id: str) -> Professional:
        professional = await self._professionals.find_by_id(professional_id)
        if professional is None:
            raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
        if not professional.is_approved:
            raise ProfessionalNotApprovedError(
                f"Professional {professional_id} is {professional.status.value}, not approved"
            )
        return professional

    async def _notify_counterparty(self, booking: Booking, actor_id: str) -> Optional[str]:
        """Resolve the other party's user ID: the professional when the client acts."""
        if actor_id != booking.client_id:
            return booking.client_id
        if booking.professional_id is None:
            return None
        professional = await self._professionals.find_by_id(booking.professional_id)
        return professional.user_id if professional else None

    @asynccontextmanager
    async def _locked(
        self, booking_id: str, action: Optional[BookingAction] = None
    ) -> AsyncIterator[Booking]:
        """Hold the booking's lock and yield a fresh read, checked against ``action``.

        Everything in the block runs against that read, so a concurrent
        transition on the same booking sees the result instead of the
        state both started from.
        """
        with booking_scope(booking_id):
            async with self._locks.hold_booking(booking_id):
                booking = await self.get_by_id(booking_id)
                if action is not None:
                    self._state_machine.next_status(booking, action)
                yield booking

    async def _ensure_free(
        self,
        professional_id: str,
        window: BookingWindow,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        if await self._bookings.has_time_slot_conflict(
            professional_id,
            window.booking_date,
            window.start_time,
            window.end_time,
            exclude_booking_id,
        ):
            raise SlotUnavailableError(
                f"{window.booking_date.isoformat()} {window.start_time}-{window.end_time} "
                f"is already booked for professional {professional_id}"
            )

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    async def create_booking(
        self, client_id: str, payload: Union[BookingRequest, dict[str, Any]]
    ) -> Booking:
        """
        Create a pending booking.

        With a ``professional_id`` the professional must exist and be
        approved, the window must respect their notice and advance-booking
        policy, and it must not overlap their blocking bookings. Without
        one the booking waits for admin assignment.

        Raises:
            ProfessionalNotFoundError, ProfessionalNotApprovedError,
            TooFarInAdvanceError, InsufficientNoticeError,
            SlotUnavailableError, ValidationError.
        """
        request = parse_model(BookingRequest, payload)
        now = self._clock.now()

        fields = request.model_dump(exclude={"professional_id"})
        if request.professional_id is None:
            policy = Availability.with_defaults(UNASSIGNED)
            check_booking_policy(policy, request.booking_date, request.start_time, self._clock)
            booking = await self._bookings.create(Booking(
                client_id=client_id,
                timezone=policy.timezone,
                state=PendingState(at=now, actor_id=client_id),
                created_at=now,
                **fields,
            ))
            logger.info(
                "Booking created: %s by %s on %s %s-%s (awaiting assignment)",
                booking.id, client_id, booking.booking_date, booking.start_time, booking.end_time,
            )
            return booking

        professional = await self._get_approved_professional(request.professional_id)
        availability = await self._availability.get_or_create(professional.id)
        check_booking_policy(availability, request.booking_date, request.start_time, self._clock)

        async with self._locks.hold(professional.id, request.booking_date):
            await self._ensure_free(professional.id, request)
            booking = await self._bookings.create(Booking(
                client_id=client_id,
                professional_id=professional.id,
                timezone=availability.timezone,
                state=PendingState(at=now, actor_id=client_id),
                created_at=now,
                **fields,
            ))

        await self._notifications.send_new_booking(professional.user_id, booking)
        logger.info(
            "Booking created: %s by %s with %s on %s %s-%s",
            booking.id, client_id, professional.id,
            booking.booking_date, booking.start_time, booking.end_time,
        )
        return booking

    # ------------------------------------------------------------------ #
    # Professional responses
    # ------------------------------------------------------------------ #

    async def confirm_booking(self, booking_id: str, actor_id: str) -> Booking:
        """Confirm a pending, assigned, or rescheduled booking."""
        async with self._locked(booking_id, BookingAction.CONFIRM) as booking:
            first_confirmation = booking.confirmed_at is None
            updated = await self._bookings.update(
                booking.with_state(ConfirmedState(at=self._clock.now(), actor_id=actor_id))
            )

            if first_confirmation:
                try:
                    await self._professionals.increment_booking_count(booking.professional_id)
                except Exception:
                    logger.exception(
                        "Booking count not updated for %s", booking.professional_id
                    )
            await self._notifications.send_booking_confirmation(booking.client_id, updated)
            logger.info("Booking confirmed: %s by %s", booking_id, actor_id)
        return updated

    async def reject_booking(self, booking_id: str, actor_id: str, reason: str) -> Booking:
        """Decline a pending or assigned booking. ``reason`` is shown to the client verbatim."""
        if not reason or not reason.strip():
            raise ValidationError("A reason is required to reject a booking")

        async with self._locked(booking_id, BookingAction.REJECT) as booking:
            updated = await self._bookings.update(booking.with_state(
                RejectedState(at=self._clock.now(), actor_id=actor_id, reason=reason)
            ))
            await self._notifications.send_booking_rejection(booking.client_id, updated, reason)
            logger.info("Booking rejected: %s by %s (%s)", booking_id, actor_id, reason)
        return updated

    async def complete_booking(self, booking_id: str, actor_id: str) -> Booking:
        """Mark a confirmed booking as done and ask the client for a review."""
        async with self._locked(booking_id, BookingAction.COMPLETE) as booking:
            updated = await self._bookings.update(
                booking.with_state(CompletedState(at=self._clock.now(), actor_id=actor_id))
            )
            await self._notifications.send_review_request(booking.client_id, updated)
            logger.info("Booking completed: %s", booking_id)
        return updated

    # ------------------------------------------------------------------ #
    # Client / professional changes
    # ------------------------------------------------------------------ #

    async def cancel_booking(
        self, booking_id: str, actor_id: str, reason: Optional[str] = None
    ) -> Booking:
        """
        Cancel a booking that has not reached a final status.

        Raises:
            BookingCannotCancelError: booking is completed, cancelled, or rejected.
        """
        async with self._locked(booking_id, BookingAction.CANCEL) as booking:
            updated = await self._bookings.update(booking.with_state(
                CancelledState(at=self._clock.now(), actor_id=actor_id, reason=reason)
            ))

            recipient = await self._notify_counterparty(booking, actor_id)
            if recipient:
                await self._notifications.send_booking_cancellation(recipient, updated, reason)
            logger.info("Booking cancelled: %s by %s", booking_id, actor_id)
        return updated

    async def reschedule_booking(
        self,
        booking_id: str,
        actor_id: str,
        new_window: Union[BookingWindow, dict[str, Any]],
    ) -> Booking:
        """
        Move a booking to a new date/time.

        The new window goes through the same conflict check as creation,
        ignoring the booking's own current slot.

        Raises:
            BookingCannotRescheduleError: booking is in a final status.
            SlotUnavailableError: the new window overlaps another booking.
        """
        window = parse_model(BookingWindow, new_window)

        async with self._locked(booking_id, BookingAction.RESCHEDULE) as booking:
            new_state = RescheduledState(
                at=self._clock.now(),
                actor_id=actor_id,
                previous_date=booking.booking_date,
                previous_start_time=booking.start_time,
                previous_end_time=booking.end_time,
            )
            changes = {
                "booking_date": window.booking_date,
                "start_time": window.start_time,
                "end_time": window.end_time,
                "duration": window.duration,
                "reminder_sent": False,
                "reminder_sent_at": None,
            }

            if booking.professional_id is None:
                updated = await self._bookings.update(booking.with_state(new_state, **changes))
            else:
                availability = await self._availability.get_or_create(booking.professional_id)
                check_booking_policy(
                    availability, window.booking_date, window.start_time, self._clock
                )
                async with self._locks.hold(booking.professional_id, window.booking_date):
                    await self._ensure_free(
                        booking.professional_id, window, exclude_booking_id=booking.id
                    )
                    updated = await self._bookings.update(booking.with_state(new_state, **changes))

            recipient = await self._notify_counterparty(booking, actor_id)
            if recipient:
                await self._notifications.send_booking_rescheduled(
                    recipient, updated, booking.booking_date, booking.start_time
                )
            logger.info(
                "Booking rescheduled: %s to %s %s-%s by %s",
                booking_id, updated.booking_date, updated.start_time, updated.end_time, actor_id,
            )
        return updated

    # ------------------------------------------------------------------ #
    # Admin assignment
    # ------------------------------------------------------------------ #

    async def assign_professional(
        self, booking_id: str, professional_id: str, admin_id: str
    ) -> Booking:
        """Assign an approved professional to an unassigned pending booking."""
        async with self._locked(booking_id, BookingAction.ASSIGN) as booking:
            professional = await self._get_approved_professional(professional_id)
            availability = await self._availability.get_or_create(professional.id)

            async with self._locks.hold(professional.id, booking.booking_date):
                await self._ensure_free(
                    professional.id,
                    BookingWindow(
                        booking_date=booking.booking_date,
                        start_time=booking.start_time,
                        end_time=booking.end_time,
                    ),
                )
                updated = await self._bookings.update(booking.with_state(
                    ProcessingState(
                        at=self._clock.now(), actor_id=admin_id, professional_id=professional.id
                    ),
                    professional_id=professional.id,
                    timezone=availability.timezone,
                ))

            await self._notifications.send_professional_assigned(professional.user_id, updated)
            await self._notifications.send_booking_assigned_to_client(booking.client_id, updated)
            logger.info("Booking assigned: %s to %s by %s", booking_id, professional.id, admin_id)
        return updated

    async def suggest_professionals(
        self, booking_id: str, service: Optional[str] = None
    ) -> list[RankedProfessional]:
        """Approved professionals free for the booking's window, best match first."""
        booking = await self.get_by_id(booking_id)
        ranked = rank_professionals(
            await self._professionals.find_approved(),
            booking.location,
            service or booking.event_type,
        )
        free = []
        for candidate in ranked:
            busy = await self._bookings.has_time_slot_conflict(
                candidate.professional.id,
                booking.booking_date,
                booking.start_time,
                booking.end_time,
                exclude_booking_id=booking.id,
            )
            if not busy:
                free.append(candidate)
        return free

    # ------------------------------------------------------------------ #
    # Reviews and deletion
    # ------------------------------------------------------------------ #

    async def mark_reviewed(self, booking_id: str, review_id: str) -> Booking:
        async with self._locked(booking_id) as booking:
            if not booking.can_be_reviewed():
                raise InvalidTransitionError(
                    booking.status.value,
                    "review",
                    f"Booking {booking_id} cannot be reviewed "
                    f"(status '{booking.status.value}', has_review={booking.has_review})",
                )
            updated = booking.model_copy(update={"has_review": True, "review_id": review_id})
            return await self._bookings.update(updated)

    async def delete_booking(self, booking_id: str, actor_id: str) -> Booking:
        """Soft-delete: the record stays for history but disappears from queries."""
        async with self._locked(booking_id) as booking:
            deleted = booking.model_copy(
                update={"is_deleted": True, "updated_at": self._clock.now()}
            )
            await self._bookings.update(deleted)
            logger.info("Booking deleted: %s by %s", booking_id, actor_id)
        return deleted

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    async def get_client_bookings(
        self, client_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        return await self._bookings.find_by_client_id(client_id, status)

    async def get_professional_bookings(
        self, professional_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        return await self._bookings.find_by_professional_id(professional_id, status)

    async def get_upcoming_bookings(self, professional_id: str) -> list[Booking]:
        return await self._bookings.find_upcoming(professional_id, self._clock.now())

    async def get_bookings_for_date(self, professional_id: str, day: date) -> list[Booking]:
        return await self._bookings.find_by_date(professional_id, day)

    async def get_bookings_in_range(
        self, professional_id: str, start: date, end: date
    ) -> list[Booking]:
        if start > end:
            raise ValidationError(f"Range start {start} is after end {end}")
        return await self._bookings.find_by_date_range(professional_id, start, end)

    # ------------------------------------------------------------------ #
    # Reminders
    # ------------------------------------------------------------------ #

    async def process_reminders(self, hours_ahead: Optional[int] = None) -> int:
        return await self._reminders.process_reminders(hours_ahead)
