"""
Reminder sweep: batch job for upcoming confirmed bookings.

Run periodically (``python main.py reminders``). Each booking is
reminded at least once: a crash between sending and marking can repeat a
reminder on the next run, which is acceptable since reminders carry no
monetary side effect. One booking failing never stops the batch.
"""

from typing import Optional

from booking_engine.clock import SystemClock
from booking_engine.config import settings
from booking_engine.errors import ValidationError
from booking_engine.logging_context import booking_scope, get_request_logger
from booking_engine.notifications import NotificationService
from booking_engine.ports import BookingRepository, Clock, ProfessionalDirectory
from booking_engine.schemas.booking_schema import Booking

logger = get_request_logger(__name__)


class ReminderSweep:
    def __init__(
        self,
        booking_store: BookingRepository,
        professionals: ProfessionalDirectory,
        notifications: NotificationService,
        clock: Optional[Clock] = None,
    ) -> None:
        self._bookings = booking_store
        self._professionals = professionals
        self._notifications = notifications
        self._clock = clock or SystemClock()

    async def _remind(self, booking: Booking) -> None:
        await self._notifications.send_booking_reminder(booking.client_id, booking)
        if booking.professional_id:
            professional = await self._professionals.find_by_id(booking.professional_id)
            if professional is not None:
                await self._notifications.send_booking_reminder(professional.user_id, booking)
        await self._bookings.mark_reminder_sent(booking.id, self._clock.now())

    async def process_reminders(self, hours_ahead: Optional[int] = None) -> int:
        """Remind client and professional for bookings starting within ``hours_ahead``.

        Returns the number of bookings marked as reminded.

        Raises:
            ValidationError: ``hours_ahead`` is negative.
        """
        if hours_ahead is None:
            hours_ahead = settings.reminders.hours_ahead
        if hours_ahead < 0:
            raise ValidationError(f"Reminder window must be >= 0 hours, got {hours_ahead}")
        due = await self._bookings.find_bookings_needing_reminder(self._clock.now(), hours_ahead)

        sent = 0
        failed = 0
        for booking in due:
            with booking_scope(booking.id):
                try:
                    await self._remind(booking)
                    sent += 1
                except Exception:
                    failed += 1
                    logger.exception("Failed to send reminder for booking %s", booking.id)

        logger.info(
            "Reminder sweep: %d due, %d reminded, %d failed (window %dh)",
            len(due), sent, failed, hours_ahead,
        )
        return sent
