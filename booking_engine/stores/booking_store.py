"""
In-memory booking store.

In production this would be a document-store collection queried by
professional, date, and status. Soft-deleted bookings are kept but never
returned by any query.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from booking_engine.errors import BookingNotFoundError
from booking_engine.schemas.booking_schema import (
    BLOCKING_STATUSES,
    Booking,
    BookingStatus,
)
from booking_engine.utils import time_to_minutes, windows_overlap

logger = logging.getLogger(__name__)


class InMemoryBookingStore:
    """Booking documents keyed by booking ID."""

    def __init__(self, bookings: Optional[list[Booking]] = None) -> None:
        self._bookings: dict[str, Booking] = {
            b.id: b.model_copy(deep=True) for b in bookings or []
        }

    def _live(self) -> list[Booking]:
        return [b for b in self._bookings.values() if not b.is_deleted]

    async def create(self, booking: Booking) -> Booking:
        await asyncio.sleep(0)
        self._bookings[booking.id] = booking.model_copy(deep=True)
        logger.debug("Booking stored: %s", booking.id)
        return booking.model_copy(deep=True)

    async def find_by_id(self, booking_id: str) -> Optional[Booking]:
        await asyncio.sleep(0)
        booking = self._bookings.get(booking_id)
        if booking is None or booking.is_deleted:
            return None
        return booking.model_copy(deep=True)

    async def update(self, booking: Booking) -> Booking:
        """Replace a stored booking wholesale, so state and timestamps land together."""
        await asyncio.sleep(0)
        if booking.id not in self._bookings:
            raise BookingNotFoundError(f"Booking {booking.id} not found")
        self._bookings[booking.id] = booking.model_copy(deep=True)
        return booking.model_copy(deep=True)

    async def find_by_date(self, professional_id: str, day: date) -> list[Booking]:
        """Blocking bookings for one professional on one date, ordered by start."""
        await asyncio.sleep(0)
        found = [
            b for b in self._live()
            if b.professional_id == professional_id
            and b.booking_date == day
            and b.status in BLOCKING_STATUSES
        ]
        found.sort(key=lambda b: time_to_minutes(b.start_time))
        return [b.model_copy(deep=True) for b in found]

    async def find_by_date_range(
        self, professional_id: str, start: date, end: date
    ) -> list[Booking]:
        """Blocking bookings with ``start <= booking_date <= end``, ascending."""
        await asyncio.sleep(0)
        found = [
            b for b in self._live()
            if b.professional_id == professional_id
            and start <= b.booking_date <= end
            and b.status in BLOCKING_STATUSES
        ]
        found.sort(key=lambda b: (b.booking_date, time_to_minutes(b.start_time)))
        return [b.model_copy(deep=True) for b in found]

    async def find_by_client_id(
        self, client_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        await asyncio.sleep(0)
        found = [
            b for b in self._live()
            if b.client_id == client_id and (status is None or b.status == status)
        ]
        found.sort(key=lambda b: b.booking_date, reverse=True)
        return [b.model_copy(deep=True) for b in found]

    async def find_by_professional_id(
        self, professional_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        await asyncio.sleep(0)
        found = [
            b for b in self._live()
            if b.professional_id == professional_id and (status is None or b.status == status)
        ]
        found.sort(key=lambda b: b.booking_date, reverse=True)
        return [b.model_copy(deep=True) for b in found]

    async def find_upcoming(self, professional_id: str, now: datetime) -> list[Booking]:
        """Confirmed bookings that have not started yet, soonest first."""
        await asyncio.sleep(0)
        found = [
            b for b in self._live()
            if b.professional_id == professional_id
            and b.status == BookingStatus.CONFIRMED
            and b.start_datetime() >= now
        ]
        found.sort(key=lambda b: b.start_datetime())
        return [b.model_copy(deep=True) for b in found]

    async def has_time_slot_conflict(
        self,
        professional_id: str,
        day: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """Exact half-open overlap check against blocking bookings, no buffer."""
        start = time_to_minutes(start_time)
        end = time_to_minutes(end_time)
        for booking in await self.find_by_date(professional_id, day):
            if exclude_booking_id and booking.id == exclude_booking_id:
                continue
            if windows_overlap(
                start, end,
                time_to_minutes(booking.start_time), time_to_minutes(booking.end_time),
            ):
                logger.debug(
                    "Conflict for %s on %s %s-%s with %s",
                    professional_id, day, start_time, end_time, booking.id,
                )
                return True
        return False

    async def find_bookings_needing_reminder(
        self, now: datetime, hours_ahead: int
    ) -> list[Booking]:
        """Confirmed, unreminded bookings starting within ``[now, now + hours_ahead]``."""
        await asyncio.sleep(0)
        horizon = now + timedelta(hours=hours_ahead)
        found = [
            b for b in self._live()
            if b.status == BookingStatus.CONFIRMED
            and not b.reminder_sent
            and now <= b.start_datetime() <= horizon
        ]
        found.sort(key=lambda b: b.start_datetime())
        return [b.model_copy(deep=True) for b in found]

    async def mark_reminder_sent(self, booking_id: str, at: datetime) -> Booking:
        await asyncio.sleep(0)
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        booking.reminder_sent = True
        booking.reminder_sent_at = at
        return booking.model_copy(deep=True)

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        self._bookings.clear()
