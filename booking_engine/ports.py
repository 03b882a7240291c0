"""
Interfaces of the collaborators the engine consumes.

The in-memory implementations under ``booking_engine.stores`` and
``booking_engine.notifications`` satisfy these; a production deployment
swaps in document-store and push/WhatsApp backed versions.
"""

from datetime import date, datetime
from typing import Optional, Protocol

from booking_engine.schemas.availability_schema import (
    Availability,
    BlockedDate,
    BookingSettingsUpdate,
    DaySchedule,
    SpecialDate,
)
from booking_engine.schemas.booking_schema import Booking, BookingStatus
from booking_engine.schemas.directory_schema import Professional, User
from booking_engine.schemas.notification_schema import Notification


class Clock(Protocol):
    def now(self) -> datetime:
        """Current timezone-aware instant."""
        ...


class ProfessionalDirectory(Protocol):
    async def find_by_id(self, professional_id: str) -> Optional[Professional]: ...

    async def increment_booking_count(self, professional_id: str) -> None: ...

    async def find_approved(self) -> list[Professional]: ...


class UserDirectory(Protocol):
    async def find_by_id(self, user_id: str) -> Optional[User]: ...


class NotificationChannel(Protocol):
    async def send_notification(self, user_id: str, notification: Notification) -> bool:
        """Deliver a notification; returns the channel's acknowledgement."""
        ...


class AvailabilityRepository(Protocol):
    async def get_or_create(self, professional_id: str) -> Availability: ...

    async def update_weekly_schedule(
        self, professional_id: str, weekly_schedule: dict[str, DaySchedule]
    ) -> Availability: ...

    async def add_blocked_date(
        self, professional_id: str, blocked_date: BlockedDate
    ) -> Availability: ...

    async def remove_blocked_date(self, professional_id: str, day: date) -> Availability: ...

    async def add_special_date(
        self, professional_id: str, special_date: SpecialDate
    ) -> Availability: ...

    async def remove_special_date(self, professional_id: str, day: date) -> Availability: ...

    async def update_buffer_time(self, professional_id: str, buffer_time: int) -> Availability: ...

    async def update_booking_settings(
        self, professional_id: str, update: BookingSettingsUpdate
    ) -> Availability: ...


class BookingRepository(Protocol):
    async def create(self, booking: Booking) -> Booking: ...

    async def find_by_id(self, booking_id: str) -> Optional[Booking]: ...

    async def update(self, booking: Booking) -> Booking: ...

    async def find_by_date(self, professional_id: str, day: date) -> list[Booking]: ...

    async def find_by_date_range(
        self, professional_id: str, start: date, end: date
    ) -> list[Booking]: ...

    async def find_by_client_id(
        self, client_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]: ...

    async def find_by_professional_id(
        self, professional_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]: ...

    async def find_upcoming(self, professional_id: str, now: datetime) -> list[Booking]: ...

    async def has_time_slot_conflict(
        self,
        professional_id: str,
        day: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> bool: ...

    async def find_bookings_needing_reminder(
        self, now: datetime, hours_ahead: int
    ) -> list[Booking]: ...

    async def mark_reminder_sent(self, booking_id: str, at: datetime) -> Booking: ...
