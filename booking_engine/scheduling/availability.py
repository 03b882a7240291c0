"""
Availability engine: schedule management and free-slot computation.

Combines a professional's availability document (weekly schedule,
special dates, blocked dates, buffer, booking policy) with their
existing bookings to produce the windows a client can book.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_engine.clock import SystemClock
from booking_engine.config import WEEKDAYS, settings
from booking_engine.errors import (
    InsufficientNoticeError,
    InvalidDurationError,
    TooFarInAdvanceError,
    ValidationError,
)
from booking_engine.logging_context import get_request_logger
from booking_engine.ports import AvailabilityRepository, BookingRepository, Clock
from booking_engine.schemas.availability_schema import (
    Availability,
    BlockedDate,
    BookingSettingsUpdate,
    CalendarEntry,
    DaySchedule,
    OpenSlot,
    SlotsResult,
    SpecialDate,
    TimeSlot,
)
from booking_engine.utils import minutes_to_time, time_to_minutes, windows_overlap
from booking_engine.validation import parse_model

logger = get_request_logger(__name__)

REASON_TOO_FAR = "too far in advance"
REASON_INSUFFICIENT_NOTICE = "insufficient notice"
REASON_NO_AVAILABILITY = "no availability on this date"
REASON_FULLY_BOOKED = "fully booked"


def local_now(clock: Clock, tz_name: str) -> datetime:
    """Current wall time in ``tz_name`` as a naive datetime."""
    return clock.now().astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def _validate_timezone(tz_name: str) -> None:
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {tz_name!r}") from None


def check_booking_policy(
    availability: Availability, day: date, start_time: str, clock: Clock
) -> None:
    """Enforce the advance-booking window and minimum notice for one start time.

    Raises:
        TooFarInAdvanceError: ``day`` is past today + ``advance_booking_days``.
        InsufficientNoticeError: the start is sooner than ``min_booking_notice`` hours.
    """
    now = local_now(clock, availability.timezone)
    if day > now.date() + timedelta(days=availability.advance_booking_days):
        raise TooFarInAdvanceError(
            f"{day.isoformat()} is more than {availability.advance_booking_days} days ahead"
        )
    hours, minutes = divmod(time_to_minutes(start_time), 60)
    starts_at = datetime.combine(day, datetime.min.time()).replace(hour=hours, minute=minutes)
    if starts_at < now + timedelta(hours=availability.min_booking_notice):
        raise InsufficientNoticeError(
            f"Bookings need at least {availability.min_booking_notice} hours notice"
        )


class AvailabilityService:
    """Schedule management plus slot and calendar computation."""

    def __init__(
        self,
        availability_store: AvailabilityRepository,
        booking_store: BookingRepository,
        clock: Optional[Clock] = None,
        slot_step_minutes: Optional[int] = None,
    ) -> None:
        self._availability = availability_store
        self._bookings = booking_store
        self._clock = clock or SystemClock()
        self._step = slot_step_minutes or settings.scheduling.slot_step_minutes

    # ------------------------------------------------------------------ #
    # Schedule management
    # ------------------------------------------------------------------ #

    async def get_availability(self, professional_id: str) -> Availability:
        return await self._availability.get_or_create(professional_id)

    async def update_weekly_schedule(
        self,
        professional_id: str,
        weekly_schedule: dict[str, Union[DaySchedule, dict[str, Any]]],
    ) -> Availability:
        unknown = sorted(day for day in weekly_schedule if day not in WEEKDAYS)
        if unknown:
            raise ValidationError(f"Unknown weekday(s) in schedule: {unknown}")
        days = {day: parse_model(DaySchedule, entry) for day, entry in weekly_schedule.items()}
        updated = await self._availability.update_weekly_schedule(professional_id, days)
        logger.info(
            "Weekly schedule updated for %s (%s)", professional_id, ", ".join(sorted(weekly_schedule))
        )
        return updated

    async def add_blocked_date(
        self, professional_id: str, day: date, reason: str = ""
    ) -> Availability:
        updated = await self._availability.add_blocked_date(
            professional_id, BlockedDate(date=day, reason=reason)
        )
        logger.info("Blocked date added for %s: %s", professional_id, day)
        return updated

    async def remove_blocked_date(self, professional_id: str, day: date) -> Availability:
        updated = await self._availability.remove_blocked_date(professional_id, day)
        logger.info("Blocked date removed for %s: %s", professional_id, day)
        return updated

    async def add_special_date(
        self,
        professional_id: str,
        day: date,
        slots: list[Union[TimeSlot, dict[str, Any]]],
        reason: str = "",
    ) -> Availability:
        special = parse_model(SpecialDate, {"date": day, "slots": slots, "reason": reason})
        updated = await self._availability.add_special_date(professional_id, special)
        logger.info("Special date added for %s: %s", professional_id, day)
        return updated

    async def remove_special_date(self, professional_id: str, day: date) -> Availability:
        updated = await self._availability.remove_special_date(professional_id, day)
        logger.info("Special date removed for %s: %s", professional_id, day)
        return updated

    async def update_buffer_time(self, professional_id: str, buffer_time: int) -> Availability:
        if buffer_time < 0:
            raise ValidationError(f"Buffer time must be >= 0, got {buffer_time}")
        updated = await self._availability.update_buffer_time(professional_id, buffer_time)
        logger.info("Buffer time for %s set to %d minutes", professional_id, buffer_time)
        return updated

    async def update_booking_settings(
        self,
        professional_id: str,
        update: Union[BookingSettingsUpdate, dict[str, Any]],
    ) -> Availability:
        update = parse_model(BookingSettingsUpdate, update)
        if update.timezone is not None:
            _validate_timezone(update.timezone)
        updated = await self._availability.update_booking_settings(professional_id, update)
        logger.info("Booking settings updated for %s", professional_id)
        return updated

    # ------------------------------------------------------------------ #
    # Slot computation
    # ------------------------------------------------------------------ #

    async def get_available_slots(
        self, professional_id: str, day: date, duration: Optional[int] = None
    ) -> SlotsResult:
        """
        Compute bookable windows of ``duration`` minutes on ``day``.

        Returns a SlotsResult; ``available`` is False with a ``reason`` when
        the date is outside the booking window, lacks notice, has no working
        hours, or is fully booked.
        """
        duration = duration if duration is not None else settings.scheduling.default_duration_minutes
        if not isinstance(duration, int) or duration <= 0:
            raise InvalidDurationError(f"Duration must be a positive integer, got {duration!r}")

        availability = await self._availability.get_or_create(professional_id)
        now = local_now(self._clock, availability.timezone)

        if day > now.date() + timedelta(days=availability.advance_booking_days):
            return SlotsResult(available=False, reason=REASON_TOO_FAR)

        notice_cutoff = now + timedelta(hours=availability.min_booking_notice)
        if datetime.combine(day + timedelta(days=1), datetime.min.time()) <= notice_cutoff:
            return SlotsResult(available=False, reason=REASON_INSUFFICIENT_NOTICE)

        base_slots = availability.slots_for_date(day)
        if not base_slots:
            return SlotsResult(available=False, reason=REASON_NO_AVAILABILITY)

        existing = await self._bookings.find_by_date(professional_id, day)
        booked = [(b.start_time, b.end_time) for b in existing]

        candidates = self.calculate_available_slots(
            base_slots, booked, duration, availability.buffer_time, self._step
        )
        slots = [
            slot for slot in candidates
            if self._starts_at(day, slot.start_time) >= notice_cutoff
        ]

        if not slots:
            reason = REASON_INSUFFICIENT_NOTICE if candidates else REASON_FULLY_BOOKED
            return SlotsResult(available=False, reason=reason, buffer_time=availability.buffer_time)

        logger.debug(
            "%d slot(s) of %d min for %s on %s", len(slots), duration, professional_id, day
        )
        return SlotsResult(available=True, slots=slots, buffer_time=availability.buffer_time)

    @staticmethod
    def _starts_at(day: date, start_time: str) -> datetime:
        hours, minutes = divmod(time_to_minutes(start_time), 60)
        return datetime.combine(day, datetime.min.time()).replace(hour=hours, minute=minutes)

    @staticmethod
    def calculate_available_slots(
        base_slots: list[TimeSlot],
        booked: list[tuple[str, str]],
        duration: int,
        buffer_time: int,
        step: int = 30,
    ) -> list[OpenSlot]:
        """Walk each base slot in ``step``-minute increments.

        A candidate ``[t, t + duration)`` is kept when it fits inside the
        base slot and does not overlap any booked window widened by
        ``buffer_time`` on both sides.
        """
        blocked = [
            (time_to_minutes(start) - buffer_time, time_to_minutes(end) + buffer_time)
            for start, end in booked
        ]
        open_slots: list[OpenSlot] = []
        for slot in base_slots:
            slot_start = time_to_minutes(slot.start)
            slot_end = time_to_minutes(slot.end)
            current = slot_start
            while current + duration <= slot_end:
                end = current + duration
                if not any(windows_overlap(current, end, b_start, b_end) for b_start, b_end in blocked):
                    open_slots.append(OpenSlot(
                        start_time=minutes_to_time(current),
                        end_time=minutes_to_time(end),
                        duration=duration,
                    ))
                current += step
        return open_slots

    async def is_slot_available(
        self, professional_id: str, day: date, start_time: str, end_time: str
    ) -> bool:
        """True when the window is inside working hours and conflicts with nothing."""
        availability = await self._availability.get_or_create(professional_id)
        if availability.is_blocked(day):
            return False

        start = time_to_minutes(start_time)
        end = time_to_minutes(end_time)
        within_hours = any(
            time_to_minutes(slot.start) <= start and end <= time_to_minutes(slot.end)
            for slot in availability.slots_for_date(day)
        )
        if not within_hours:
            return False

        return not await self._bookings.has_time_slot_conflict(
            professional_id, day, start_time, end_time
        )

    # ------------------------------------------------------------------ #
    # Calendar
    # ------------------------------------------------------------------ #

    async def get_monthly_availability(
        self, professional_id: str, year: int, month: int
    ) -> list[CalendarEntry]:
        """One entry per day of the month with resolved slots and booking counts."""
        if not 1 <= month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {month}")
        if not 1 <= year <= 9999:
            raise ValidationError(f"Invalid year: {year}")

        availability = await self._availability.get_or_create(professional_id)
        days_in_month = calendar.monthrange(year, month)[1]
        first = date(year, month, 1)
        last = date(year, month, days_in_month)

        counts: dict[date, int] = {}
        for booking in await self._bookings.find_by_date_range(professional_id, first, last):
            counts[booking.booking_date] = counts.get(booking.booking_date, 0) + 1

        entries = []
        for offset in range(days_in_month):
            day = first + timedelta(days=offset)
            is_blocked = availability.is_blocked(day)
            slots = availability.slots_for_date(day)
            entries.append(CalendarEntry(
                date=day,
                is_available=not is_blocked and bool(slots),
                is_blocked=is_blocked,
                bookings_count=counts.get(day, 0),
                slots=slots,
            ))
        return entries
