"""Availability documents, slot results, and calendar entries."""

from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_engine.config import WEEKDAYS, SchedulingConfig, settings
from booking_engine.errors import ValidationError
from booking_engine.utils import time_to_minutes


class TimeSlot(BaseModel):
    """A time-of-day interval ``[start, end)`` a professional works."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_format(cls, value: str) -> str:
        time_to_minutes(value)
        return value.strip()

    @model_validator(mode="after")
    def _check_order(self) -> "TimeSlot":
        if time_to_minutes(self.start) >= time_to_minutes(self.end):
            raise ValueError(f"Slot start {self.start} must be before end {self.end}")
        return self


def _ordered_slots(slots: list[TimeSlot]) -> list[TimeSlot]:
    """Sort slots by start; overlapping slots within one day are rejected."""
    ordered = sorted(slots, key=lambda s: time_to_minutes(s.start))
    for earlier, later in zip(ordered, ordered[1:]):
        if time_to_minutes(later.start) < time_to_minutes(earlier.end):
            raise ValidationError(
                f"Slots {earlier.start}-{earlier.end} and {later.start}-{later.end} overlap"
            )
    return ordered


class DaySchedule(BaseModel):
    is_available: bool = False
    slots: list[TimeSlot] = Field(default_factory=list)

    @field_validator("slots")
    @classmethod
    def _check_slots(cls, value: list[TimeSlot]) -> list[TimeSlot]:
        return _ordered_slots(value)


def default_weekly_schedule(
    working_days: Optional[tuple[str, ...]] = None,
    working_hours: Optional[list[tuple[str, str]]] = None,
) -> dict[str, DaySchedule]:
    """Build the weekly schedule given to a professional on first access.

    Arguments default to the configured working days and hours; tests
    pass their own to get alternate defaults.
    """
    sched = settings.scheduling
    days = working_days if working_days is not None else sched.working_day_names
    hours = working_hours if working_hours is not None else sched.working_hour_ranges

    schedule = {}
    for day in WEEKDAYS:
        if day in days:
            schedule[day] = DaySchedule(
                is_available=True,
                slots=[TimeSlot(start=start, end=end) for start, end in hours],
            )
        else:
            schedule[day] = DaySchedule(is_available=False, slots=[])
    return schedule


class BlockedDate(BaseModel):
    """A whole day the professional cannot be booked."""
    date: date
    reason: str = ""
    added_at: Optional[datetime] = None


class SpecialDate(BaseModel):
    """Custom hours that replace the weekly schedule for one date."""
    date: date
    slots: list[TimeSlot] = Field(default_factory=list)
    reason: str = ""
    added_at: Optional[datetime] = None

    @field_validator("slots")
    @classmethod
    def _check_slots(cls, value: list[TimeSlot]) -> list[TimeSlot]:
        return _ordered_slots(value)


class Availability(BaseModel):
    """Per-professional availability document (one per professional)."""
    professional_id: str
    weekly_schedule: dict[str, DaySchedule] = Field(default_factory=default_weekly_schedule)
    blocked_dates: list[BlockedDate] = Field(default_factory=list)
    special_dates: list[SpecialDate] = Field(default_factory=list)
    buffer_time: int = Field(default_factory=lambda: settings.scheduling.buffer_minutes, ge=0)
    advance_booking_days: int = Field(
        default_factory=lambda: settings.scheduling.advance_booking_days, ge=1
    )
    min_booking_notice: int = Field(
        default_factory=lambda: settings.scheduling.min_notice_hours, ge=0
    )
    timezone: str = Field(default_factory=lambda: settings.scheduling.timezone)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    @field_validator("weekly_schedule")
    @classmethod
    def _check_weekdays(cls, value: dict[str, DaySchedule]) -> dict[str, DaySchedule]:
        unknown = [day for day in value if day not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday(s) in schedule: {unknown}")
        return value

    @classmethod
    def with_defaults(
        cls, professional_id: str, config: Optional[SchedulingConfig] = None
    ) -> "Availability":
        """Create a fresh document from configuration defaults."""
        config = config or settings.scheduling
        return cls(
            professional_id=professional_id,
            weekly_schedule=default_weekly_schedule(
                config.working_day_names, config.working_hour_ranges
            ),
            buffer_time=config.buffer_minutes,
            advance_booking_days=config.advance_booking_days,
            min_booking_notice=config.min_notice_hours,
            timezone=config.timezone,
        )

    def is_blocked(self, day: date) -> bool:
        return any(bd.date == day for bd in self.blocked_dates)

    def special_date_for(self, day: date) -> Optional[SpecialDate]:
        for sd in self.special_dates:
            if sd.date == day:
                return sd
        return None

    def slots_for_date(self, day: date) -> list[TimeSlot]:
        """Resolve base slots: blocked beats special date, which beats weekly."""
        if self.is_blocked(day):
            return []
        special = self.special_date_for(day)
        if special is not None:
            return list(special.slots)
        day_schedule = self.weekly_schedule.get(WEEKDAYS[day.weekday()])
        if day_schedule is None or not day_schedule.is_available:
            return []
        return list(day_schedule.slots)


class BookingSettingsUpdate(BaseModel):
    """Partial update of a professional's booking policy."""
    advance_booking_days: Optional[int] = Field(default=None, ge=1)
    min_booking_notice: Optional[int] = Field(default=None, ge=0)
    timezone: Optional[str] = None


class OpenSlot(BaseModel):
    """A bookable window of the requested duration."""
    start_time: str
    end_time: str
    duration: int


class SlotsResult(BaseModel):
    """Result of an available-slots lookup."""
    available: bool
    slots: list[OpenSlot] = Field(default_factory=list)
    reason: Optional[str] = None
    buffer_time: Optional[int] = None


class CalendarEntry(BaseModel):
    """One day of a monthly availability calendar."""
    date: date
    is_available: bool
    is_blocked: bool
    bookings_count: int = 0
    slots: list[TimeSlot] = Field(default_factory=list)
