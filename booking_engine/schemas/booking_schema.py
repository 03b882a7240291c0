"""Booking records, pricing, and per-status state variants.

A booking's status is a tagged union: each variant carries the timestamp
and payload of its own transition, so status and timestamp are written
together and cannot disagree.
"""

import uuid
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_engine.config import settings
from booking_engine.errors import InvalidDurationError
from booking_engine.utils import add_minutes, duration_minutes, time_to_minutes


class BookingStatus(str, Enum):
    """All possible states in a booking lifecycle."""
    PENDING = "pending"
    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    RESCHEDULED = "rescheduled"


# Statuses that hold a time window for conflict checks and slot generation.
BLOCKING_STATUSES: frozenset[BookingStatus] = frozenset({
    BookingStatus.PENDING,
    BookingStatus.PROCESSING,
    BookingStatus.CONFIRMED,
    BookingStatus.RESCHEDULED,
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------- #
# Pricing
# ---------------------------------------------------------------------- #

class AdditionalCharge(BaseModel):
    description: str
    amount: float = Field(ge=0)


class Discount(BaseModel):
    type: Literal["fixed", "percentage"] = "fixed"
    value: float = Field(ge=0)


class Pricing(BaseModel):
    """Booking price breakdown. ``total_amount`` is always derived."""
    type: Literal["hourly", "package"] = "hourly"
    package_name: str = ""
    base_amount: float = Field(default=0, ge=0)
    additional_charges: list[AdditionalCharge] = Field(default_factory=list)
    discounts: list[Discount] = Field(default_factory=list)
    travel_fee: float = Field(default=0, ge=0)
    currency: str = "INR"
    total_amount: float = 0

    @model_validator(mode="after")
    def _derive_total(self) -> "Pricing":
        self.total_amount = self.calculate_total()
        return self

    def calculate_total(self) -> float:
        total = self.base_amount + sum(c.amount for c in self.additional_charges)
        for discount in self.discounts:
            if discount.type == "percentage":
                total -= total * discount.value / 100
            else:
                total -= discount.value
        total += self.travel_fee
        return round(max(0.0, total), 2)


class Location(BaseModel):
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    landmark: str = ""
    instructions: str = ""


# ---------------------------------------------------------------------- #
# State variants
# ---------------------------------------------------------------------- #

class _StateBase(BaseModel):
    at: datetime = Field(default_factory=_utcnow)
    actor_id: Optional[str] = None


class PendingState(_StateBase):
    status: Literal["pending"] = "pending"


class ProcessingState(_StateBase):
    status: Literal["processing"] = "processing"
    professional_id: str


class ConfirmedState(_StateBase):
    status: Literal["confirmed"] = "confirmed"


class RejectedState(_StateBase):
    status: Literal["rejected"] = "rejected"
    reason: str


class CancelledState(_StateBase):
    status: Literal["cancelled"] = "cancelled"
    reason: Optional[str] = None


class CompletedState(_StateBase):
    status: Literal["completed"] = "completed"


class RescheduledState(_StateBase):
    status: Literal["rescheduled"] = "rescheduled"
    previous_date: date
    previous_start_time: str
    previous_end_time: str


BookingState = Annotated[
    Union[
        PendingState,
        ProcessingState,
        ConfirmedState,
        RejectedState,
        CancelledState,
        CompletedState,
        RescheduledState,
    ],
    Field(discriminator="status"),
]


# ---------------------------------------------------------------------- #
# Requests
# ---------------------------------------------------------------------- #

class BookingWindow(BaseModel):
    """A date plus start time with either an end time or a duration.

    Whichever of ``end_time``/``duration`` is missing is derived from the
    other; when both are given they must agree.
    """
    booking_date: date
    start_time: str
    end_time: Optional[str] = None
    duration: Optional[int] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            time_to_minutes(value)
            value = value.strip()
        return value

    @model_validator(mode="after")
    def _resolve_end(self) -> "BookingWindow":
        if self.end_time is None and self.duration is None:
            self.duration = settings.scheduling.default_duration_minutes
        if self.duration is not None and self.duration <= 0:
            raise InvalidDurationError(f"Duration must be positive, got {self.duration}")

        if self.end_time is None:
            if time_to_minutes(self.start_time) + self.duration >= 24 * 60:
                raise InvalidDurationError("Booking must end on the same day it starts")
            self.end_time = add_minutes(self.start_time, self.duration)

        span = duration_minutes(self.start_time, self.end_time)
        if span <= 0:
            raise InvalidDurationError(
                f"End time {self.end_time} must be after start time {self.start_time}"
            )
        if self.duration is not None and self.duration != span:
            raise InvalidDurationError(
                f"Duration {self.duration} does not match {self.start_time}-{self.end_time}"
            )
        self.duration = span
        return self


class BookingRequest(BookingWindow):
    """Validated booking creation payload."""
    professional_id: Optional[str] = None
    event_type: str = Field(min_length=1)
    event_details: dict[str, Any] = Field(default_factory=dict)
    location: Location = Field(default_factory=Location)
    pricing: Pricing = Field(default_factory=Pricing)
    client_notes: str = ""

    @field_validator("professional_id")
    @classmethod
    def _blank_is_unassigned(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


# ---------------------------------------------------------------------- #
# Booking record
# ---------------------------------------------------------------------- #

def new_booking_id() -> str:
    return f"BK-{uuid.uuid4().hex[:8].upper()}"


class Booking(BaseModel):
    """Persisted booking document."""
    id: str = Field(default_factory=new_booking_id)
    client_id: str
    professional_id: Optional[str] = None
    booking_date: date
    start_time: str
    end_time: str
    duration: int
    timezone: str = "UTC"
    event_type: str
    event_details: dict[str, Any] = Field(default_factory=dict)
    location: Location = Field(default_factory=Location)
    pricing: Pricing = Field(default_factory=Pricing)
    client_notes: str = ""
    state: BookingState = Field(default_factory=PendingState)
    history: list[BookingState] = Field(default_factory=list)
    has_review: bool = False
    review_id: Optional[str] = None
    reminder_sent: bool = False
    reminder_sent_at: Optional[datetime] = None
    is_deleted: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_window(self) -> "Booking":
        if duration_minutes(self.start_time, self.end_time) != self.duration:
            raise InvalidDurationError(
                f"Booking {self.id} window {self.start_time}-{self.end_time} "
                f"does not match duration {self.duration}"
            )
        return self

    @property
    def status(self) -> BookingStatus:
        return BookingStatus(self.state.status)

    @property
    def status_reason(self) -> Optional[str]:
        return getattr(self.state, "reason", None)

    def _last_at(self, status: str) -> Optional[datetime]:
        for entry in [self.state, *reversed(self.history)]:
            if entry.status == status:
                return entry.at
        return None

    @property
    def confirmed_at(self) -> Optional[datetime]:
        return self._last_at("confirmed")

    @property
    def rejected_at(self) -> Optional[datetime]:
        return self._last_at("rejected")

    @property
    def cancelled_at(self) -> Optional[datetime]:
        return self._last_at("cancelled")

    @property
    def completed_at(self) -> Optional[datetime]:
        return self._last_at("completed")

    @property
    def rescheduled_at(self) -> Optional[datetime]:
        return self._last_at("rescheduled")

    @property
    def is_blocking(self) -> bool:
        return not self.is_deleted and self.status in BLOCKING_STATUSES

    def can_be_reviewed(self) -> bool:
        return self.status == BookingStatus.COMPLETED and not self.has_review

    def start_datetime(self) -> datetime:
        """Timezone-aware start instant in the booking's timezone."""
        hours, minutes = divmod(time_to_minutes(self.start_time), 60)
        return datetime.combine(
            self.booking_date, time(hours, minutes), tzinfo=ZoneInfo(self.timezone)
        )

    def with_state(self, new_state: BookingState, **changes: Any) -> "Booking":
        """Return a copy moved to ``new_state``, archiving the current state."""
        updated = self.model_copy(deep=True)
        updated.history.append(updated.state)
        updated.state = new_state
        for key, value in changes.items():
            setattr(updated, key, value)
        updated.updated_at = new_state.at
        return Booking.model_validate(updated.model_dump())
