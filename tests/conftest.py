"""Shared test fixtures and helpers."""

from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest

from booking_engine.clock import FixedClock
from booking_engine.notifications import InMemoryNotificationChannel, NotificationService
from booking_engine.scheduling.availability import AvailabilityService
from booking_engine.scheduling.booking_service import BookingService
from booking_engine.scheduling.state_machine import BookingStateMachine
from booking_engine.schemas.booking_schema import Booking, BookingState, PendingState
from booking_engine.schemas.directory_schema import Professional, ProfessionalStatus, User
from booking_engine.stores.availability_store import InMemoryAvailabilityStore
from booking_engine.stores.booking_store import InMemoryBookingStore
from booking_engine.stores.directory import InMemoryProfessionalDirectory, InMemoryUserDirectory
from booking_engine.utils import duration_minutes

# Sunday 08:00 UTC. With the default 24h notice, Monday 2026-03-02 opens at 08:00.
NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 3, 9)
TUESDAY = date(2026, 3, 10)
SATURDAY = date(2026, 3, 14)

CLIENT_ID = "U-CLIENT-1"
OTHER_CLIENT_ID = "U-CLIENT-2"
ADMIN_ID = "U-ADMIN"
PRO_ID = "PRO-1"
PRO_USER_ID = "U-PRO-1"
OTHER_PRO_ID = "PRO-2"
OTHER_PRO_USER_ID = "U-PRO-2"
PENDING_PRO_ID = "PRO-PENDING"


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def availability_store():
    return InMemoryAvailabilityStore()


@pytest.fixture
def booking_store():
    return InMemoryBookingStore()


@pytest.fixture
def professionals():
    return InMemoryProfessionalDirectory([
        Professional(
            id=PRO_ID, user_id=PRO_USER_ID, business_name="Pune Portraits",
            status=ProfessionalStatus.APPROVED, city="Pune", state="Maharashtra",
            pincode="411001", services=["wedding", "portrait"], total_bookings=5,
        ),
        Professional(
            id=OTHER_PRO_ID, user_id=OTHER_PRO_USER_ID, business_name="Mumbai Moments",
            status=ProfessionalStatus.APPROVED, city="Mumbai", state="Maharashtra",
            pincode="400001", services=["wedding"], total_bookings=20,
        ),
        Professional(
            id=PENDING_PRO_ID, user_id="U-PRO-PENDING", business_name="Not Yet",
            status=ProfessionalStatus.PENDING, city="Pune", state="Maharashtra",
            pincode="411001", services=["wedding"],
        ),
    ])


@pytest.fixture
def users():
    return InMemoryUserDirectory([
        User(id=CLIENT_ID, name="Meera"),
        User(id=OTHER_CLIENT_ID, name="Karan"),
        User(id=PRO_USER_ID, name="Asha"),
        User(id=OTHER_PRO_USER_ID, name="Ravi"),
        User(id="U-PRO-PENDING", name="Nikhil"),
    ])


@pytest.fixture
def outbox():
    return InMemoryNotificationChannel()


@pytest.fixture
def notifications(outbox, users):
    return NotificationService(outbox, users)


@pytest.fixture
def state_machine():
    return BookingStateMachine()


@pytest.fixture
def availability_service(availability_store, booking_store, clock):
    return AvailabilityService(availability_store, booking_store, clock=clock)


@pytest.fixture
def booking_service(booking_store, availability_store, professionals, notifications, clock):
    return BookingService(
        booking_store, availability_store, professionals, notifications, clock=clock
    )


def make_request(
    professional_id: Optional[str] = PRO_ID,
    start_time: str = "10:00",
    booking_date: date = MONDAY,
    duration: Optional[int] = 60,
    **extra: Any,
) -> dict[str, Any]:
    """Helper to build a booking creation payload with sensible defaults."""
    payload: dict[str, Any] = {
        "professional_id": professional_id,
        "booking_date": booking_date.isoformat(),
        "start_time": start_time,
        "event_type": "portrait",
        "location": {"city": "Pune", "state": "Maharashtra", "pincode": "411001"},
    }
    if duration is not None:
        payload["duration"] = duration
    payload.update(extra)
    return payload


def make_booking(
    state: Optional[BookingState] = None,
    professional_id: Optional[str] = PRO_ID,
    start_time: str = "10:00",
    end_time: str = "11:00",
    booking_date: date = MONDAY,
    **extra: Any,
) -> Booking:
    """Helper to build a Booking record directly, bypassing the engine."""
    return Booking(
        client_id=extra.pop("client_id", CLIENT_ID),
        professional_id=professional_id,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        duration=duration_minutes(start_time, end_time),
        event_type=extra.pop("event_type", "portrait"),
        state=state or PendingState(at=NOW, actor_id=CLIENT_ID),
        **extra,
    )
