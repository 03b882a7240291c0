"""Tests for booking records, windows, and pricing."""

import re
from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from booking_engine.schemas.booking_schema import (
    BookingRequest,
    BookingStatus,
    BookingWindow,
    ConfirmedState,
    Pricing,
    RejectedState,
    RescheduledState,
    new_booking_id,
)
from tests.conftest import MONDAY, NOW, make_booking


class TestPricing:
    def test_total_with_charges_discount_and_travel(self):
        pricing = Pricing(
            base_amount=5000,
            additional_charges=[{"description": "Album", "amount": 1500}],
            discounts=[{"type": "percentage", "value": 10}],
            travel_fee=250,
        )
        assert pricing.total_amount == 6100.0

    def test_fixed_discount(self):
        pricing = Pricing(base_amount=2000, discounts=[{"type": "fixed", "value": 500}])
        assert pricing.total_amount == 1500.0

    def test_percentage_applies_to_running_total(self):
        pricing = Pricing(
            base_amount=1000,
            discounts=[{"type": "fixed", "value": 200}, {"type": "percentage", "value": 50}],
        )
        assert pricing.total_amount == 400.0

    def test_total_never_negative(self):
        pricing = Pricing(base_amount=100, discounts=[{"type": "fixed", "value": 500}])
        assert pricing.total_amount == 0.0

    def test_client_supplied_total_is_ignored(self):
        assert Pricing(base_amount=300, total_amount=1).total_amount == 300.0

    def test_negative_charge_rejected(self):
        with pytest.raises(PydanticValidationError):
            Pricing(additional_charges=[{"description": "Refund", "amount": -10}])


class TestBookingWindow:
    def test_end_derived_from_duration(self):
        window = BookingWindow(booking_date=MONDAY, start_time="10:00", duration=90)
        assert window.end_time == "11:30"

    def test_duration_derived_from_end(self):
        window = BookingWindow(booking_date=MONDAY, start_time="10:00", end_time="12:00")
        assert window.duration == 120

    def test_matching_end_and_duration(self):
        window = BookingWindow(
            booking_date=MONDAY, start_time="10:00", end_time="11:00", duration=60
        )
        assert window.duration == 60

    def test_mismatched_end_and_duration(self):
        with pytest.raises(PydanticValidationError, match="does not match"):
            BookingWindow(booking_date=MONDAY, start_time="10:00", end_time="11:00", duration=90)

    def test_end_before_start(self):
        with pytest.raises(PydanticValidationError, match="must be after"):
            BookingWindow(booking_date=MONDAY, start_time="11:00", end_time="10:00")

    def test_zero_duration(self):
        with pytest.raises(PydanticValidationError):
            BookingWindow(booking_date=MONDAY, start_time="11:00", duration=0)

    def test_cannot_cross_midnight(self):
        with pytest.raises(PydanticValidationError, match="same day"):
            BookingWindow(booking_date=MONDAY, start_time="23:30", duration=60)

    def test_bad_time_format(self):
        with pytest.raises(PydanticValidationError):
            BookingWindow(booking_date=MONDAY, start_time="10am", duration=60)


class TestBookingRequest:
    def test_blank_professional_is_unassigned(self):
        request = BookingRequest(
            booking_date=MONDAY, start_time="10:00", event_type="wedding", professional_id="  "
        )
        assert request.professional_id is None

    def test_event_type_required(self):
        with pytest.raises(PydanticValidationError):
            BookingRequest(booking_date=MONDAY, start_time="10:00", event_type="")


class TestBookingRecord:
    def test_id_format(self):
        assert re.fullmatch(r"BK-[0-9A-F]{8}", new_booking_id())

    def test_new_booking_is_pending_and_blocking(self):
        booking = make_booking()
        assert booking.status == BookingStatus.PENDING
        assert booking.is_blocking
        assert booking.confirmed_at is None

    def test_window_must_match_duration(self):
        booking = make_booking()
        with pytest.raises(PydanticValidationError):
            type(booking).model_validate({**booking.model_dump(), "duration": 30})

    def test_with_state_archives_previous(self):
        booking = make_booking()
        confirmed_at = NOW + timedelta(hours=1)
        updated = booking.with_state(ConfirmedState(at=confirmed_at, actor_id="U-PRO-1"))

        assert updated.status == BookingStatus.CONFIRMED
        assert updated.confirmed_at == confirmed_at
        assert updated.updated_at == confirmed_at
        assert [entry.status for entry in updated.history] == ["pending"]
        assert booking.status == BookingStatus.PENDING

    def test_with_state_applies_changes(self):
        booking = make_booking()
        updated = booking.with_state(
            RescheduledState(
                at=NOW, previous_date=MONDAY,
                previous_start_time="10:00", previous_end_time="11:00",
            ),
            start_time="14:00", end_time="15:30", duration=90,
        )
        assert updated.start_time == "14:00"
        assert updated.duration == 90
        assert updated.rescheduled_at == NOW
        assert updated.state.previous_start_time == "10:00"

    def test_confirmed_at_survives_later_transitions(self):
        confirmed = make_booking().with_state(ConfirmedState(at=NOW))
        moved = confirmed.with_state(RescheduledState(
            at=NOW + timedelta(hours=2), previous_date=MONDAY,
            previous_start_time="10:00", previous_end_time="11:00",
        ))
        assert moved.confirmed_at == NOW

    def test_rejection_reason(self):
        rejected = make_booking().with_state(RejectedState(at=NOW, reason="Fully booked"))
        assert rejected.status_reason == "Fully booked"
        assert not rejected.is_blocking

    def test_start_datetime_uses_booking_timezone(self):
        booking = make_booking(timezone="Asia/Kolkata")
        start = booking.start_datetime()
        assert start.utcoffset() == timedelta(hours=5, minutes=30)
        assert (start.hour, start.minute) == (10, 0)

    def test_serialises_state_with_discriminator(self):
        data = make_booking().with_state(ConfirmedState(at=NOW)).model_dump(mode="json")
        assert data["state"]["status"] == "confirmed"
        assert data["history"][0]["status"] == "pending"
