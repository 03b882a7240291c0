"""Tests for serialized conflict checks under concurrent requests."""

import asyncio
from datetime import date, timedelta

import pytest

from booking_engine.errors import BookingCannotCancelError, SlotUnavailableError
from booking_engine.scheduling.booking_service import BookingService
from booking_engine.scheduling.locks import SlotLockRegistry
from booking_engine.schemas.booking_schema import BookingStatus
from tests.conftest import (
    CLIENT_ID,
    MONDAY,
    OTHER_CLIENT_ID,
    PRO_ID,
    PRO_USER_ID,
    TUESDAY,
    make_request,
)


class TestConcurrentCreates:
    @pytest.mark.asyncio
    async def test_overlapping_creates_yield_one_booking(self, booking_service, booking_store):
        results = await asyncio.gather(
            booking_service.create_booking(CLIENT_ID, make_request(start_time="10:00")),
            booking_service.create_booking(OTHER_CLIENT_ID, make_request(start_time="10:30")),
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], SlotUnavailableError)
        assert len(await booking_store.find_by_date(PRO_ID, MONDAY)) == 1

    @pytest.mark.asyncio
    async def test_many_identical_requests(self, booking_service, booking_store):
        results = await asyncio.gather(
            *(
                booking_service.create_booking(f"U-CLIENT-{i}", make_request())
                for i in range(10)
            ),
            return_exceptions=True,
        )
        assert sum(1 for r in results if not isinstance(r, Exception)) == 1
        assert all(
            isinstance(r, SlotUnavailableError) for r in results if isinstance(r, Exception)
        )
        assert len(await booking_store.find_by_date(PRO_ID, MONDAY)) == 1

    @pytest.mark.asyncio
    async def test_different_days_do_not_contend(self, booking_service):
        results = await asyncio.gather(
            booking_service.create_booking(CLIENT_ID, make_request(booking_date=MONDAY)),
            booking_service.create_booking(OTHER_CLIENT_ID, make_request(booking_date=TUESDAY)),
        )
        assert {b.booking_date for b in results} == {MONDAY, TUESDAY}

    @pytest.mark.asyncio
    async def test_reschedule_races_create(self, booking_service, booking_store):
        existing = await booking_service.create_booking(
            CLIENT_ID, make_request(booking_date=TUESDAY)
        )
        await booking_service.confirm_booking(existing.id, PRO_USER_ID)

        results = await asyncio.gather(
            booking_service.reschedule_booking(
                existing.id, CLIENT_ID,
                {"booking_date": MONDAY, "start_time": "15:00", "duration": 60},
            ),
            booking_service.create_booking(
                OTHER_CLIENT_ID, make_request(start_time="15:30")
            ),
            return_exceptions=True,
        )
        assert sum(1 for r in results if isinstance(r, SlotUnavailableError)) == 1

        monday = await booking_store.find_by_date(PRO_ID, MONDAY)
        assert len(monday) == 1
        assert monday[0].status in (BookingStatus.RESCHEDULED, BookingStatus.PENDING)


class TestConcurrentTransitions:
    @pytest.mark.asyncio
    async def test_cancel_racing_reschedule_stays_cancelled(self, booking_service):
        booking = await booking_service.create_booking(CLIENT_ID, make_request())
        await booking_service.confirm_booking(booking.id, PRO_USER_ID)

        await asyncio.gather(
            booking_service.reschedule_booking(
                booking.id, CLIENT_ID,
                {"booking_date": MONDAY, "start_time": "15:00", "duration": 60},
            ),
            booking_service.cancel_booking(booking.id, CLIENT_ID, "plans changed"),
        )

        final = await booking_service.get_by_id(booking.id)
        assert final.status == BookingStatus.CANCELLED
        assert [entry.status for entry in final.history] == [
            "pending", "confirmed", "rescheduled",
        ]
        assert final.start_time == "15:00"

    @pytest.mark.asyncio
    async def test_confirm_racing_reschedule_keeps_new_window(self, booking_service):
        booking = await booking_service.create_booking(CLIENT_ID, make_request())

        await asyncio.gather(
            booking_service.reschedule_booking(
                booking.id, CLIENT_ID,
                {"booking_date": TUESDAY, "start_time": "15:00", "duration": 60},
            ),
            booking_service.confirm_booking(booking.id, PRO_USER_ID),
        )

        final = await booking_service.get_by_id(booking.id)
        assert final.status == BookingStatus.CONFIRMED
        assert (final.booking_date, final.start_time) == (TUESDAY, "15:00")

    @pytest.mark.asyncio
    async def test_second_cancel_sees_first(self, booking_service):
        booking = await booking_service.create_booking(CLIENT_ID, make_request())

        results = await asyncio.gather(
            booking_service.cancel_booking(booking.id, CLIENT_ID),
            booking_service.cancel_booking(booking.id, PRO_USER_ID),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, BookingCannotCancelError)) == 1
        final = await booking_service.get_by_id(booking.id)
        assert [entry.status for entry in final.history] == ["pending"]


class TestSlotLockRegistry:
    @pytest.mark.asyncio
    async def test_hold_marks_key_as_held(self):
        locks = SlotLockRegistry()
        async with locks.hold(PRO_ID, MONDAY):
            assert locks.is_held(PRO_ID, MONDAY)
            assert not locks.is_held(PRO_ID, TUESDAY)
        assert not locks.is_held(PRO_ID, MONDAY)

    @pytest.mark.asyncio
    async def test_same_key_is_exclusive(self):
        locks = SlotLockRegistry()
        order = []

        async def worker(name):
            async with locks.hold(PRO_ID, MONDAY):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        locks = SlotLockRegistry()
        with pytest.raises(RuntimeError):
            async with locks.hold(PRO_ID, MONDAY):
                raise RuntimeError("boom")
        assert not locks.is_held(PRO_ID, MONDAY)

    @pytest.mark.asyncio
    async def test_entries_dropped_after_release(self):
        locks = SlotLockRegistry()
        for offset in range(50):
            async with locks.hold(PRO_ID, date(2026, 4, 1) + timedelta(days=offset)):
                assert len(locks) == 1
        async with locks.hold_booking("BK-1"):
            assert locks.is_booking_held("BK-1")
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_entry_kept_while_waiters_remain(self):
        locks = SlotLockRegistry()
        seen = []

        async def worker():
            async with locks.hold(PRO_ID, MONDAY):
                seen.append(len(locks))
                await asyncio.sleep(0)

        await asyncio.gather(worker(), worker(), worker())
        assert seen == [1, 1, 1]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_booking_locks_released_after_transitions(
        self, booking_store, availability_store, professionals, notifications, clock
    ):
        locks = SlotLockRegistry()
        booking_service = BookingService(
            booking_store, availability_store, professionals, notifications,
            clock=clock, locks=locks,
        )
        booking = await booking_service.create_booking(CLIENT_ID, make_request())
        await booking_service.confirm_booking(booking.id, PRO_USER_ID)
        await booking_service.cancel_booking(booking.id, CLIENT_ID)
        assert len(locks) == 0
