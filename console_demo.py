"""
Offline console demo: walks bookings through their lifecycle end to end.

Runs the real availability engine, lifecycle engine, state machine, and
reminder sweep against in-memory stores and a frozen clock. No database,
no network calls, no push delivery. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario conflict
    python console_demo.py --scenario assignment
"""

import argparse
import asyncio
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from booking_engine.clock import FixedClock
from booking_engine.config import settings
from booking_engine.errors import BookingEngineError
from booking_engine.notifications import InMemoryNotificationChannel, NotificationService
from booking_engine.scheduling import AvailabilityService, BookingService
from booking_engine.schemas.booking_schema import Booking
from booking_engine.schemas.directory_schema import Professional, ProfessionalStatus, User
from booking_engine.stores.availability_store import InMemoryAvailabilityStore
from booking_engine.stores.booking_store import InMemoryBookingStore
from booking_engine.stores.directory import InMemoryProfessionalDirectory, InMemoryUserDirectory

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

# Sunday morning; the demo books the following Monday.
DEMO_NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
DEMO_DAY = date(2026, 3, 9)

CLIENT_ID = "U-CLIENT-1"
OTHER_CLIENT_ID = "U-CLIENT-2"
ADMIN_ID = "U-ADMIN-1"

DEMO_PROFESSIONALS = [
    Professional(
        id="PRO-ASHA", user_id="U-ASHA", business_name="Asha Frames",
        status=ProfessionalStatus.APPROVED, city="Pune", state="Maharashtra",
        pincode="411001", services=["wedding", "portrait"], total_bookings=12,
    ),
    Professional(
        id="PRO-RAVI", user_id="U-RAVI", business_name="Ravi Clicks",
        status=ProfessionalStatus.APPROVED, city="Mumbai", state="Maharashtra",
        pincode="400001", services=["wedding", "event"], total_bookings=40,
    ),
    Professional(
        id="PRO-NEW", user_id="U-NEW", business_name="Fresh Lens",
        status=ProfessionalStatus.PENDING, city="Pune", state="Maharashtra",
        pincode="411001", services=["wedding"],
    ),
]

DEMO_USERS = [
    User(id=CLIENT_ID, name="Meera"),
    User(id=OTHER_CLIENT_ID, name="Karan"),
    User(id="U-ASHA", name="Asha"),
    User(id="U-RAVI", name="Ravi"),
    User(id="U-NEW", name="Nikhil"),
]


class ConsoleSession:
    """Wires the engines to in-memory stores and narrates each step."""

    def __init__(self) -> None:
        self.clock = FixedClock(DEMO_NOW)
        self.outbox = InMemoryNotificationChannel()
        self.availability_store = InMemoryAvailabilityStore()
        self.booking_store = InMemoryBookingStore()
        self.professionals = InMemoryProfessionalDirectory(DEMO_PROFESSIONALS)
        notifications = NotificationService(self.outbox, InMemoryUserDirectory(DEMO_USERS))
        self.availability = AvailabilityService(
            self.availability_store, self.booking_store, clock=self.clock
        )
        self.bookings = BookingService(
            self.booking_store,
            self.availability_store,
            self.professionals,
            notifications,
            clock=self.clock,
        )
        self._seen_notifications = 0

    def engine_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[engine]{RESET} {GREEN}{text}{RESET}")

    def actor_say(self, actor: str, text: str) -> None:
        print(f"\n{BLUE}[{actor}] {RESET}{text}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def error_say(self, exc: BookingEngineError) -> None:
        print(f"{RED}{BOLD}[rejected]{RESET} {RED}{exc.to_dict()}{RESET}")

    def flush_notifications(self) -> None:
        for notification in self.outbox.sent[self._seen_notifications:]:
            self.system_log(
                f"notify {notification.user_id}: {notification.title} ({notification.action})"
            )
        self._seen_notifications = len(self.outbox.sent)

    def show_booking(self, booking: Booking) -> None:
        self.engine_say(
            f"{booking.id} is {booking.status.value}: {booking.booking_date} "
            f"{booking.start_time}-{booking.end_time} "
            f"(professional={booking.professional_id or 'unassigned'}, "
            f"total={booking.pricing.total_amount} {booking.pricing.currency})"
        )
        self.flush_notifications()

    async def attempt(self, call: Callable[[], Awaitable[Any]]) -> Optional[Any]:
        """Run an engine call, printing engine errors instead of raising."""
        try:
            return await call()
        except BookingEngineError as exc:
            self.error_say(exc)
            return None

    async def show_slots(self, professional_id: str, day: date, duration: int = 60) -> None:
        result = await self.availability.get_available_slots(professional_id, day, duration)
        if not result.available:
            self.engine_say(f"No {duration}-minute slots on {day}: {result.reason}")
            return
        starts = ", ".join(slot.start_time for slot in result.slots)
        self.engine_say(
            f"{duration}-minute starts on {day} (buffer {result.buffer_time} min): {starts}"
        )

    def _request(self, professional_id: Optional[str], start: str, **extra: Any) -> dict:
        payload = {
            "professional_id": professional_id,
            "booking_date": DEMO_DAY.isoformat(),
            "start_time": start,
            "duration": 60,
            "event_type": "portrait",
            "location": {"city": "Pune", "state": "Maharashtra", "pincode": "411001"},
            "pricing": {
                "base_amount": 5000,
                "additional_charges": [{"description": "Album", "amount": 1500}],
                "discounts": [{"type": "percentage", "value": 10}],
                "travel_fee": 250,
            },
        }
        payload.update(extra)
        return payload

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    async def scenario_lifecycle(self) -> None:
        await self.show_slots("PRO-ASHA", DEMO_DAY)

        self.actor_say(CLIENT_ID, "Books Asha for 10:00 on Monday")
        booking = await self.attempt(
            lambda: self.bookings.create_booking(CLIENT_ID, self._request("PRO-ASHA", "10:00"))
        )
        if booking is None:
            return
        self.show_booking(booking)
        await self.show_slots("PRO-ASHA", DEMO_DAY)

        self.actor_say("U-ASHA", "Confirms")
        booking = await self.bookings.confirm_booking(booking.id, "U-ASHA")
        self.show_booking(booking)

        self.actor_say(CLIENT_ID, "Moves it to 15:00")
        booking = await self.bookings.reschedule_booking(
            booking.id, CLIENT_ID,
            {"booking_date": DEMO_DAY.isoformat(), "start_time": "15:00", "duration": 60},
        )
        self.show_booking(booking)

        self.actor_say("U-ASHA", "Confirms the new time")
        booking = await self.bookings.confirm_booking(booking.id, "U-ASHA")
        self.show_booking(booking)

        self.clock.set(datetime(2026, 3, 8, 16, 0, tzinfo=timezone.utc))
        self.system_log(f"Clock moved to {self.clock.now().isoformat()}")
        sent = await self.bookings.process_reminders()
        self.engine_say(f"Reminder sweep marked {sent} booking(s)")
        self.flush_notifications()
        sent = await self.bookings.process_reminders()
        self.engine_say(f"Second sweep marked {sent} booking(s)")

        self.clock.set(datetime(2026, 3, 9, 17, 0, tzinfo=timezone.utc))
        self.actor_say("U-ASHA", "Marks the shoot as done")
        booking = await self.bookings.complete_booking(booking.id, "U-ASHA")
        self.show_booking(booking)

        self.actor_say(CLIENT_ID, "Tries to cancel after completion")
        await self.attempt(lambda: self.bookings.cancel_booking(booking.id, CLIENT_ID))

        booking = await self.bookings.mark_reviewed(booking.id, "REV-1")
        self.engine_say(f"Review recorded: {booking.review_id}")
        self.system_log(
            "Status history: "
            + " -> ".join([entry.status for entry in booking.history] + [booking.state.status])
        )

    async def scenario_conflict(self) -> None:
        self.actor_say("both clients", "Request Asha at overlapping times concurrently")
        results = await asyncio.gather(
            self.bookings.create_booking(CLIENT_ID, self._request("PRO-ASHA", "10:00")),
            self.bookings.create_booking(OTHER_CLIENT_ID, self._request("PRO-ASHA", "10:30")),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BookingEngineError):
                self.error_say(result)
            else:
                self.show_booking(result)

        self.actor_say(OTHER_CLIENT_ID, "Tries a pending professional")
        await self.attempt(
            lambda: self.bookings.create_booking(OTHER_CLIENT_ID, self._request("PRO-NEW", "14:00"))
        )

        self.actor_say(OTHER_CLIENT_ID, "Tries a date far in the future")
        await self.attempt(lambda: self.bookings.create_booking(
            OTHER_CLIENT_ID, self._request("PRO-ASHA", "14:00", booking_date="2026-12-01")
        ))

        await self.availability.add_blocked_date("PRO-ASHA", date(2026, 3, 10), "Travelling")
        await self.show_slots("PRO-ASHA", date(2026, 3, 10))

    async def scenario_assignment(self) -> None:
        self.actor_say(CLIENT_ID, "Requests a wedding shoot without choosing a professional")
        booking = await self.bookings.create_booking(
            CLIENT_ID, self._request(None, "14:00", event_type="wedding")
        )
        self.show_booking(booking)

        suggestions = await self.bookings.suggest_professionals(booking.id)
        for candidate in suggestions:
            self.engine_say(
                f"Candidate {candidate.professional.id}: "
                f"{type(candidate.match).__name__} (rank {candidate.rank}, "
                f"{candidate.professional.total_bookings} bookings)"
            )
        if not suggestions:
            return

        chosen = suggestions[0].professional
        self.actor_say(ADMIN_ID, f"Assigns {chosen.id}")
        booking = await self.bookings.assign_professional(booking.id, chosen.id, ADMIN_ID)
        self.show_booking(booking)

        self.actor_say(chosen.user_id, "Confirms")
        booking = await self.bookings.confirm_booking(booking.id, chosen.user_id)
        self.show_booking(booking)

    SCENARIOS: dict[str, str] = {
        "lifecycle": "scenario_lifecycle",
        "conflict": "scenario_conflict",
        "assignment": "scenario_assignment",
    }

    def run_scenario(self, scenario: str) -> None:
        method = self.SCENARIOS.get(scenario)
        if method is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BOOKING ENGINE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Service: {settings.service_name}{RESET}")
        print(f"{BOLD}  Clock: {self.clock.now().isoformat()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        asyncio.run(getattr(self, method)())

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Notifications sent: {len(self.outbox.sent)}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Offline booking engine demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default="lifecycle",
        help="Which scripted walkthrough to play",
    )
    args = parser.parse_args(argv)
    ConsoleSession().run_scenario(args.scenario)


if __name__ == "__main__":
    main()
