"""
Booking engine entry point.

Runs the periodic reminder sweep or the offline console demo. The sweep
resolves its repositories from ``BOOKING_STORE_BACKEND`` (or
``--backend``), a ``module:callable`` returning a StoreBackend.

Usage:
    Reminder sweep: python main.py reminders --hours-ahead 24
                    python main.py reminders --backend myapp.wiring:backend
    Console demo:   python main.py demo --scenario lifecycle
"""

import argparse
import asyncio
import logging
import sys
import uuid
from typing import Optional

from booking_engine.config import settings
from booking_engine.logging_context import set_request_id

logger = logging.getLogger(__name__)


def _build_reminder_sweep(backend_path: str):
    """Build a ReminderSweep over the configured store backend."""
    from booking_engine.notifications import NotificationService
    from booking_engine.scheduling import ReminderSweep
    from booking_engine.stores.backend import load_backend

    backend = load_backend(backend_path)
    return ReminderSweep(
        backend.bookings,
        backend.professionals,
        NotificationService(backend.channel, backend.users),
        clock=backend.clock,
    )


def _run_reminders(hours_ahead: Optional[int], backend_path: str) -> int:
    set_request_id(f"sweep-{uuid.uuid4().hex[:8]}")
    sweep = _build_reminder_sweep(backend_path)
    sent = asyncio.run(sweep.process_reminders(hours_ahead))
    logger.info("Reminders sent for %d booking(s)", sent)
    return 0


def _run_demo(scenario: str) -> int:
    """Start the offline console demo."""
    from console_demo import ConsoleSession

    ConsoleSession().run_scenario(scenario)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description=f"{settings.service_name}: booking lifecycle and availability engine."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    reminders = commands.add_parser("reminders", help="Run one reminder sweep.")
    reminders.add_argument(
        "--hours-ahead",
        type=int,
        default=None,
        help=f"Reminder window in hours (default: {settings.reminders.hours_ahead}).",
    )
    reminders.add_argument(
        "--backend",
        default=settings.store_backend,
        help="Store backend factory as module:callable (default: %(default)s).",
    )

    demo = commands.add_parser("demo", help="Play a scripted lifecycle walkthrough.")
    demo.add_argument(
        "--scenario",
        choices=["assignment", "conflict", "lifecycle"],
        default="lifecycle",
    )

    args = parser.parse_args(argv)

    if args.command == "reminders":
        if args.hours_ahead is not None and args.hours_ahead < 1:
            logger.error("--hours-ahead must be >= 1, got %d", args.hours_ahead)
            return 1
        return _run_reminders(args.hours_ahead, args.backend)
    return _run_demo(args.scenario)


if __name__ == "__main__":
    sys.exit(main())
