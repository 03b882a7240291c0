"""
Store wiring for batch commands.

``python main.py reminders`` runs outside any web process, so it resolves
its repositories from ``BOOKING_STORE_BACKEND`` (a ``module:callable``
path). The callable returns a StoreBackend over the deployment's
booking collection, professional directory and notification channel.
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from booking_engine.ports import (
    BookingRepository,
    Clock,
    NotificationChannel,
    ProfessionalDirectory,
    UserDirectory,
)

logger = logging.getLogger(__name__)


@dataclass
class StoreBackend:
    bookings: BookingRepository
    professionals: ProfessionalDirectory
    channel: NotificationChannel
    users: Optional[UserDirectory] = None
    clock: Optional[Clock] = None


def in_memory_backend() -> StoreBackend:
    """Empty in-memory stores. Only useful for local runs and smoke tests."""
    from booking_engine.notifications import InMemoryNotificationChannel
    from booking_engine.stores.booking_store import InMemoryBookingStore
    from booking_engine.stores.directory import InMemoryProfessionalDirectory

    logger.warning(
        "Using in-memory stores; set BOOKING_STORE_BACKEND to reach real bookings"
    )
    return StoreBackend(
        bookings=InMemoryBookingStore(),
        professionals=InMemoryProfessionalDirectory(),
        channel=InMemoryNotificationChannel(),
    )


def load_backend(path: str) -> StoreBackend:
    """Import ``module:callable`` and call it.

    Raises:
        ValueError: the path is malformed or does not name a callable.
        ImportError: the module cannot be imported.
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Store backend must look like 'module:callable', got {path!r}")

    module = importlib.import_module(module_name)
    factory: Optional[Callable[[], StoreBackend]] = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"{path!r} is not a callable store backend factory")

    backend = factory()
    logger.info("Store backend loaded from %s", path)
    return backend
