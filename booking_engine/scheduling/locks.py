"""
Write serialization for bookings.

Two kinds of key are locked:

- ``(professional_id, booking_date)``: a conflict check and the write that
  follows must not interleave with another write for the same professional
  and day, otherwise two overlapping requests can both pass the check.
- ``booking_id``: a status change re-reads the booking, asks the state
  machine and writes the new state while holding the booking's lock, so
  two transitions on one booking never both start from the same snapshot.

When both are needed the booking lock is taken first. Entries are dropped
once nobody holds or waits for them. All of this is per process; multiple
processes additionally need an exclusion constraint in the store.
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from datetime import date


class _KeyedLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class SlotLockRegistry:
    """Hands out one ``asyncio.Lock`` per slot key or booking ID."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, _KeyedLock] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def _hold(self, key: Hashable) -> AsyncIterator[None]:
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyedLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    def hold(self, professional_id: str, day: date):
        """Serialize conflict-check-then-write for one professional and date."""
        return self._hold(("slot", professional_id, day))

    def hold_booking(self, booking_id: str):
        """Serialize status changes on one booking."""
        return self._hold(("booking", booking_id))

    def is_held(self, professional_id: str, day: date) -> bool:
        entry = self._locks.get(("slot", professional_id, day))
        return entry is not None and entry.lock.locked()

    def is_booking_held(self, booking_id: str) -> bool:
        entry = self._locks.get(("booking", booking_id))
        return entry is not None and entry.lock.locked()
