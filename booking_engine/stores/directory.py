"""
In-memory professional and user directories.

In production these are the profile services owned by the user and
professional modules; the engine only reads status/recipient data and
bumps the professional's booking counter.
"""

import asyncio
import logging
from typing import Optional

from booking_engine.errors import ProfessionalNotFoundError
from booking_engine.schemas.directory_schema import Professional, User

logger = logging.getLogger(__name__)


class InMemoryProfessionalDirectory:
    def __init__(self, professionals: Optional[list[Professional]] = None) -> None:
        self._professionals: dict[str, Professional] = {}
        for professional in professionals or []:
            self.add(professional)

    def add(self, professional: Professional) -> None:
        self._professionals[professional.id] = professional.model_copy(deep=True)

    async def find_by_id(self, professional_id: str) -> Optional[Professional]:
        await asyncio.sleep(0)
        found = self._professionals.get(professional_id)
        return found.model_copy(deep=True) if found else None

    async def increment_booking_count(self, professional_id: str) -> None:
        await asyncio.sleep(0)
        professional = self._professionals.get(professional_id)
        if professional is None:
            raise ProfessionalNotFoundError(f"Professional {professional_id} not found")
        professional.total_bookings += 1
        logger.debug(
            "Booking count for %s is now %d", professional_id, professional.total_bookings
        )

    async def find_approved(self) -> list[Professional]:
        await asyncio.sleep(0)
        return [p.model_copy(deep=True) for p in self._professionals.values() if p.is_approved]


class InMemoryUserDirectory:
    def __init__(self, users: Optional[list[User]] = None) -> None:
        self._users: dict[str, User] = {u.id: u for u in users or []}

    def add(self, user: User) -> None:
        self._users[user.id] = user

    async def find_by_id(self, user_id: str) -> Optional[User]:
        await asyncio.sleep(0)
        return self._users.get(user_id)
