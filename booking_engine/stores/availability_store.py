"""
In-memory availability store.

Holds one availability document per professional. In production this
would be a document-store collection keyed by professional ID; every
method is async so callers are written against that I/O model.
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from booking_engine.config import SchedulingConfig, settings
from booking_engine.schemas.availability_schema import (
    Availability,
    BlockedDate,
    BookingSettingsUpdate,
    DaySchedule,
    SpecialDate,
    TimeSlot,
)
from booking_engine.validation import as_engine_error

logger = logging.getLogger(__name__)


class InMemoryAvailabilityStore:
    """Availability documents keyed by professional ID."""

    def __init__(self, config: Optional[SchedulingConfig] = None) -> None:
        self._config = config or settings.scheduling
        self._docs: dict[str, Availability] = {}

    async def find_by_professional_id(self, professional_id: str) -> Optional[Availability]:
        await asyncio.sleep(0)
        doc = self._docs.get(professional_id)
        return doc.model_copy(deep=True) if doc else None

    async def get_or_create(self, professional_id: str) -> Availability:
        """Return the professional's document, creating it from defaults on first access."""
        existing = await self.find_by_professional_id(professional_id)
        if existing is not None:
            return existing
        doc = Availability.with_defaults(professional_id, self._config)
        self._docs[professional_id] = doc
        logger.debug("Availability created with defaults for %s", professional_id)
        return doc.model_copy(deep=True)

    async def _save(self, doc: Availability) -> Availability:
        await asyncio.sleep(0)
        doc.updated_at = datetime.now(timezone.utc)
        try:
            validated = Availability.model_validate(doc.model_dump())
        except PydanticValidationError as exc:
            raise as_engine_error(exc, "Availability") from exc
        self._docs[doc.professional_id] = validated
        return validated.model_copy(deep=True)

    async def update_weekly_schedule(
        self, professional_id: str, weekly_schedule: dict[str, DaySchedule]
    ) -> Availability:
        doc = await self.get_or_create(professional_id)
        merged = dict(doc.weekly_schedule)
        merged.update(weekly_schedule)
        doc.weekly_schedule = merged
        return await self._save(doc)

    async def add_blocked_date(self, professional_id: str, blocked_date: BlockedDate) -> Availability:
        """Block a whole day. Re-blocking a date replaces its entry."""
        doc = await self.get_or_create(professional_id)
        entry = blocked_date.model_copy(
            update={"added_at": blocked_date.added_at or datetime.now(timezone.utc)}
        )
        doc.blocked_dates = [bd for bd in doc.blocked_dates if bd.date != entry.date]
        doc.blocked_dates.append(entry)
        doc.blocked_dates.sort(key=lambda bd: bd.date)
        return await self._save(doc)

    async def remove_blocked_date(self, professional_id: str, day: date) -> Availability:
        doc = await self.get_or_create(professional_id)
        doc.blocked_dates = [bd for bd in doc.blocked_dates if bd.date != day]
        return await self._save(doc)

    async def add_special_date(self, professional_id: str, special_date: SpecialDate) -> Availability:
        """Set custom hours for one date, replacing any earlier override."""
        doc = await self.get_or_create(professional_id)
        entry = special_date.model_copy(
            update={"added_at": special_date.added_at or datetime.now(timezone.utc)}
        )
        doc.special_dates = [sd for sd in doc.special_dates if sd.date != entry.date]
        doc.special_dates.append(entry)
        doc.special_dates.sort(key=lambda sd: sd.date)
        return await self._save(doc)

    async def remove_special_date(self, professional_id: str, day: date) -> Availability:
        doc = await self.get_or_create(professional_id)
        doc.special_dates = [sd for sd in doc.special_dates if sd.date != day]
        return await self._save(doc)

    async def update_buffer_time(self, professional_id: str, buffer_time: int) -> Availability:
        doc = await self.get_or_create(professional_id)
        doc.buffer_time = buffer_time
        return await self._save(doc)

    async def update_booking_settings(
        self, professional_id: str, update: BookingSettingsUpdate
    ) -> Availability:
        doc = await self.get_or_create(professional_id)
        for key, value in update.model_dump(exclude_none=True).items():
            setattr(doc, key, value)
        return await self._save(doc)

    async def get_slots_for_date(self, professional_id: str, day: date) -> list[TimeSlot]:
        doc = await self.find_by_professional_id(professional_id)
        if doc is None:
            return []
        return doc.slots_for_date(day)

    def reset(self) -> None:
        """Drop all documents. Used by test fixtures for isolation."""
        self._docs.clear()
