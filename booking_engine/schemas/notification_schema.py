"""Outgoing notification payloads."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    BOOKING = "booking"
    REMINDER = "reminder"
    REVIEW = "review"
    ASSIGNMENT = "assignment"


class Notification(BaseModel):
    """A single notification addressed to one user."""
    user_id: str
    type: NotificationType
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    channels: list[str] = Field(default_factory=list)

    @property
    def action(self) -> str:
        return self.data.get("action", "")
