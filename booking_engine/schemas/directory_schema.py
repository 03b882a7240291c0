"""Professional and user records owned by external directories."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ProfessionalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class Professional(BaseModel):
    """Professional profile as seen by the booking engine."""
    id: str
    user_id: str
    business_name: str = ""
    status: ProfessionalStatus = ProfessionalStatus.PENDING
    city: str = ""
    state: str = ""
    pincode: str = ""
    services: list[str] = Field(default_factory=list)
    total_bookings: int = 0

    @property
    def is_approved(self) -> bool:
        return self.status == ProfessionalStatus.APPROVED


class User(BaseModel):
    """Notification recipient."""
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
