"""Data models for parking spot state."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SpotStatus(str, Enum):
    """Status of a parking spot."""

    FREE = "free"
    OCCUPIED = "occupied"
    RESERVED = "reserved"

    @classmethod
    def parse(cls, value: str) -> "SpotStatus":
        """Parse a raw status string, ignoring case and surrounding whitespace."""
        return cls(value.strip().lower())


class ParkingSpot(BaseModel):
    """Current state of a parking spot."""

    id: int
    status: SpotStatus
    last_update: datetime


class Reservation(BaseModel):
    """A time-limited hold on a parking spot."""

    spot_id: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """A reservation at its deadline counts as expired."""
        return self.expires_at <= now


class ReportResult(BaseModel):
    """Outcome of applying a sensor or manual report."""

    spot: ParkingSpot
    ignored: bool = False
