"""State management module."""

from .exceptions import (
    AlreadyReserved,
    InvalidStatus,
    NoActiveReservation,
    NotAvailable,
    NotFound,
    ParkingError,
)
from .expiry import ExpiryScheduler
from .ingestor import UpdateIngestor
from .models import ParkingSpot, ReportResult, Reservation, SpotStatus
from .registry import SpotRegistry
from .reservations import ReservationManager

__all__ = [
    "AlreadyReserved",
    "ExpiryScheduler",
    "InvalidStatus",
    "NoActiveReservation",
    "NotAvailable",
    "NotFound",
    "ParkingError",
    "ParkingSpot",
    "ReportResult",
    "Reservation",
    "ReservationManager",
    "SpotRegistry",
    "SpotStatus",
    "UpdateIngestor",
]
