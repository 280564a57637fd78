"""API request and response schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from ..state.models import ParkingSpot, Reservation


class ReportRequest(BaseModel):
    """Status report from a sensor or an operator."""

    status: Optional[str] = None
    distance: Optional[float] = Field(None, ge=0)  # Centimetres


class ReportResponse(BaseModel):
    """Result of a status report."""

    success: bool = True
    ignored: bool  # True when the spot is reserved and the report had no effect
    spot: ParkingSpot


class ReserveRequest(BaseModel):
    """Request to reserve a spot."""

    id: int


class ReservationResponse(BaseModel):
    """Confirmation of a new reservation."""

    success: bool = True
    reservation: Reservation
    spot: ParkingSpot


class CancelResponse(BaseModel):
    """Confirmation of a cancelled reservation."""

    success: bool = True
    spot: ParkingSpot


class SpotReservationResponse(BaseModel):
    """Reservation on a single spot, if any."""

    spot_id: int
    reservation: Optional[Reservation] = None


class ReservationsResponse(BaseModel):
    """Active reservations."""

    reservations: list[Reservation]


class NotificationRequest(BaseModel):
    """Explicit notification request."""

    destination: str = Field(..., min_length=1)
    message: str


class NotificationResponse(BaseModel):
    """Result of a notification request."""

    success: bool


class ErrorResponse(BaseModel):
    """Typed error body."""

    error: str
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    uptime_seconds: float
    spots: dict[str, int]
    active_reservations: int
    subscribers: int
    expiry_running: bool
