"""Time-limited reservations on parking spots."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..metrics import record_reservation_event
from .exceptions import AlreadyReserved, NoActiveReservation, NotAvailable, NotFound
from .models import Reservation, SpotStatus
from .registry import SpotRegistry

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=30)


class ReservationManager:
    """
    Tracks active reservations and keeps spot status in step with them.

    A spot has at most one reservation. While it exists the spot is
    RESERVED; cancelling or expiring it sets the spot back to FREE.
    """

    def __init__(self, registry: SpotRegistry, ttl: timedelta = DEFAULT_TTL):
        self.registry = registry
        self.ttl = ttl
        self._reservations: dict[int, Reservation] = {}

    def reserve(self, spot_id: int) -> Reservation:
        """
        Reserve a free spot for the configured TTL.

        A reservation that has reached its deadline is expired before the
        request is evaluated, so it is never renewed by a new reservation.

        Raises:
            NotFound: Unknown spot id
            AlreadyReserved: An active reservation exists for the spot
            NotAvailable: The spot is not FREE
        """
        with self.registry.lock:
            spot = self.registry.get(spot_id)
            now = self.registry.now()

            existing = self._reservations.get(spot_id)
            if existing is not None and existing.is_expired(now):
                self._expire(spot_id)
                spot = self.registry.get(spot_id)
                existing = None

            if existing is not None:
                raise AlreadyReserved(spot_id)
            if spot.status != SpotStatus.FREE:
                raise NotAvailable(spot_id, spot.status.value)

            reservation = Reservation(
                spot_id=spot_id,
                created_at=now,
                expires_at=now + self.ttl,
            )
            self._reservations[spot_id] = reservation
            self.registry.set_status(spot_id, SpotStatus.RESERVED)

        record_reservation_event("created")
        logger.info(f"Spot {spot_id} reserved until {reservation.expires_at.isoformat()}")
        return reservation

    def cancel(self, spot_id: int) -> Reservation:
        """
        Cancel the reservation on a spot and free it.

        Returns:
            The removed reservation

        Raises:
            NotFound: Unknown spot id
            NoActiveReservation: The spot has no reservation
        """
        with self.registry.lock:
            if spot_id not in self.registry:
                raise NotFound(spot_id)

            reservation = self._reservations.pop(spot_id, None)
            if reservation is None:
                raise NoActiveReservation(spot_id)

            self.registry.set_status(spot_id, SpotStatus.FREE)

        record_reservation_event("cancelled")
        logger.info(f"Reservation on spot {spot_id} cancelled")
        return reservation

    def is_reserved(self, spot_id: int) -> bool:
        """Check whether a spot has an active reservation."""
        with self.registry.lock:
            return spot_id in self._reservations

    def get(self, spot_id: int) -> Optional[Reservation]:
        """Get the reservation on a spot, if any."""
        with self.registry.lock:
            if spot_id not in self.registry:
                raise NotFound(spot_id)
            return self._reservations.get(spot_id)

    def active(self) -> list[Reservation]:
        """All active reservations ordered by spot id."""
        with self.registry.lock:
            return [self._reservations[i] for i in sorted(self._reservations)]

    def sweep_expired(self, now: Optional[datetime] = None) -> list[int]:
        """
        Remove every reservation whose deadline has passed.

        Args:
            now: Reference time, defaults to the registry clock

        Returns:
            Ids of the freed spots in ascending order
        """
        with self.registry.lock:
            if now is None:
                now = self.registry.now()

            expired = sorted(
                spot_id
                for spot_id, reservation in self._reservations.items()
                if reservation.is_expired(now)
            )
            for spot_id in expired:
                self._expire(spot_id)

        return expired

    def _expire(self, spot_id: int) -> None:
        # Caller holds the registry lock
        self._reservations.pop(spot_id)
        self.registry.set_status(spot_id, SpotStatus.FREE)
        record_reservation_event("expired")
        logger.info(f"Reservation on spot {spot_id} expired")
