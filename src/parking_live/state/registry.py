"""In-memory registry of parking spot states."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from ..metrics import record_spot_update, update_spot_counts
from .exceptions import NotFound
from .models import ParkingSpot, SpotStatus

logger = logging.getLogger(__name__)

SpotListener = Callable[[ParkingSpot], None]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class SpotRegistry:
    """
    Owns the current state of every parking spot.

    All mutations go through set_status(), which emits one event per call
    to every registered listener. Listeners run while the state lock is
    held so they observe updates in commit order; they must not block.

    The lock is re-entrant and shared with the components layered on top
    of the registry (reservations, report ingestion, broadcasting) so that
    a check-then-mutate sequence spanning several calls stays atomic.
    """

    def __init__(
        self,
        spot_count: int = 6,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the registry.

        Args:
            spot_count: Number of spots; ids are 1..spot_count
            clock: Source of the current time
        """
        self.lock = threading.RLock()
        self._clock = clock
        self._listeners: list[SpotListener] = []

        now = clock()
        self._spots: dict[int, ParkingSpot] = {
            spot_id: ParkingSpot(id=spot_id, status=SpotStatus.FREE, last_update=now)
            for spot_id in range(1, spot_count + 1)
        }
        update_spot_counts(self.counts())

        logger.info(f"Initialized SpotRegistry with {len(self._spots)} spots")

    def add_listener(self, listener: SpotListener) -> None:
        """Register a callback invoked with each updated spot."""
        with self.lock:
            self._listeners.append(listener)

    def now(self) -> datetime:
        """Current time according to the registry clock."""
        return self._clock()

    def __contains__(self, spot_id: int) -> bool:
        return spot_id in self._spots

    def get_all(self) -> list[ParkingSpot]:
        """Snapshot of all spots ordered by id."""
        with self.lock:
            return [self._spots[i].model_copy() for i in sorted(self._spots)]

    def get(self, spot_id: int) -> ParkingSpot:
        """
        Get a snapshot of one spot.

        Raises:
            NotFound: If the id is unknown
        """
        with self.lock:
            spot = self._spots.get(spot_id)
            if spot is None:
                raise NotFound(spot_id)
            return spot.model_copy()

    def set_status(self, spot_id: int, status: SpotStatus) -> ParkingSpot:
        """
        Set the status of a spot and notify listeners.

        The update is applied and announced even if the status is unchanged,
        so repeated sensor readings act as heartbeats.

        Args:
            spot_id: Spot to update
            status: New status

        Returns:
            Snapshot of the updated spot

        Raises:
            NotFound: If the id is unknown
        """
        with self.lock:
            spot = self._spots.get(spot_id)
            if spot is None:
                raise NotFound(spot_id)

            old_status = spot.status
            spot.status = status
            # Never move last_update backwards, even if the clock does
            spot.last_update = max(self._clock(), spot.last_update)

            if old_status != status:
                logger.info(f"Spot {spot_id} changed: {old_status.value} -> {status.value}")
            else:
                logger.debug(f"Spot {spot_id} refreshed: {status.value}")

            record_spot_update(spot_id, status.value)
            update_spot_counts(self.counts())

            snapshot = spot.model_copy()
            for listener in self._listeners:
                listener(snapshot)

            return snapshot

    def counts(self) -> dict[str, int]:
        """Get the number of spots in each status."""
        with self.lock:
            result = {status.value: 0 for status in SpotStatus}
            for spot in self._spots.values():
                result[spot.status.value] += 1
            return result
