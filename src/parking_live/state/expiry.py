"""Periodic sweep of expired reservations."""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from ..metrics import increment_sweep_runs
from .reservations import ReservationManager

logger = logging.getLogger(__name__)


class ExpiryScheduler:
    """
    Runs ReservationManager.sweep_expired() on a fixed period.

    Freed spots are announced through the registry's normal update path,
    so each expiry reaches subscribers exactly once.
    """

    def __init__(self, reservations: ReservationManager, interval_seconds: float = 60):
        self.reservations = reservations
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self, now: Optional[datetime] = None) -> list[int]:
        """Run a single sweep and return the freed spot ids."""
        expired = self.reservations.sweep_expired(now)
        increment_sweep_runs()

        if expired:
            logger.info(f"Expired reservations freed spots: {expired}")
        return expired

    async def run(self) -> None:
        """Sweep loop; runs until cancelled."""
        logger.info(f"Starting reservation expiry loop (interval: {self.interval_seconds}s)")

        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Expiry sweep error: {e}")

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
