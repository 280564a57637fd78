"""Validation and application of sensor and manual status reports."""

import logging
from typing import Optional, Protocol

from ..metrics import record_report
from .exceptions import InvalidStatus
from .models import ReportResult, SpotStatus
from .registry import SpotRegistry
from .reservations import ReservationManager

logger = logging.getLogger(__name__)

OCCUPIED_THRESHOLD_CM = 20.0


class Alerter(Protocol):
    """Fire-and-forget alert sink."""

    def submit(self, destination: str, subject: str, body: str) -> None: ...


class UpdateIngestor:
    """
    Applies external reports to the spot registry.

    Reservations take precedence over sensors: a report for a reserved
    spot is accepted but does not change its state.
    """

    def __init__(
        self,
        registry: SpotRegistry,
        reservations: ReservationManager,
        alerter: Optional[Alerter] = None,
        alert_recipient: Optional[str] = None,
        occupied_threshold_cm: float = OCCUPIED_THRESHOLD_CM,
    ):
        """
        Initialize the ingestor.

        Args:
            registry: Spot registry to update
            reservations: Reservation manager consulted before each update
            alerter: Sink for "spot occupied" alerts
            alert_recipient: Destination for alerts; no alerts are sent without one
            occupied_threshold_cm: Readings strictly below this mean OCCUPIED
        """
        self.registry = registry
        self.reservations = reservations
        self.alerter = alerter
        self.alert_recipient = alert_recipient
        self.occupied_threshold_cm = occupied_threshold_cm

    def resolve_status(
        self,
        raw_status: Optional[str] = None,
        distance_cm: Optional[float] = None,
    ) -> SpotStatus:
        """
        Compute the effective status of a report.

        A distance reading wins over a raw status when both are present.

        Raises:
            InvalidStatus: No distance and the raw status is missing or unknown
        """
        if distance_cm is not None:
            if distance_cm < self.occupied_threshold_cm:
                return SpotStatus.OCCUPIED
            return SpotStatus.FREE

        if raw_status is None:
            raise InvalidStatus(raw_status)
        try:
            return SpotStatus.parse(raw_status)
        except ValueError:
            raise InvalidStatus(raw_status) from None

    def apply_report(
        self,
        spot_id: int,
        raw_status: Optional[str] = None,
        distance_cm: Optional[float] = None,
    ) -> ReportResult:
        """
        Apply a report to a spot.

        Args:
            spot_id: Spot the report refers to
            raw_status: Reported status, used when no distance is given
            distance_cm: Sensor distance reading in centimetres

        Returns:
            The resulting spot and whether the report was ignored

        Raises:
            NotFound: Unknown spot id
            InvalidStatus: Malformed report
        """
        with self.registry.lock:
            current = self.registry.get(spot_id)

            if self.reservations.is_reserved(spot_id):
                logger.info(f"Spot {spot_id} is reserved, report ignored")
                record_report("ignored")
                return ReportResult(spot=current, ignored=True)

            try:
                status = self.resolve_status(raw_status, distance_cm)
            except InvalidStatus:
                record_report("rejected")
                raise

            spot = self.registry.set_status(spot_id, status)

        record_report("applied")

        # Alerting happens outside the state lock
        if status == SpotStatus.OCCUPIED and current.status != SpotStatus.OCCUPIED:
            self._alert_occupied(spot_id, distance_cm)

        return ReportResult(spot=spot, ignored=False)

    def _alert_occupied(self, spot_id: int, distance_cm: Optional[float]) -> None:
        if self.alerter is None or not self.alert_recipient:
            logger.debug(f"No alert recipient configured, skipping alert for spot {spot_id}")
            return

        body = f"A vehicle is occupying parking spot {spot_id}."
        if distance_cm is not None:
            body += f"\nDetected distance: {distance_cm} cm."

        try:
            self.alerter.submit(
                self.alert_recipient,
                "Alert: parking spot occupied",
                body,
            )
        except Exception as e:
            logger.error(f"Failed to queue occupancy alert for spot {spot_id}: {e}")
