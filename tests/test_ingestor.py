"""
Unit tests for report ingestion.
"""

import pytest

from parking_live.state.exceptions import InvalidStatus
from parking_live.state.ingestor import UpdateIngestor
from parking_live.state.models import SpotStatus


@pytest.mark.parametrize(
    "distance, expected",
    [
        (0, SpotStatus.OCCUPIED),
        (19, SpotStatus.OCCUPIED),
        (19.99, SpotStatus.OCCUPIED),
        (20, SpotStatus.FREE),
        (150, SpotStatus.FREE),
    ],
)
def test_distance_threshold(ingestor, distance, expected):
    """Readings strictly below 20 cm mean occupied."""
    result = ingestor.apply_report(1, distance_cm=distance)

    assert result.spot.status == expected
    assert result.ignored is False


def test_distance_wins_over_raw_status(ingestor):
    """When both are given, the distance decides."""
    result = ingestor.apply_report(1, raw_status="free", distance_cm=5)
    assert result.spot.status == SpotStatus.OCCUPIED


def test_raw_status(ingestor, registry):
    """Without a distance the raw status is used, case-insensitively."""
    assert ingestor.apply_report(2, raw_status="occupied").spot.status == SpotStatus.OCCUPIED
    assert ingestor.apply_report(2, raw_status=" FREE ").spot.status == SpotStatus.FREE
    assert ingestor.apply_report(2, raw_status="Reserved").spot.status == SpotStatus.RESERVED


@pytest.mark.parametrize("raw_status", [None, "", "parked", "libre"])
def test_invalid_status(ingestor, registry, events, raw_status):
    """Malformed reports are rejected without touching state."""
    with pytest.raises(InvalidStatus):
        ingestor.apply_report(1, raw_status=raw_status)

    assert registry.get(1).status == SpotStatus.FREE
    assert events == []


def test_report_on_reserved_spot_ignored(ingestor, reservations, registry, events, alerter):
    """Sensor reports never override a reservation."""
    reservations.reserve(4)
    before = registry.get(4)
    events.clear()

    result = ingestor.apply_report(4, distance_cm=5)

    assert result.ignored is True
    assert result.spot == before
    assert registry.get(4) == before
    assert events == []
    assert alerter.alerts == []


def test_alert_on_transition_to_occupied(ingestor, alerter):
    """An alert is raised when a spot becomes occupied, not on repeats."""
    ingestor.apply_report(5, distance_cm=8)
    ingestor.apply_report(5, distance_cm=9)

    assert len(alerter.alerts) == 1
    destination, subject, body = alerter.alerts[0]
    assert destination == "operator@example.com"
    assert "5" in body
    assert "8" in body

    ingestor.apply_report(5, distance_cm=50)
    ingestor.apply_report(5, raw_status="occupied")
    assert len(alerter.alerts) == 2


def test_no_alert_without_recipient(registry, reservations, alerter):
    """Alerts are skipped when no recipient is configured."""
    ingestor = UpdateIngestor(registry, reservations, alerter=alerter)
    ingestor.apply_report(1, distance_cm=1)

    assert alerter.alerts == []


def test_alert_failure_does_not_fail_report(registry, reservations):
    """A broken alert sink never fails the report or rolls back state."""

    class BrokenAlerter:
        def submit(self, destination, subject, body):
            raise RuntimeError("queue gone")

    ingestor = UpdateIngestor(
        registry,
        reservations,
        alerter=BrokenAlerter(),
        alert_recipient="operator@example.com",
    )
    result = ingestor.apply_report(1, distance_cm=1)

    assert result.spot.status == SpotStatus.OCCUPIED
    assert registry.get(1).status == SpotStatus.OCCUPIED


def test_custom_threshold(registry, reservations):
    """The occupancy threshold is configurable."""
    ingestor = UpdateIngestor(registry, reservations, occupied_threshold_cm=50)

    assert ingestor.apply_report(1, distance_cm=30).spot.status == SpotStatus.OCCUPIED
    assert ingestor.apply_report(1, distance_cm=50).spot.status == SpotStatus.FREE


def test_reserve_report_cancel_scenario(ingestor, reservations, registry, events, alerter):
    """Reservation blocks the sensor until it is cancelled."""
    assert registry.get(3).status == SpotStatus.FREE

    reservations.reserve(3)

    result = ingestor.apply_report(3, distance_cm=5)
    assert result.ignored is True
    assert result.spot.status == SpotStatus.RESERVED

    reservations.cancel(3)
    assert registry.get(3).status == SpotStatus.FREE

    result = ingestor.apply_report(3, distance_cm=5)
    assert result.ignored is False
    assert result.spot.status == SpotStatus.OCCUPIED
    assert len(alerter.alerts) == 1
    assert [e.status for e in events] == [
        SpotStatus.RESERVED,
        SpotStatus.FREE,
        SpotStatus.OCCUPIED,
    ]
