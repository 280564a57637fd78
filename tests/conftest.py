"""
Shared test fixtures.
"""

import pytest

from parking_live.broadcast.broadcaster import Broadcaster
from parking_live.state.ingestor import UpdateIngestor
from parking_live.state.registry import SpotRegistry
from parking_live.state.reservations import ReservationManager

from .fakes import FakeClock, RecordingAlerter


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return SpotRegistry(spot_count=6, clock=clock)


@pytest.fixture
def events(registry):
    """Spots emitted by the registry, in order."""
    received = []
    registry.add_listener(received.append)
    return received


@pytest.fixture
def reservations(registry):
    return ReservationManager(registry)


@pytest.fixture
def alerter():
    return RecordingAlerter()


@pytest.fixture
def ingestor(registry, reservations, alerter):
    return UpdateIngestor(
        registry,
        reservations,
        alerter=alerter,
        alert_recipient="operator@example.com",
    )


@pytest.fixture
def broadcaster(registry):
    broadcaster = Broadcaster(registry, queue_size=10)
    registry.add_listener(broadcaster.publish)
    return broadcaster
