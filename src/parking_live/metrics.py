"""Prometheus metrics for parking spot state and reservations."""

from prometheus_client import Counter, Gauge, CollectorRegistry, generate_latest

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

# Spot state changes counter, heartbeats included
SPOT_STATE_CHANGES = Counter(
    "parking_spot_updates_total",
    "Total number of parking spot status updates",
    ["spot_id", "status"],
    registry=REGISTRY,
)

# Number of spots per status
SPOTS_BY_STATUS = Gauge(
    "parking_spots",
    "Number of parking spots in each status",
    ["status"],
    registry=REGISTRY,
)

RESERVATION_EVENTS = Counter(
    "parking_reservation_events_total",
    "Reservation lifecycle events",
    ["event"],  # created, cancelled, expired
    registry=REGISTRY,
)

REPORTS = Counter(
    "parking_reports_total",
    "Sensor and manual status reports received",
    ["outcome"],  # applied, ignored, rejected
    registry=REGISTRY,
)

ACTIVE_SUBSCRIBERS = Gauge(
    "parking_subscribers_active",
    "Number of connected live-update subscribers",
    registry=REGISTRY,
)

DROPPED_SUBSCRIBERS = Counter(
    "parking_subscribers_dropped_total",
    "Subscribers disconnected after a failed delivery",
    registry=REGISTRY,
)

NOTIFICATIONS = Counter(
    "parking_notifications_total",
    "Alert notifications by result",
    ["result"],  # sent, failed, dropped
    registry=REGISTRY,
)

SWEEP_RUNS = Counter(
    "parking_expiry_sweeps_total",
    "Number of reservation expiry sweeps run",
    registry=REGISTRY,
)


def record_spot_update(spot_id: int, status: str) -> None:
    """Record a spot status update."""
    SPOT_STATE_CHANGES.labels(spot_id=str(spot_id), status=status).inc()


def update_spot_counts(counts: dict[str, int]) -> None:
    """Update per-status spot count gauges."""
    for status, count in counts.items():
        SPOTS_BY_STATUS.labels(status=status).set(count)


def record_reservation_event(event: str, count: int = 1) -> None:
    """Record reservation lifecycle events."""
    RESERVATION_EVENTS.labels(event=event).inc(count)


def record_report(outcome: str) -> None:
    """Record the outcome of a status report."""
    REPORTS.labels(outcome=outcome).inc()


def set_active_subscribers(count: int) -> None:
    """Update the connected subscriber gauge."""
    ACTIVE_SUBSCRIBERS.set(count)


def increment_dropped_subscribers() -> None:
    """Increment dropped subscriber counter."""
    DROPPED_SUBSCRIBERS.inc()


def record_notification(result: str) -> None:
    """Record a notification outcome."""
    NOTIFICATIONS.labels(result=result).inc()


def increment_sweep_runs() -> None:
    """Increment expiry sweep counter."""
    SWEEP_RUNS.inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)
