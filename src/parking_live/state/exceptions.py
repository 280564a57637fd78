"""Error types raised by the parking state components."""


class ParkingError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "ParkingError"
    status_code = 400


class NotFound(ParkingError):
    """Unknown spot id."""

    code = "NotFound"
    status_code = 404

    def __init__(self, spot_id: int):
        super().__init__(f"Spot {spot_id} not found")
        self.spot_id = spot_id


class NotAvailable(ParkingError):
    """Reservation attempted on a spot that is not free."""

    code = "NotAvailable"
    status_code = 409

    def __init__(self, spot_id: int, status: str):
        super().__init__(f"Spot {spot_id} is not available (status: {status})")
        self.spot_id = spot_id


class AlreadyReserved(ParkingError):
    """A reservation already exists for the spot."""

    code = "AlreadyReserved"
    status_code = 409

    def __init__(self, spot_id: int):
        super().__init__(f"Spot {spot_id} is already reserved")
        self.spot_id = spot_id


class NoActiveReservation(ParkingError):
    """Cancel attempted on a spot without a reservation."""

    code = "NoActiveReservation"
    status_code = 409

    def __init__(self, spot_id: int):
        super().__init__(f"No active reservation for spot {spot_id}")
        self.spot_id = spot_id


class InvalidStatus(ParkingError):
    """Report without a distance and without a recognised status."""

    code = "InvalidStatus"
    status_code = 422

    def __init__(self, raw_status):
        super().__init__(f"Invalid status: {raw_status!r}")
        self.raw_status = raw_status


class DeliveryFailure(ParkingError):
    """A message could not be queued for a subscriber. Internal only."""

    code = "DeliveryFailure"
    status_code = 500


class NotificationFailure(ParkingError):
    """The alert sender failed to deliver a notification."""

    code = "NotificationFailure"
    status_code = 502
