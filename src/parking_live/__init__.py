"""Live parking spot occupancy, reservations and updates."""

__version__ = "1.0.0"
