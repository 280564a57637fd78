"""Live update broadcasting module."""

from .broadcaster import INITIAL_STATE, UPDATE, Broadcaster, Subscriber

__all__ = ["INITIAL_STATE", "UPDATE", "Broadcaster", "Subscriber"]
