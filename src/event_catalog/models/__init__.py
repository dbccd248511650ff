"""Models for the event catalog."""
from .track import Track
from .event import Event

__all__ = ["Track", "Event"]
