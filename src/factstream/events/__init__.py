"""Event contracts and producer transport helpers."""

from factstream.events.schemas import EventEnvelope, utc_now

__all__ = [
    "EventEnvelope",
    "utc_now",
]
