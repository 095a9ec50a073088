"""Error taxonomy for the broadcast hub."""

from __future__ import annotations


class BroadcastError(Exception):
    """Base class for hub errors."""


class ResourceExhausted(BroadcastError):
    """Raised by ``subscribe`` when the hub is at its subscriber limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"subscriber limit reached ({limit})")
        self.limit = limit


class HubClosed(BroadcastError):
    """Raised when subscribing to or publishing on a closed hub."""

    def __init__(self) -> None:
        super().__init__("hub is closed")


class QueueOverflow(BroadcastError):
    """A subscriber queue is full under the disconnect policy.

    Internal signal: the hub handles it by closing the subscriber, it never
    reaches a publisher.
    """

    def __init__(self, subscriber_id: str, capacity: int) -> None:
        super().__init__(f"queue of subscriber {subscriber_id} is full ({capacity})")
        self.subscriber_id = subscriber_id
        self.capacity = capacity


class TransportWriteFailed(BroadcastError):
    """A delivery worker could not hand a frame to its transport."""

    def __init__(self, subscriber_id: str) -> None:
        super().__init__(f"transport write failed for subscriber {subscriber_id}")
        self.subscriber_id = subscriber_id


class InvalidPayload(BroadcastError, ValueError):
    """A producer submitted a payload that cannot be published."""
