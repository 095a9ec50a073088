"""Broadcast hub: subscriber registry, recent history and non-blocking fan-out."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from factstream.events.schemas import EventEnvelope, utc_now
from factstream.hub.errors import HubClosed, InvalidPayload, QueueOverflow, ResourceExhausted
from factstream.hub.history import HistoryBuffer, SequenceCounter
from factstream.hub.subscriber import DEFAULT_QUEUE_CAPACITY, OverflowPolicy, Subscriber

if TYPE_CHECKING:
    from factstream.config import HubSettings

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAPACITY = 100


class BroadcastHub:
    """Fan each published envelope out to every registered subscriber.

    One lock guards the subscriber map, the history and the sequence counter.
    It is held for metadata updates and the enqueue loop only; enqueueing never
    blocks, and transport writes happen in delivery workers outside the lock.
    All operations are safe to call from any thread.
    """

    def __init__(
        self,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
        overflow_policy: OverflowPolicy | str = OverflowPolicy.DROP_OLDEST,
        max_subscribers: int | None = None,
    ) -> None:
        if queue_capacity < 1:
            raise ValueError("queue capacity must be >= 1")
        if max_subscribers is not None and max_subscribers < 1:
            raise ValueError("max_subscribers must be >= 1")
        self.queue_capacity = queue_capacity
        self.overflow_policy = OverflowPolicy(overflow_policy)
        self.max_subscribers = max_subscribers
        self._lock = threading.Lock()
        self._subscribers: dict[str, Subscriber] = {}
        self._history = HistoryBuffer(history_capacity)
        self._sequence = SequenceCounter()
        self._closed = False

    @classmethod
    def from_settings(cls, settings: HubSettings) -> BroadcastHub:
        return cls(
            history_capacity=settings.history_capacity,
            queue_capacity=settings.queue_capacity,
            overflow_policy=settings.overflow_policy,
            max_subscribers=settings.max_subscribers,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def check_capacity(self) -> None:
        """Raise if ``subscribe`` would be rejected right now."""
        with self._lock:
            self._check_capacity()

    def subscribe(self, after_sequence: int | None = None) -> tuple[Subscriber, list[EventEnvelope]]:
        """Register a subscriber and return it with its initial snapshot.

        Registration and the snapshot happen under the publish lock, so each
        event reaches the new subscriber exactly once: in the snapshot or live.
        """
        with self._lock:
            self._check_capacity()
            subscriber = Subscriber(capacity=self.queue_capacity, overflow_policy=self.overflow_policy)
            self._subscribers[subscriber.id] = subscriber
            snapshot = self._history.snapshot(after_sequence)
            count = len(self._subscribers)

        logger.debug("Subscriber %s connected (%d active, %d replayed)", subscriber.id, count, len(snapshot))
        return subscriber, snapshot

    def unsubscribe(self, subscriber: Subscriber) -> bool:
        """Remove ``subscriber`` and let its worker drain. Idempotent.

        Returns True if the subscriber was still registered.
        """
        with self._lock:
            removed = self._subscribers.pop(subscriber.id, None) is not None
        subscriber.begin_drain()
        if removed:
            logger.debug("Subscriber %s disconnected", subscriber.id)
        return removed

    def publish(self, payload: Any) -> int:
        """Publish ``payload`` and return its sequence number."""
        return self.publish_envelope(payload).sequence

    def publish_envelope(self, payload: Any) -> EventEnvelope:
        """Publish ``payload`` and return the created envelope.

        The payload is converted to its JSON form first; a value that cannot be
        serialised raises InvalidPayload and consumes no sequence number.
        """
        try:
            payload = to_jsonable_python(payload)
        except PydanticSerializationError as exc:
            raise InvalidPayload(f"payload is not JSON-serialisable: {exc}") from exc

        overflowed: list[Subscriber] = []
        with self._lock:
            if self._closed:
                raise HubClosed()
            envelope = EventEnvelope(
                sequence=self._sequence.next(),
                payload=payload,
                published_at=utc_now(),
            )
            self._history.append(envelope)
            for subscriber in list(self._subscribers.values()):
                try:
                    subscriber.offer(envelope)
                except QueueOverflow as exc:
                    del self._subscribers[subscriber.id]
                    subscriber.fail(exc)
                    overflowed.append(subscriber)

        for subscriber in overflowed:
            logger.warning(
                "Disconnected slow subscriber %s at sequence %d (queue capacity %d)",
                subscriber.id,
                envelope.sequence,
                self.queue_capacity,
            )
        return envelope

    def snapshot(self) -> int:
        """Number of registered subscribers."""
        with self._lock:
            return len(self._subscribers)

    def history(self, after_sequence: int | None = None) -> list[EventEnvelope]:
        with self._lock:
            return self._history.snapshot(after_sequence)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "clients": len(self._subscribers),
                "history_size": len(self._history),
                "history_capacity": self._history.capacity,
                "last_sequence": self._sequence.current,
                "overflow_policy": self.overflow_policy.value,
                "queue_capacity": self.queue_capacity,
                "max_subscribers": self.max_subscribers,
                "closed": self._closed,
            }

    def _check_capacity(self) -> None:
        if self._closed:
            raise HubClosed()
        if self.max_subscribers is not None and len(self._subscribers) >= self.max_subscribers:
            raise ResourceExhausted(self.max_subscribers)

    def close(self) -> None:
        """Reject new subscribers and publishes; drain everyone connected."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()

        for subscriber in subscribers:
            subscriber.begin_drain()
        logger.info("Hub closed, draining %d subscribers", len(subscribers))
