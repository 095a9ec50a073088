"""Connected subscriber: bounded outbound queue, lifecycle state and wake-up."""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from enum import Enum
from uuid import uuid4

from factstream.events.schemas import EventEnvelope
from factstream.hub.errors import QueueOverflow

DEFAULT_QUEUE_CAPACITY = 256


class OverflowPolicy(str, Enum):
    """What happens when a subscriber's queue is full."""

    DROP_OLDEST = "drop_oldest"
    DISCONNECT = "disconnect"


class SubscriberState(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    DRAINING = "draining"
    CLOSED = "closed"


class Subscriber:
    """One connected client as seen by the hub.

    The hub enqueues through :meth:`offer` (from any thread); exactly one
    delivery worker consumes through :meth:`poll` and :meth:`wait` on its own
    event loop.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST,
        subscriber_id: str | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("queue capacity must be >= 1")
        self.id = subscriber_id or uuid4().hex
        self.capacity = capacity
        self.overflow_policy = OverflowPolicy(overflow_policy)
        self.state = SubscriberState.CONNECTING
        self.last_error: Exception | None = None
        self.dropped = 0
        self.delivered = 0
        self._queue: deque[EventEnvelope] = deque()
        self._mutex = threading.Lock()
        self._wakeup = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

    def __repr__(self) -> str:
        return f"Subscriber(id={self.id!r}, state={self.state.value}, pending={self.pending})"

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def closed(self) -> bool:
        return self.state is SubscriberState.CLOSED

    def offer(self, envelope: EventEnvelope) -> bool:
        """Enqueue without blocking. Returns False if no longer accepting events.

        Raises QueueOverflow when full under the disconnect policy.
        """
        with self._mutex:
            if self.state in (SubscriberState.DRAINING, SubscriberState.CLOSED):
                return False
            if len(self._queue) >= self.capacity:
                if self.overflow_policy is OverflowPolicy.DISCONNECT:
                    raise QueueOverflow(self.id, self.capacity)
                self._queue.popleft()
                self.dropped += 1
            self._queue.append(envelope)
        self._notify()
        return True

    def poll(self) -> EventEnvelope | None:
        with self._mutex:
            if not self._queue:
                return None
            return self._queue.popleft()

    def mark_active(self) -> None:
        with self._mutex:
            if self.state is SubscriberState.CONNECTING:
                self.state = SubscriberState.ACTIVE

    def begin_drain(self) -> None:
        """Stop accepting events; close now if nothing is pending."""
        with self._mutex:
            if self.state in (SubscriberState.DRAINING, SubscriberState.CLOSED):
                return
            self.state = SubscriberState.DRAINING if self._queue else SubscriberState.CLOSED
        self._notify()

    def fail(self, error: Exception) -> None:
        """Close immediately, discarding anything still queued."""
        with self._mutex:
            if self.last_error is None:
                self.last_error = error
            self.state = SubscriberState.CLOSED
            self._queue.clear()
        self._notify()

    def close(self) -> None:
        with self._mutex:
            self.state = SubscriberState.CLOSED
            self._queue.clear()
        self._notify()

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        """Bind wake-ups to the delivery worker's event loop."""
        self._loop = loop

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until there is something to do. Returns False on timeout."""
        self._wakeup.clear()
        if self._queue or self.state in (SubscriberState.DRAINING, SubscriberState.CLOSED):
            return True
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def _notify(self) -> None:
        loop = self._loop
        if loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._wakeup.set()
            return
        try:
            loop.call_soon_threadsafe(self._wakeup.set)
        except RuntimeError:
            # worker loop already closed
            pass
