"""Sequence numbering and bounded replay history."""

from __future__ import annotations

from collections import deque

from factstream.events.schemas import EventEnvelope


class SequenceCounter:
    """Monotonic sequence counter per hub instance."""

    def __init__(self, start: int = 0):
        self._value = start

    @property
    def current(self) -> int:
        return self._value

    def next(self) -> int:
        self._value += 1
        return self._value


class HistoryBuffer:
    """Ring of the last ``capacity`` published envelopes, oldest evicted first.

    Used only to answer a new subscriber's initial snapshot. Not thread-safe on
    its own; the hub guards it with its lock.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("history capacity must be >= 0")
        self._items: deque[EventEnvelope] = deque(maxlen=capacity)
        self._latest_sequence = 0

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    @property
    def latest_sequence(self) -> int:
        """Sequence of the newest envelope ever appended (0 if none)."""
        return self._latest_sequence

    def __len__(self) -> int:
        return len(self._items)

    def append(self, envelope: EventEnvelope) -> EventEnvelope | None:
        """Append ``envelope`` and return the evicted one, if any."""
        if envelope.sequence <= self._latest_sequence:
            raise ValueError(
                f"sequence {envelope.sequence} is not after {self._latest_sequence}"
            )
        self._latest_sequence = envelope.sequence

        if self.capacity == 0:
            return envelope
        evicted = self._items[0] if len(self._items) == self.capacity else None
        self._items.append(envelope)
        return evicted

    def snapshot(self, after_sequence: int | None = None) -> list[EventEnvelope]:
        """Buffered envelopes in sequence order, optionally only newer ones."""
        if after_sequence is None:
            return list(self._items)
        return [item for item in self._items if item.sequence > after_sequence]
