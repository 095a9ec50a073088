"""Per-subscriber delivery loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from factstream.events.schemas import EventEnvelope
from factstream.hub.broadcast import BroadcastHub
from factstream.hub.errors import TransportWriteFailed
from factstream.hub.subscriber import Subscriber, SubscriberState
from factstream.hub.transport import Transport
from factstream.hub.wire import KEEPALIVE_FRAME, encode_envelope, encode_snapshot

logger = logging.getLogger(__name__)


class DeliveryWorker:
    """Drain one subscriber's queue into its transport.

    Runs independently of ``publish``: a slow transport only delays this
    subscriber. Write failures close the subscriber and end the loop; they are
    never raised out of :meth:`run`.
    """

    def __init__(
        self,
        hub: BroadcastHub,
        subscriber: Subscriber,
        transport: Transport,
        snapshot: Sequence[EventEnvelope] = (),
        retry_ms: int | None = None,
        keepalive_seconds: float | None = None,
    ) -> None:
        self.hub = hub
        self.subscriber = subscriber
        self.transport = transport
        self.snapshot = list(snapshot)
        self.retry_ms = retry_ms
        self.keepalive_seconds = keepalive_seconds

    async def run(self) -> None:
        subscriber = self.subscriber
        subscriber.attach(asyncio.get_running_loop())
        try:
            frame = self._render(encode_snapshot, self.snapshot, retry_ms=self.retry_ms)
            if frame is None or not await self._send(frame):
                return
            subscriber.mark_active()

            while True:
                if subscriber.state is SubscriberState.CLOSED:
                    return
                envelope = subscriber.poll()
                if envelope is not None:
                    frame = self._render(encode_envelope, envelope)
                    if frame is None or not await self._send(frame):
                        return
                    subscriber.delivered += 1
                    continue
                if subscriber.state is SubscriberState.DRAINING:
                    subscriber.close()
                    logger.debug("Subscriber %s drained (%d delivered)", subscriber.id, subscriber.delivered)
                    return
                woke = await subscriber.wait(self.keepalive_seconds)
                if not woke and not await self._send(KEEPALIVE_FRAME):
                    return
        finally:
            self.hub.unsubscribe(subscriber)
            subscriber.close()

    def _render(self, encoder: Callable[..., str], *args: Any, **kwargs: Any) -> str | None:
        try:
            return encoder(*args, **kwargs)
        except (TypeError, ValueError) as exc:
            # PydanticSerializationError is a ValueError
            self.subscriber.fail(exc)
            self.hub.unsubscribe(self.subscriber)
            logger.warning("Could not encode frame for subscriber %s: %s", self.subscriber.id, exc)
            return None

    async def _send(self, frame: str) -> bool:
        try:
            ok = await self.transport.write(frame.encode("utf-8"))
        except Exception as exc:  # noqa: BLE001
            logger.debug("Transport for subscriber %s raised: %r", self.subscriber.id, exc)
            ok = False
        if ok:
            return True

        self.subscriber.fail(TransportWriteFailed(self.subscriber.id))
        self.hub.unsubscribe(self.subscriber)
        logger.info("Transport write failed, closed subscriber %s", self.subscriber.id)
        return False
