"""SSE transport over raw ASGI send/receive."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Sequence

from starlette.requests import ClientDisconnect
from starlette.responses import JSONResponse, Response
from starlette.types import Receive, Scope, Send

from factstream.hub.broadcast import BroadcastHub
from factstream.hub.errors import HubClosed, ResourceExhausted
from factstream.hub.subscriber import Subscriber
from factstream.hub.wire import SSE_HEADERS, SSE_MEDIA_TYPE
from factstream.hub.worker import DeliveryWorker

logger = logging.getLogger(__name__)


class ASGITransport:
    """Transport adapter for one HTTP response held open as an event stream."""

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self._closed = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self, headers: Sequence[tuple[bytes, bytes]]) -> None:
        await self._send({"type": "http.response.start", "status": 200, "headers": list(headers)})

    async def write(self, data: bytes) -> bool:
        if self._closed:
            return False
        try:
            await self._send({"type": "http.response.body", "body": data, "more_body": True})
        except (OSError, ClientDisconnect):
            self._mark_closed()
            return False
        return True

    def on_close(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    async def watch_disconnect(self) -> None:
        """Consume ``receive`` until the client goes away."""
        while not self._closed:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self._mark_closed()

    async def finish(self) -> None:
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(OSError, ClientDisconnect):
            await self._send({"type": "http.response.body", "body": b"", "more_body": False})

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        for callback in self._callbacks:
            callback()


class EventStreamResponse(Response):
    """Response that subscribes to the hub once it starts and streams until closed.

    Subscribing happens when the ASGI server calls the response, so a request
    that ends before then never holds a subscriber slot.
    """

    media_type = SSE_MEDIA_TYPE

    def __init__(
        self,
        hub: BroadcastHub,
        *,
        after_sequence: int | None = None,
        retry_ms: int | None = None,
        keepalive_seconds: float | None = None,
    ) -> None:
        # no body and no content-length: the stream stays open
        self.status_code = 200
        self.background = None
        self.init_headers(SSE_HEADERS)
        self.hub = hub
        self.after_sequence = after_sequence
        self.retry_ms = retry_ms
        self.keepalive_seconds = keepalive_seconds
        self.subscriber: Subscriber | None = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            subscriber, snapshot = self.hub.subscribe(after_sequence=self.after_sequence)
        except (ResourceExhausted, HubClosed) as exc:
            rejected = JSONResponse({"detail": str(exc)}, status_code=503)
            await rejected(scope, receive, send)
            return
        self.subscriber = subscriber

        transport = ASGITransport(receive, send)
        transport.on_close(lambda: self.hub.unsubscribe(subscriber))
        worker = DeliveryWorker(
            self.hub,
            subscriber,
            transport,
            snapshot=snapshot,
            retry_ms=self.retry_ms,
            keepalive_seconds=self.keepalive_seconds,
        )
        watcher: asyncio.Task[None] | None = None
        try:
            await transport.open(self.raw_headers)
            watcher = asyncio.create_task(transport.watch_disconnect())
            await worker.run()
        finally:
            if watcher is not None:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher
            self.hub.unsubscribe(subscriber)
            await transport.finish()
        logger.debug("Stream for subscriber %s finished (%s)", subscriber.id, subscriber.state.value)
