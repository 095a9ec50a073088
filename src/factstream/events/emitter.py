"""HTTP client for producers and listeners of a running hub server."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import httpx

from factstream.hub.wire import decode_sse


class FactClient:
    """POST facts, query status and follow the event stream over HTTP."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        timeout_seconds: float = 2.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout_seconds, transport=transport)

    def __enter__(self) -> FactClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def submit(self, payload: Any) -> dict[str, Any]:
        """Publish one fact. Returns the envelope assigned by the server."""
        response = self._client.post("/facts", json=payload)
        response.raise_for_status()
        return response.json()

    def status(self) -> dict[str, Any]:
        response = self._client.get("/status")
        response.raise_for_status()
        return response.json()

    def listen(self, last_event_id: int | None = None) -> Iterator[dict[str, Any]]:
        """Yield decoded stream messages until the server closes the stream."""
        headers = {"Accept": "text/event-stream"}
        if last_event_id is not None:
            headers["Last-Event-ID"] = str(last_event_id)
        timeout = httpx.Timeout(self.timeout_seconds, read=None)
        with self._client.stream("GET", "/events", headers=headers, timeout=timeout) as response:
            response.raise_for_status()
            yield from decode_sse(response.iter_lines())
