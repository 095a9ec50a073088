"""Producer-facing validation in front of ``BroadcastHub.publish``."""

from __future__ import annotations

import json
from typing import Any

from factstream.events.schemas import EventEnvelope
from factstream.hub.broadcast import BroadcastHub
from factstream.hub.errors import InvalidPayload

DEFAULT_MAX_PAYLOAD_BYTES = 64 * 1024


class FactIngress:
    """Validate submitted facts and forward them to the hub."""

    def __init__(self, hub: BroadcastHub, max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES) -> None:
        self.hub = hub
        self.max_payload_bytes = max_payload_bytes

    def submit(self, payload: Any) -> EventEnvelope:
        return self.hub.publish_envelope(self.validate(payload))

    def validate(self, payload: Any) -> Any:
        """Return a detached, publishable copy of ``payload``."""
        if payload is None:
            raise InvalidPayload("payload is required")
        if isinstance(payload, (bytes, bytearray, memoryview)):
            raise InvalidPayload("binary payloads are not supported")
        if isinstance(payload, str) and not payload.strip():
            raise InvalidPayload("payload text is empty")

        try:
            encoded = json.dumps(payload, ensure_ascii=False, allow_nan=False)
            size = len(encoded.encode("utf-8"))
        except UnicodeEncodeError as exc:
            raise InvalidPayload("payload is not valid UTF-8 text") from exc
        except (TypeError, ValueError) as exc:
            raise InvalidPayload(f"payload is not JSON-serialisable: {exc}") from exc

        if size > self.max_payload_bytes:
            raise InvalidPayload(f"payload is {size} bytes, limit is {self.max_payload_bytes}")
        return json.loads(encoded)
