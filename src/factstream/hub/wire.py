"""Text event stream framing."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from factstream.events.schemas import EventEnvelope

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
KEEPALIVE_FRAME = ": keep-alive\n\n"


def encode_sse(data: Any, retry_ms: int | None = None, event_id: int | None = None) -> str:
    """Encode payload as SSE frame."""
    lines = []
    if retry_ms is not None:
        lines.append(f"retry: {retry_ms}")
    if event_id is not None:
        lines.append(f"id: {event_id}")
    # json.dumps escapes newlines, so the data line stays single-line
    lines.append(f"data: {json.dumps(data, ensure_ascii=False)}")
    return "\n".join(lines) + "\n\n"


def encode_envelope(envelope: EventEnvelope) -> str:
    return encode_sse(envelope.model_dump(mode="json"), event_id=envelope.sequence)


def encode_snapshot(snapshot: Sequence[EventEnvelope], retry_ms: int | None = None) -> str:
    """First frame of a connection: the whole history snapshot as one array."""
    event_id = snapshot[-1].sequence if snapshot else None
    data = [envelope.model_dump(mode="json") for envelope in snapshot]
    return encode_sse(data, retry_ms=retry_ms, event_id=event_id)


def decode_sse(lines: Iterable[str]) -> Iterator[dict[str, Any]]:
    """Parse text event stream lines into messages.

    Each message is a dict with ``data`` (JSON-decoded when possible) plus
    ``id``/``event``/``retry`` when present. Comment lines are skipped.
    """
    fields: dict[str, Any] = {}
    data_lines: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data_lines:
                text = "\n".join(data_lines)
                try:
                    fields["data"] = json.loads(text)
                except ValueError:
                    fields["data"] = text
                yield fields
            fields = {}
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            data_lines.append(value)
        elif name == "retry":
            if value.isdigit():
                fields["retry"] = int(value)
        elif name in ("id", "event"):
            fields[name] = value
