"""Event envelope shared by the hub, the wire format and HTTP ingest."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """UTC now helper for consistent timestamps."""
    return datetime.now(timezone.utc)


class EventEnvelope(BaseModel):
    """One published fact plus its ordering metadata."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    sequence: int = Field(ge=1)
    payload: Any
    published_at: datetime = Field(default_factory=utc_now)
