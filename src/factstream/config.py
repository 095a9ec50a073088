"""Project configuration models and YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from factstream.hub.subscriber import OverflowPolicy


class HubSettings(BaseModel):
    history_capacity: int = Field(default=100, ge=0)
    queue_capacity: int = Field(default=256, ge=1)
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST
    max_subscribers: int | None = Field(default=1024, ge=1)


class StreamSettings(BaseModel):
    retry_ms: int | None = Field(default=1500, ge=0)
    keepalive_seconds: float | None = Field(default=15.0, gt=0.0)


class IngressSettings(BaseModel):
    max_payload_bytes: int = Field(default=64 * 1024, ge=1)


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=0, le=65535)


class LoggingSettings(BaseModel):
    level: str = "INFO"


class AppSettings(BaseModel):
    hub: HubSettings = Field(default_factory=HubSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    ingress: IngressSettings = Field(default_factory=IngressSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_settings(config_path: str | Path | None = None) -> AppSettings:
    """Load YAML configuration into typed app settings."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        return AppSettings()

    with path.open("r", encoding="utf-8") as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    return AppSettings.model_validate(raw)
