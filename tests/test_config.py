from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from factstream.config import AppSettings, load_settings
from factstream.hub.broadcast import BroadcastHub
from factstream.hub.subscriber import OverflowPolicy


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "missing.yaml")
    assert settings == AppSettings()
    assert settings.hub.queue_capacity == 256
    assert settings.hub.overflow_policy is OverflowPolicy.DROP_OLDEST


def test_yaml_config_is_loaded(tmp_path: Path) -> None:
    path = tmp_path / "hub.yaml"
    path.write_text(
        "hub:\n"
        "  history_capacity: 2\n"
        "  queue_capacity: 8\n"
        "  overflow_policy: disconnect\n"
        "  max_subscribers: 3\n"
        "stream:\n"
        "  keepalive_seconds: 5\n",
        encoding="utf-8",
    )

    settings = load_settings(path)
    hub = BroadcastHub.from_settings(settings.hub)

    assert settings.stream.keepalive_seconds == 5.0
    assert settings.stream.retry_ms == 1500
    assert hub.overflow_policy is OverflowPolicy.DISCONNECT
    assert hub.stats()["history_capacity"] == 2
    assert hub.max_subscribers == 3


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_settings(path) == AppSettings()


def test_unknown_policy_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("hub:\n  overflow_policy: block\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_settings(path)


def test_repository_default_config_is_valid() -> None:
    path = Path(__file__).resolve().parents[1] / "configs" / "default.yaml"
    settings = load_settings(path)
    assert settings.hub.max_subscribers == 1024
