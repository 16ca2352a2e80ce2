"""Tests for bridge configuration."""

import pytest
from pydantic import ValidationError

from evalbridge.config import BridgeConfig, ClassifierConfig, PollingConfig, StagingConfig, resolve_host_name


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def test_defaults():
    config = BridgeConfig()
    assert config.host == "local"
    assert config.polling.max_attempts == 600
    assert config.staging.chunk_size == 65536
    assert config.classifier.sample_size == 4096
    assert config.previews.text_bytes == 1024 * 1024
    assert config.previews.image_bytes == 5 * 1024 * 1024


def test_unstable_hosts_poll_slower():
    assert PollingConfig().interval == 0.05
    assert PollingConfig(unstable=True).interval == 0.25


@pytest.mark.parametrize(
    "model, field, value",
    [
        (PollingConfig, "poll_interval", 0),
        (PollingConfig, "max_attempts", 0),
        (PollingConfig, "transient_retries", -1),
        (StagingConfig, "chunk_size", 0),
        (ClassifierConfig, "high_byte_ratio", 1.5),
        (ClassifierConfig, "sample_size", -4),
    ],
)
def test_validation(model, field, value):
    with pytest.raises(ValidationError):
        model(**{field: value})


def test_load_local_needs_no_file(home):
    assert BridgeConfig.load("local") == BridgeConfig()


def test_save_and_load(home):
    config = BridgeConfig(
        host="devtools",
        storage_root="/srv/storage",
        polling=PollingConfig(unstable=True, max_attempts=50),
    )
    path = config.save("panel")
    assert path == home / ".evalbridge" / "hosts" / "panel.json"

    loaded = BridgeConfig.load("panel")
    assert loaded.name == "panel"
    assert loaded.host == "devtools"
    assert loaded.polling.unstable
    assert loaded.polling.max_attempts == 50


def test_load_missing(home):
    with pytest.raises(FileNotFoundError, match="Host config not found"):
        BridgeConfig.load("ghost")


def test_resolve_host_name(monkeypatch):
    monkeypatch.delenv("EVALBRIDGE_HOST", raising=False)
    assert resolve_host_name(None) == "local"
    monkeypatch.setenv("EVALBRIDGE_HOST", "panel")
    assert resolve_host_name(None) == "panel"
    assert resolve_host_name("other") == "other"
    assert resolve_host_name(name="") == "panel"
