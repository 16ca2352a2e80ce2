"""Bridge configuration.

Host name priority: explicit argument from the caller > EVALBRIDGE_HOST env > "local" (default)
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class PollingConfig(BaseModel):
    """Knobs for the polling loop; they trade latency for reliability per host."""

    poll_interval: float = 0.05
    unstable_poll_interval: float = 0.25
    max_attempts: int = 600
    # @@@unstable-host - hosts that misbehave under rapid repeated evaluation get the
    # slower interval plus bounded retries for early null/failed reads.
    unstable: bool = False
    transient_window: int = 5
    transient_retries: int = 3
    transient_backoff: float = 0.1

    @field_validator("poll_interval", "unstable_poll_interval", "transient_backoff")
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("intervals must be positive")
        return value

    @field_validator("max_attempts")
    @classmethod
    def _positive_attempts(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_attempts must be positive")
        return value

    @field_validator("transient_window", "transient_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("transient limits must not be negative")
        return value

    @property
    def interval(self) -> float:
        return self.unstable_poll_interval if self.unstable else self.poll_interval


class StagingConfig(BaseModel):
    chunk_size: int = 64 * 1024

    @field_validator("chunk_size")
    @classmethod
    def _positive_chunk(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("chunk_size must be positive")
        return value


class ClassifierConfig(BaseModel):
    """Heuristic thresholds for the byte-sniffing stage. Chosen empirically."""

    sample_size: int = 4096
    high_byte_ratio: float = 0.30
    control_byte_ratio: float = 0.10

    @field_validator("sample_size")
    @classmethod
    def _positive_sample(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("sample_size must be positive")
        return value

    @field_validator("high_byte_ratio", "control_byte_ratio")
    @classmethod
    def _ratio(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("ratios must be in (0, 1]")
        return value


class PreviewLimits(BaseModel):
    text_bytes: int = 1024 * 1024
    image_bytes: int = 5 * 1024 * 1024


class BridgeConfig(BaseModel):
    host: str = "local"
    name: str = "local"
    storage_root: str = "~/.evalbridge/storage"
    download_dir: str = "~/Downloads"
    polling: PollingConfig = Field(default_factory=PollingConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    previews: PreviewLimits = Field(default_factory=PreviewLimits)

    @staticmethod
    def config_path(name: str) -> Path:
        return Path.home() / ".evalbridge" / "hosts" / f"{name}.json"

    @classmethod
    def load(cls, name: str) -> BridgeConfig:
        if name == "local":
            return cls()

        path = cls.config_path(name)
        if not path.exists():
            raise FileNotFoundError(f"Host config not found: {path}")

        data = json.loads(path.read_text())
        config = cls(**data)
        config.name = name
        return config

    def save(self, name: str) -> Path:
        path = self.config_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(exclude={"name"})
        path.write_text(json.dumps(data, indent=2))
        return path


def resolve_host_name(name: str | None) -> str:
    """Pick the host config name; ``name`` is whatever the caller was given."""
    if name:
        return name
    return os.getenv("EVALBRIDGE_HOST", "local")
