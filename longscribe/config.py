"""
longscribe.config - YAML config loading and validation.

Handles locating longscribe.yaml, applying environment overrides for the
API key, and validating all parameters. The resolved config is read once
at startup and never mutated.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from longscribe.exceptions import ConfigError

CONFIG_FILENAME = "longscribe.yaml"
API_KEY_ENV = "OPENAI_API_KEY"

MB = 1024 * 1024


class LongscribeConfig(BaseModel):
    """Resolved configuration for a transcription run."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = None
    base_url: str = "https://api.openai.com/v1"
    model: str = "whisper-1"
    response_format: str = "json"
    language: str = "zh"

    max_bytes_per_chunk: int = Field(default=25 * MB, gt=0)
    safety_bytes_per_chunk: int = Field(default=20 * MB, gt=0)
    max_duration_per_chunk_ms: int = Field(default=10 * 60 * 1000, gt=0)

    target_sample_rate: int = Field(default=16000, gt=0)
    bit_depth: int = 8

    timeout: float = Field(default=300.0, gt=0.0)
    strict_validation: bool = False

    max_retries: int = Field(default=0, ge=0)
    retry_delay: float = Field(default=2.0, ge=0.0)

    config_path: Path | None = None

    @field_validator("bit_depth")
    @classmethod
    def validate_bit_depth(cls, v: int) -> int:
        valid = {8, 16}
        if v not in valid:
            raise ValueError(f"bit_depth must be one of: {valid}")
        return v

    @field_validator("response_format")
    @classmethod
    def validate_response_format(cls, v: str) -> str:
        valid = {"json", "text", "srt", "verbose_json", "vtt"}
        if v not in valid:
            raise ValueError(f"response_format must be one of: {valid}")
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_chunk_limits(self) -> LongscribeConfig:
        if self.safety_bytes_per_chunk > self.max_bytes_per_chunk:
            raise ValueError("safety_bytes_per_chunk must not exceed max_bytes_per_chunk")
        return self


def find_config_file(start: Path | None = None) -> Path | None:
    """Find longscribe.yaml by walking up from start (default: cwd)."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def load_config(path: Path | None = None, **overrides: Any) -> LongscribeConfig:
    """Load and validate configuration.

    Args:
        path: Explicit config file. If None, longscribe.yaml is searched for
            upwards from the working directory; built-in defaults apply when
            none is found.
        **overrides: Values that take precedence over the file (None ignored)

    Returns:
        Validated, frozen LongscribeConfig

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid
    """
    if path is not None and not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    config_file = path or find_config_file()
    raw_config: dict[str, Any] = {}
    if config_file is not None:
        try:
            with open(config_file, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
        if not isinstance(raw_config, dict):
            raise ConfigError(f"{config_file} must contain a mapping")
        raw_config["config_path"] = config_file

    merged = merge_config(raw_config, overrides)
    if not merged.get("api_key"):
        merged["api_key"] = os.environ.get(API_KEY_ENV) or None

    try:
        return LongscribeConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def merge_config(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge overrides onto base config. None values in overrides are skipped."""
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def create_default_config() -> dict[str, Any]:
    """Create a default config dict for a new longscribe.yaml.

    The API key is left out so it is read from the environment.
    """
    defaults = LongscribeConfig().model_dump(exclude={"api_key", "config_path"})
    return defaults


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
