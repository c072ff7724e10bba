"""Global flakegraph config models and loading helpers."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flakegraph.lockfile import DEFAULT_LOCK_FILENAME
from flakegraph.resolver import DEFAULT_MAX_WORKERS


class RegistrySettings(BaseModel):
    """Registry tier locations and lookup policy."""

    model_config = ConfigDict(extra="forbid")

    user_path: str = "~/.config/flakegraph/registry.json"
    global_path: str | None = None
    use_registries: bool = True
    overrides: dict[str, str] = Field(default_factory=dict)

    def user_registry_file(self) -> Path:
        """Return expanded user registry path."""
        return Path(self.user_path).expanduser()

    def global_registry_file(self) -> Path | None:
        """Return expanded global registry path when configured."""
        if self.global_path is None:
            return None
        return Path(self.global_path).expanduser()


class ResolverSettings(BaseModel):
    """Graph resolution tuning."""

    model_config = ConfigDict(extra="forbid")

    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1, le=64)


class LockSettings(BaseModel):
    """Lock file settings."""

    model_config = ConfigDict(extra="forbid")

    filename: str = Field(default=DEFAULT_LOCK_FILENAME, min_length=1)


class FlakeGraphConfig(BaseModel):
    """Root flakegraph configuration model."""

    model_config = ConfigDict(extra="forbid")

    registries: RegistrySettings = RegistrySettings()
    resolver: ResolverSettings = ResolverSettings()
    lock: LockSettings = LockSettings()


class ConfigError(RuntimeError):
    """Raised when config cannot be decoded or validated."""


def _decode_config_payload(path: Path) -> dict[str, object]:
    """Decode config payload from JSON or YAML.

    Args:
        path: Config file path.

    Returns:
        Parsed mapping payload.

    Raises:
        ConfigError: If decode fails or payload is not an object.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid config JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid config YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError("Invalid config payload: root must be an object")
    return payload


def load_config(path: Path) -> FlakeGraphConfig:
    """Load flakegraph config from disk, defaulting when missing.

    Args:
        path: Config file path.

    Returns:
        Parsed config payload, or defaults when file does not exist.

    Raises:
        ConfigError: If payload decode or validation fails.
    """
    if not path.exists():
        return FlakeGraphConfig()
    payload = _decode_config_payload(path)
    try:
        return FlakeGraphConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config payload: {exc}") from exc
