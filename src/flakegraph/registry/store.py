"""Registry persistence helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flakegraph.errors import ReferenceParseError, RegistryDecodeError
from flakegraph.persistence import atomic_write_json
from flakegraph.reference import IndirectRef, classify
from flakegraph.registry.models import Registry, RegistryEntry, RegistryTier

REGISTRY_SCHEMA_VERSION = 1

_LOGGER = logging.getLogger(__name__)


class PersistedRegistryEntry(BaseModel):
    """Textual alias -> target pair as stored on disk."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    source: str = Field(alias="from", min_length=1)
    target: str = Field(alias="to", min_length=1)


class PersistedRegistryV1(BaseModel):
    """Versioned persisted registry payload."""

    model_config = ConfigDict(extra="forbid")

    version: int = REGISTRY_SCHEMA_VERSION
    tier: RegistryTier
    flakes: list[PersistedRegistryEntry] = []


def load_registry(path: Path, tier: RegistryTier) -> Registry:
    """Load one registry tier from disk, empty when the file is missing.

    Args:
        path: Registry file path.
        tier: Expected tier tag.

    Returns:
        Registry with entries in persisted order.

    Raises:
        RegistryDecodeError: If JSON, schema, tier, or references are invalid.
    """
    if not path.exists():
        return Registry(tier)
    raw = path.read_text(encoding="utf-8")
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RegistryDecodeError(
            f"Invalid registry JSON in '{path}': {exc}", data={"path": str(path)}
        ) from exc
    if not isinstance(decoded, dict):
        raise RegistryDecodeError(
            f"Invalid registry payload in '{path}': expected JSON object.",
            data={"path": str(path)},
        )
    version = decoded.get("version")
    if version != REGISTRY_SCHEMA_VERSION:
        raise RegistryDecodeError(
            f"Unsupported registry version {version!r} in '{path}'. "
            f"Expected {REGISTRY_SCHEMA_VERSION}.",
            data={"path": str(path), "version": version},
        )
    try:
        payload = PersistedRegistryV1.model_validate(decoded)
    except ValidationError as exc:
        raise RegistryDecodeError(
            f"Invalid registry payload in '{path}': {exc}", data={"path": str(path)}
        ) from exc
    if payload.tier != tier:
        raise RegistryDecodeError(
            f"Registry '{path}' is tagged '{payload.tier}', expected '{tier}'.",
            data={"path": str(path), "tier": payload.tier.value},
        )
    entries = tuple(_decode_entry(item, path) for item in payload.flakes)
    _LOGGER.debug("Loaded %d %s registry entries from %s", len(entries), tier, path)
    return Registry(tier, entries)


def save_registry(registry: Registry, path: Path) -> None:
    """Persist registry atomically, preserving entry order.

    Args:
        registry: Registry to persist.
        path: Target file path.
    """
    payload = PersistedRegistryV1(
        tier=registry.tier,
        flakes=[
            PersistedRegistryEntry(
                source=entry.source.to_string(),
                target=entry.target.to_string(),
            )
            for entry in registry.entries()
        ],
    )
    atomic_write_json(path, payload.model_dump(mode="json", by_alias=True))
    _LOGGER.info(
        "Wrote %d %s registry entries to %s", len(registry), registry.tier, path
    )


def _decode_entry(item: PersistedRegistryEntry, path: Path) -> RegistryEntry:
    """Classify one persisted pair into reference models.

    Raises:
        RegistryDecodeError: If either side is malformed or ``from`` is not an alias.
    """
    try:
        source = classify(item.source)
        target = classify(item.target)
    except ReferenceParseError as exc:
        raise RegistryDecodeError(
            f"Invalid registry entry in '{path}': {exc}",
            data={"path": str(path), "from": item.source, "to": item.target},
        ) from exc
    if not isinstance(source, IndirectRef):
        raise RegistryDecodeError(
            f"Invalid registry entry in '{path}': '{item.source}' is not an alias.",
            data={"path": str(path), "from": item.source},
        )
    return RegistryEntry(source=source, target=target)
