"""Tiered flake alias registries."""

from flakegraph.registry.chain import RegistryChain, RegistryRow
from flakegraph.registry.models import (
    TIER_PRIORITY,
    Registry,
    RegistryEntry,
    RegistryTier,
)
from flakegraph.registry.store import (
    REGISTRY_SCHEMA_VERSION,
    load_registry,
    save_registry,
)

__all__ = [
    "REGISTRY_SCHEMA_VERSION",
    "TIER_PRIORITY",
    "Registry",
    "RegistryChain",
    "RegistryEntry",
    "RegistryRow",
    "RegistryTier",
    "load_registry",
    "save_registry",
]
