"""Three-tier registry chain and one-step alias substitution."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from flakegraph.errors import ReferenceParseError
from flakegraph.reference import (
    ConcreteRef,
    ConcreteScheme,
    FlakeRef,
    IndirectRef,
    classify,
)
from flakegraph.registry.models import (
    TIER_PRIORITY,
    Registry,
    RegistryEntry,
    RegistryTier,
)

_LOGGER = logging.getLogger(__name__)


class RegistryRow(BaseModel):
    """One listed registry entry tagged with its tier."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tier: RegistryTier
    source: IndirectRef
    target: FlakeRef


class RegistryChain:
    """Flag > user > global registry snapshots consulted in priority order."""

    def __init__(self, *, flag: Registry, user: Registry, global_: Registry) -> None:
        """Snapshot three registry tiers.

        Args:
            flag: Per-invocation override tier (never persisted).
            user: User-writable persisted tier.
            global_: Read-mostly global tier.

        Raises:
            ValueError: If a registry is passed under the wrong tier.
        """
        registries = {
            RegistryTier.FLAG: flag,
            RegistryTier.USER: user,
            RegistryTier.GLOBAL: global_,
        }
        for tier, registry in registries.items():
            if registry.tier != tier:
                raise ValueError(
                    f"Registry tagged '{registry.tier}' passed as '{tier}' tier."
                )
        self._tiers: tuple[
            tuple[RegistryTier, MappingProxyType[str, RegistryEntry]], ...
        ] = tuple(
            (
                tier,
                MappingProxyType(
                    {entry.source.alias: entry for entry in registries[tier]}
                ),
            )
            for tier in TIER_PRIORITY
        )

    @classmethod
    def from_overrides(
        cls,
        overrides: Iterable[tuple[str, str]],
        *,
        user: Registry,
        global_: Registry,
    ) -> RegistryChain:
        """Build chain with a fresh flag tier from textual override pairs.

        Args:
            overrides: ``(alias, target)`` textual pairs.
            user: User registry.
            global_: Global registry.

        Returns:
            Registry chain.

        Raises:
            ReferenceParseError: If an override alias or target is malformed.
        """
        flag = Registry(RegistryTier.FLAG)
        for alias_text, target_text in overrides:
            source = classify(alias_text)
            if not isinstance(source, IndirectRef):
                raise ReferenceParseError(
                    f"Invalid flake override: '{alias_text}' is not an alias.",
                    data={"reference": alias_text},
                )
            flag.upsert(source, classify(target_text))
        return cls(flag=flag, user=user, global_=global_)

    def lookup(self, alias: str) -> tuple[RegistryTier, FlakeRef] | None:
        """Return the highest-priority mapping for an alias.

        Args:
            alias: Alias name.

        Returns:
            Tier and target of the first hit, or None.
        """
        for tier, entries in self._tiers:
            entry = entries.get(alias)
            if entry is not None:
                return tier, entry.target
        return None

    def substitute_once(self, ref: FlakeRef) -> FlakeRef:
        """Apply one alias substitution step.

        Args:
            ref: Reference to substitute.

        Returns:
            First tier's mapped target (with ref/rev override carried onto it),
            or ``ref`` unchanged when it is direct or no tier maps the alias.
        """
        if not isinstance(ref, IndirectRef):
            return ref
        hit = self.lookup(ref.alias)
        if hit is None:
            return ref
        tier, target = hit
        substituted = _carry_decorations(ref, target)
        _LOGGER.debug(
            "Substituted '%s' -> '%s' via %s registry", ref, substituted, tier
        )
        return substituted

    def rows(self) -> tuple[RegistryRow, ...]:
        """List every entry in tier priority order."""
        return tuple(
            RegistryRow(tier=tier, source=entry.source, target=entry.target)
            for tier, entries in self._tiers
            for entry in entries.values()
        )


def _carry_decorations(source: IndirectRef, target: FlakeRef) -> FlakeRef:
    """Carry alias ref/rev overrides onto a target that can hold them."""
    if source.ref is None and source.rev is None:
        return target
    if isinstance(target, IndirectRef) or (
        isinstance(target, ConcreteRef) and target.scheme != ConcreteScheme.TARBALL
    ):
        update: dict[str, str] = {}
        if source.ref is not None and target.ref is None:
            update["ref"] = source.ref
        if source.rev is not None and target.rev is None:
            update["rev"] = source.rev
        return target.model_copy(update=update) if update else target
    return target
