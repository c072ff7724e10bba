"""Registry tiers and ordered alias mappings."""

from __future__ import annotations

from collections.abc import Iterator
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from flakegraph.reference import FlakeRef, IndirectRef


class RegistryTier(StrEnum):
    """Registry tiers in lookup priority order."""

    FLAG = "flag"
    USER = "user"
    GLOBAL = "global"


TIER_PRIORITY: tuple[RegistryTier, ...] = (
    RegistryTier.FLAG,
    RegistryTier.USER,
    RegistryTier.GLOBAL,
)


class RegistryEntry(BaseModel):
    """One alias -> target mapping."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: IndirectRef
    target: FlakeRef


class Registry:
    """Ordered alias registry for one tier.

    Entries are unique by alias name. Ref/rev decorations on the ``from``
    side are not part of the key.
    """

    def __init__(
        self,
        tier: RegistryTier,
        entries: tuple[RegistryEntry, ...] = (),
    ) -> None:
        """Create registry for one tier.

        Args:
            tier: Tier tag for this registry.
            entries: Initial ordered entries; later duplicates overwrite earlier.
                Decorations on each source are dropped as in ``upsert``.
        """
        self.tier = tier
        self._entries: dict[str, RegistryEntry] = {}
        for entry in entries:
            self.upsert(entry.source, entry.target)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(tuple(self._entries.values()))

    def __contains__(self, alias: object) -> bool:
        return alias in self._entries

    def entries(self) -> tuple[RegistryEntry, ...]:
        """Return entries in insertion order."""
        return tuple(self._entries.values())

    def get(self, alias: str) -> FlakeRef | None:
        """Look up target for an alias name.

        Args:
            alias: Alias name.

        Returns:
            Target reference when present.
        """
        entry = self._entries.get(alias)
        return entry.target if entry is not None else None

    def upsert(self, source: IndirectRef, target: FlakeRef) -> None:
        """Insert or overwrite one alias mapping, keeping existing position.

        Args:
            source: Alias reference; decorations are dropped from the key.
            target: Target reference (may itself be indirect).
        """
        key = IndirectRef(alias=source.alias)
        self._entries[source.alias] = RegistryEntry(source=key, target=target)

    def erase(self, alias: str) -> bool:
        """Remove one alias mapping.

        Args:
            alias: Alias name.

        Returns:
            Whether an entry was removed.
        """
        return self._entries.pop(alias, None) is not None
