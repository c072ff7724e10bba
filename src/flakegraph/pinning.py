"""Promote user-registry aliases to fully resolved concrete references."""

from __future__ import annotations

import logging
from pathlib import Path

from flakegraph.errors import AliasNotFoundError
from flakegraph.persistence import exclusive_file_lock
from flakegraph.reference import FlakeRef, IndirectRef
from flakegraph.registry import Registry, RegistryTier, load_registry, save_registry
from flakegraph.resolver import GraphResolver

_LOGGER = logging.getLogger(__name__)


class Pinner:
    """Pin aliases in the user registry to their fetched identities."""

    def __init__(
        self,
        *,
        resolver: GraphResolver,
        user_registry_path: Path,
        global_registry: Registry,
    ) -> None:
        """Create pinner.

        Args:
            resolver: Resolver used to fetch alias targets.
            user_registry_path: Persisted user registry file.
            global_registry: Global registry consulted when the user tier misses.

        Raises:
            ValueError: If ``global_registry`` is not tagged as the global tier.
        """
        if global_registry.tier != RegistryTier.GLOBAL:
            raise ValueError("Pinner requires the global registry tier.")
        self._resolver = resolver
        self._user_registry_path = user_registry_path
        self._global_registry = global_registry

    def pin(self, alias: str) -> FlakeRef:
        """Overwrite or insert ``alias`` in the user registry with its identity.

        The user entry is overwritten in place when present; otherwise the
        global entry is resolved and promoted into the user registry.

        Args:
            alias: Alias name.

        Returns:
            Concrete reference now pinned in the user registry.

        Raises:
            AliasNotFoundError: If neither user nor global registry maps ``alias``.
        """
        with exclusive_file_lock(self._user_registry_path):
            user = load_registry(self._user_registry_path, RegistryTier.USER)
            target = user.get(alias)
            origin = RegistryTier.USER
            if target is None:
                target = self._global_registry.get(alias)
                origin = RegistryTier.GLOBAL
            if target is None:
                raise AliasNotFoundError(
                    f"The flake alias '{alias}' does not exist "
                    "in the user or global registry.",
                    data={"alias": alias},
                )
            pinned = self._resolver.resolve_source(target).resolved_ref
            user.upsert(IndirectRef(alias=alias), pinned)
            save_registry(user, self._user_registry_path)
        _LOGGER.info("Pinned '%s' from %s registry to '%s'", alias, origin, pinned)
        return pinned
