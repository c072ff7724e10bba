"""Flake registry and resolution commands."""

from __future__ import annotations

import logging
from pathlib import Path

from flakegraph.commands.payloads import dependency_payload, flake_payload
from flakegraph.commands.types import CommandResult
from flakegraph.errors import AliasNotFoundError, FlakeError, ReferenceParseError
from flakegraph.lockfile import LockStore
from flakegraph.persistence import exclusive_file_lock
from flakegraph.pinning import Pinner
from flakegraph.reference import CURRENT_DIRECTORY, IndirectRef, classify
from flakegraph.registry import RegistryTier, load_registry, save_registry
from flakegraph.resolver import GraphResolver, LockMode, iter_dependencies

_LOGGER = logging.getLogger(__name__)


class FlakeCommands:
    """Deterministic flake operations over one invocation's registry snapshot.

    Resolution-backed operations use the resolver's chain snapshot taken at
    construction; user-registry writes go straight to disk under a file lock.
    """

    def __init__(
        self,
        *,
        resolver: GraphResolver,
        lock_store: LockStore,
        pinner: Pinner,
        user_registry_path: Path,
    ) -> None:
        """Store collaborators.

        Args:
            resolver: Graph resolver bound to the invocation's registry chain.
            lock_store: Lock store for path flakes.
            pinner: Alias pinner.
            user_registry_path: Persisted user registry file.
        """
        self._resolver = resolver
        self._lock_store = lock_store
        self._pinner = pinner
        self._user_registry_path = user_registry_path

    def list_registries(self) -> CommandResult:
        """List registry entries in flag > user > global order.

        Returns:
            Result with one row per entry.
        """
        rows = self._resolver.chain.rows()
        lines = [f"{row.source} {row.tier.value} {row.target}" for row in rows]
        return CommandResult.ok(
            "\n".join(lines),
            code="registry_listed",
            data={
                "entries": [
                    {
                        "alias": row.source.to_string(),
                        "tier": row.tier.value,
                        "target": row.target.to_string(),
                    }
                    for row in rows
                ]
            },
        )

    def info(self, uri: str = CURRENT_DIRECTORY) -> CommandResult:
        """Fetch and describe one flake.

        Args:
            uri: Flake reference text.

        Returns:
            Result with flake id/description/epoch and source info.
        """
        try:
            flake = self._resolver.get_flake(classify(uri))
        except FlakeError as exc:
            return CommandResult.from_error(exc)
        message = flake.id
        if flake.description:
            message = f"{flake.id}: {flake.description}"
        return CommandResult.ok(
            message,
            code="flake_info",
            data=flake_payload(flake),
        )

    def deps(
        self,
        uri: str = CURRENT_DIRECTORY,
        *,
        lock_mode: LockMode = LockMode.READ_ONLY,
    ) -> CommandResult:
        """Resolve a flake and list its transitive dependencies breadth-first.

        Args:
            uri: Flake reference text.
            lock_mode: Lock participation mode.

        Returns:
            Result with dependencies in queue order.
        """
        try:
            resolved = self._lock_store.resolve(classify(uri), lock_mode)
        except FlakeError as exc:
            return CommandResult.from_error(exc)
        entries = [dependency_payload(entry) for entry in iter_dependencies(resolved)]
        return CommandResult.ok(
            f"{len(entries)} dependencies of {resolved.flake.id}",
            code="flake_deps",
            data={"root": flake_payload(resolved.flake), "dependencies": entries},
        )

    def update(self, uri: str = CURRENT_DIRECTORY) -> CommandResult:
        """Re-resolve a path flake and overwrite its lock file.

        Args:
            uri: Path flake reference text.

        Returns:
            Result with the written lock path and pins.
        """
        try:
            ref = classify(uri)
            lock = self._lock_store.update(ref)
            path = self._lock_store.lock_path(ref)
        except FlakeError as exc:
            return CommandResult.from_error(exc)
        return CommandResult.ok(
            f"Updated lock file {path}",
            code="lock_updated",
            data={
                "path": str(path),
                "inputs": dict(lock.inputs),
                "non_flake_inputs": dict(lock.non_flake_inputs),
            },
        )

    def add(self, alias: str, uri: str) -> CommandResult:
        """Upsert an alias into the user registry.

        Args:
            alias: Alias name.
            uri: Target reference text.

        Returns:
            Result describing the stored entry.
        """
        try:
            source = _require_alias(alias)
            target = classify(uri)
            with exclusive_file_lock(self._user_registry_path):
                registry = load_registry(self._user_registry_path, RegistryTier.USER)
                registry.upsert(source, target)
                save_registry(registry, self._user_registry_path)
        except FlakeError as exc:
            return CommandResult.from_error(exc)
        _LOGGER.info("Added '%s' -> '%s' to user registry", source.alias, target)
        return CommandResult.ok(
            f"{source.alias} -> {target}",
            code="registry_added",
            data={"alias": source.alias, "target": target.to_string()},
        )

    def remove(self, alias: str) -> CommandResult:
        """Erase an alias from the user registry.

        Args:
            alias: Alias name.

        Returns:
            Result confirming removal, or ``alias_not_found`` error.
        """
        try:
            source = _require_alias(alias)
            with exclusive_file_lock(self._user_registry_path):
                registry = load_registry(self._user_registry_path, RegistryTier.USER)
                if not registry.erase(source.alias):
                    raise AliasNotFoundError(
                        f"The flake alias '{source.alias}' "
                        "is not in the user registry.",
                        data={"alias": source.alias},
                    )
                save_registry(registry, self._user_registry_path)
        except FlakeError as exc:
            return CommandResult.from_error(exc)
        _LOGGER.info("Removed '%s' from user registry", source.alias)
        return CommandResult.ok(
            f"Removed {source.alias}",
            code="registry_removed",
            data={"alias": source.alias},
        )

    def pin(self, alias: str) -> CommandResult:
        """Pin an alias in the user registry to its resolved identity.

        Args:
            alias: Alias name.

        Returns:
            Result with the pinned target.
        """
        try:
            source = _require_alias(alias)
            pinned = self._pinner.pin(source.alias)
        except FlakeError as exc:
            return CommandResult.from_error(exc)
        return CommandResult.ok(
            f"{source.alias} -> {pinned}",
            code="registry_pinned",
            data={"alias": source.alias, "target": pinned.to_string()},
        )


def _require_alias(text: str) -> IndirectRef:
    """Classify text and require an alias."""
    ref = classify(text)
    if not isinstance(ref, IndirectRef):
        raise ReferenceParseError(
            f"'{text}' is not a flake alias.", data={"reference": text}
        )
    return ref
