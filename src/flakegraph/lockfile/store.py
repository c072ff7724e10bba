"""Path-flake lock persistence and forced re-resolution."""

from __future__ import annotations

import logging
from pathlib import Path

from flakegraph.errors import NotUpdatableError
from flakegraph.lockfile.io import lock_file_path, read_lock_file, write_lock_file
from flakegraph.lockfile.models import DEFAULT_LOCK_FILENAME, LockFile
from flakegraph.persistence import exclusive_file_lock
from flakegraph.reference import FlakeRef, PathRef
from flakegraph.resolver import GraphResolver, LockMode, ResolvedFlake

_LOGGER = logging.getLogger(__name__)


class LockStore:
    """Read, write, and refresh lock files of path flakes."""

    def __init__(
        self,
        *,
        resolver: GraphResolver,
        filename: str = DEFAULT_LOCK_FILENAME,
    ) -> None:
        """Create lock store.

        Args:
            resolver: Resolver used for (re-)resolution.
            filename: Lock file name inside each path flake.
        """
        self._resolver = resolver
        self._filename = filename

    def lock_path(self, ref: FlakeRef) -> Path:
        """Return lock file path for a path flake.

        Args:
            ref: Flake reference.

        Returns:
            Lock file path.

        Raises:
            NotUpdatableError: If ``ref`` is not a path reference.
        """
        return lock_file_path(_require_path(ref), self._filename)

    def load(self, ref: FlakeRef) -> LockFile:
        """Read the persisted lock, empty when none exists yet.

        Args:
            ref: Path flake reference.

        Returns:
            Persisted lock file.
        """
        return read_lock_file(self.lock_path(ref))

    def update(self, ref: FlakeRef) -> LockFile:
        """Re-resolve ignoring the existing lock and overwrite it.

        Args:
            ref: Path flake reference.

        Returns:
            Newly written lock file.

        Raises:
            NotUpdatableError: If ``ref`` is not a path reference; nothing is written.
        """
        path = self.lock_path(ref)
        resolved = self._resolver.resolve(ref, LockMode.FORCE_UPDATE)
        lock = LockFile.from_resolved(resolved)
        with exclusive_file_lock(path):
            write_lock_file(lock, path)
        return lock

    def resolve(
        self,
        ref: FlakeRef,
        lock_mode: LockMode = LockMode.READ_ONLY,
    ) -> ResolvedFlake:
        """Resolve a flake and keep its lock in step according to ``lock_mode``.

        ``use_existing_lock`` writes the lock back when the resolved direct
        inputs differ from the recorded ones. ``read_only`` never writes.
        ``force_update`` on a path flake behaves like ``update``. The decision is
        made on the root after alias substitution, so an alias naming a path
        flake keeps that flake's lock in step.

        Args:
            ref: Flake reference.
            lock_mode: Lock participation mode.

        Returns:
            Resolved dependency tree.
        """
        root = self._resolver.resolve_alias(ref)
        resolved = self._resolver.resolve(root, lock_mode)
        if lock_mode == LockMode.READ_ONLY or not isinstance(root, PathRef):
            return resolved
        path = self.lock_path(root)
        lock = LockFile.from_resolved(resolved)
        with exclusive_file_lock(path):
            existing = read_lock_file(path)
            if existing.locked_refs() != lock.locked_refs():
                write_lock_file(lock, path)
            else:
                _LOGGER.debug("Lock file %s is up to date", path)
        return resolved


def _require_path(ref: FlakeRef) -> PathRef:
    """Reject lock operations on non-path flakes."""
    if not isinstance(ref, PathRef):
        raise NotUpdatableError(
            f"Cannot update lock file of flake '{ref}': only path flakes have locks.",
            data={"reference": ref.to_string()},
        )
    return ref
