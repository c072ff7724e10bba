"""Lock file read/write helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from flakegraph.errors import LockFileDecodeError
from flakegraph.lockfile.models import (
    DEFAULT_LOCK_FILENAME,
    LOCK_SCHEMA_VERSION,
    LockFile,
)
from flakegraph.persistence import atomic_write_json
from flakegraph.reference import FlakeRef, PathRef

_LOGGER = logging.getLogger(__name__)


def lock_file_path(ref: PathRef, filename: str = DEFAULT_LOCK_FILENAME) -> Path:
    """Return lock file location for one path flake."""
    return Path(ref.path) / filename


def read_lock_file(path: Path) -> LockFile:
    """Load lock file, returning an empty lock when the file is missing.

    Args:
        path: Lock file path.

    Returns:
        Parsed lock file.

    Raises:
        LockFileDecodeError: If JSON, version, or payload validation fails.
    """
    if not path.exists():
        return LockFile()
    raw = path.read_text(encoding="utf-8")
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LockFileDecodeError(
            f"Invalid lock file JSON in '{path}': {exc}", data={"path": str(path)}
        ) from exc
    if not isinstance(decoded, dict):
        raise LockFileDecodeError(
            f"Invalid lock file payload in '{path}': expected JSON object.",
            data={"path": str(path)},
        )
    version = decoded.get("version")
    if version != LOCK_SCHEMA_VERSION:
        raise LockFileDecodeError(
            f"Unsupported lock file version {version!r} in '{path}'. "
            f"Expected {LOCK_SCHEMA_VERSION}.",
            data={"path": str(path), "version": version},
        )
    try:
        return LockFile.model_validate(decoded)
    except ValidationError as exc:
        raise LockFileDecodeError(
            f"Invalid lock file payload in '{path}': {exc}", data={"path": str(path)}
        ) from exc


def write_lock_file(lock: LockFile, path: Path) -> None:
    """Persist lock file atomically, overwriting any prior lock.

    Args:
        lock: Lock payload.
        path: Target path.
    """
    atomic_write_json(path, lock.model_dump(mode="json"))
    _LOGGER.info(
        "Wrote lock file %s (%d inputs)",
        path,
        len(lock.inputs) + len(lock.non_flake_inputs),
    )


class LockFileReader:
    """Lock reader handed to the resolver for path-flake roots."""

    def __init__(self, filename: str = DEFAULT_LOCK_FILENAME) -> None:
        self._filename = filename

    def __call__(self, ref: PathRef) -> dict[str, FlakeRef]:
        return read_lock_file(lock_file_path(ref, self._filename)).locked_refs()
