"""Atomic JSON persistence and exclusive file locks for registry/lock files."""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from filelock import FileLock

LOCK_SUFFIX = ".lock"


def atomic_write_json(final_path: Path, data: dict[str, Any]) -> None:
    """Write JSON to final_path atomically: temp -> fsync -> rename -> fsync dir.

    Temp file is created beside the target so rename is atomic. On failure,
    temp is removed. Caller must hold ``exclusive_file_lock`` for
    read-modify-write sequences.

    Args:
        final_path: Destination path for the JSON file.
        data: JSON-serializable dict.
    """
    directory = final_path.parent
    directory.mkdir(parents=True, exist_ok=True)
    temp_path = (
        directory / f".{final_path.name}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp"
    )
    content_bytes = (json.dumps(data, indent=2) + "\n").encode("utf-8")
    try:
        fd = os.open(
            str(temp_path),
            os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
            0o644,
        )
        try:
            os.write(fd, content_bytes)
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(temp_path, final_path)
        try:
            dir_fd = os.open(str(directory), os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError:
            pass  # e.g. Windows: directory fsync best-effort
    finally:
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)


def lock_path_for(target: Path) -> Path:
    """Return sidecar lock path for one persisted file: ``<target>.lock``."""
    return target.with_name(target.name + LOCK_SUFFIX)


@contextmanager
def exclusive_file_lock(target: Path) -> Generator[None]:
    """Hold an exclusive lock spanning read, mutate, and persist of ``target``.

    Never acquire another file lock while holding this one.

    Args:
        target: Persisted file guarded by the lock.

    Yields:
        None; lock is held for the context body.
    """
    lock_path = lock_path_for(target)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    flock = FileLock(str(lock_path))
    flock.acquire()
    try:
        yield
    finally:
        flock.release()
