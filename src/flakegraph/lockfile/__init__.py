"""Path-flake lock files."""

from flakegraph.lockfile.io import (
    LockFileReader,
    lock_file_path,
    read_lock_file,
    write_lock_file,
)
from flakegraph.lockfile.models import (
    DEFAULT_LOCK_FILENAME,
    LOCK_SCHEMA_VERSION,
    LockFile,
)
from flakegraph.lockfile.store import LockStore

__all__ = [
    "DEFAULT_LOCK_FILENAME",
    "LOCK_SCHEMA_VERSION",
    "LockFile",
    "LockFileReader",
    "LockStore",
    "lock_file_path",
    "read_lock_file",
    "write_lock_file",
]
