"""External collaborator contracts consumed by resolution."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from flakegraph.reference import FlakeRef, PathRef
from flakegraph.resolver.types import FlakeMetadata, SourceInfo


class Fetcher(Protocol):
    """Fetch capability: concrete reference -> stored source."""

    def fetch(self, ref: FlakeRef) -> SourceInfo:
        """Fetch one concrete reference.

        Must be idempotent and safe to call once per distinct identity.

        Args:
            ref: Path or concrete reference.

        Raises:
            FetchError: On network/VCS/filesystem failure.
        """


class FlakeParser(Protocol):
    """Parse capability: stored source -> evaluated flake declaration."""

    def parse_flake(self, source_info: SourceInfo) -> FlakeMetadata:
        """Evaluate the flake declaration stored at one source.

        Args:
            source_info: Fetched source.

        Raises:
            EvaluationError: On malformed or missing flake declaration.
        """


class LockReader(Protocol):
    """Read pinned direct inputs recorded for one path flake."""

    def __call__(self, ref: PathRef) -> Mapping[str, FlakeRef]:
        """Return locked input-name -> concrete reference mapping.

        Args:
            ref: Path flake whose lock should be read.
        """
