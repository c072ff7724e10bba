"""Resolution domain types."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from flakegraph.reference import FlakeRef


class LockMode(StrEnum):
    """How a path flake's lock file participates in resolution."""

    USE_EXISTING_LOCK = "use_existing_lock"
    FORCE_UPDATE = "force_update"
    READ_ONLY = "read_only"


class SourceInfo(BaseModel):
    """Fetched source: concrete identity plus content-addressed storage path."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    resolved_ref: FlakeRef
    rev_count: int | None = Field(default=None, ge=0)
    store_path: str = Field(min_length=1)


class FlakeInput(BaseModel):
    """One declared dependency of a flake."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ref: FlakeRef
    flake: bool = True


class FlakeMetadata(BaseModel):
    """Evaluated flake declaration: identity, description, epoch, inputs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    description: str = ""
    epoch: int = 0
    inputs: dict[str, FlakeInput] = {}

    def flake_inputs(self) -> tuple[tuple[str, FlakeInput], ...]:
        """Return flake inputs in declaration order."""
        return tuple((name, item) for name, item in self.inputs.items() if item.flake)

    def non_flake_inputs(self) -> tuple[tuple[str, FlakeInput], ...]:
        """Return non-flake inputs in declaration order."""
        return tuple(
            (name, item) for name, item in self.inputs.items() if not item.flake
        )


class Flake(BaseModel):
    """Fetched and evaluated flake, without its dependencies."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    metadata: FlakeMetadata
    source_info: SourceInfo

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def description(self) -> str:
        return self.metadata.description

    @property
    def epoch(self) -> int:
        return self.metadata.epoch


class NonFlake(BaseModel):
    """Fetched non-flake input leaf."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    alias: str
    source_info: SourceInfo


class ResolvedFlake(BaseModel):
    """Resolved dependency tree node.

    ``flake_deps`` keeps input declaration order. Nodes sharing a canonical
    identity are built once and reused in every position.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    flake: Flake
    flake_deps: dict[str, ResolvedFlake] = {}
    non_flake_deps: tuple[NonFlake, ...] = ()

    @property
    def identity(self) -> FlakeRef:
        """Canonical identity: the fetched, fully resolved reference."""
        return self.flake.source_info.resolved_ref
