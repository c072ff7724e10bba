"""Lock file schema."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from flakegraph.errors import ReferenceParseError
from flakegraph.reference import FlakeRef, IndirectRef, classify
from flakegraph.resolver import ResolvedFlake

LOCK_SCHEMA_VERSION = 1
DEFAULT_LOCK_FILENAME = "flake.lock"


class LockFile(BaseModel):
    """Pinned direct inputs of one path flake, as textual concrete references."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: int = LOCK_SCHEMA_VERSION
    inputs: dict[str, str] = {}
    non_flake_inputs: dict[str, str] = {}

    @field_validator("inputs", "non_flake_inputs")
    @classmethod
    def _validate_concrete(cls, value: dict[str, str]) -> dict[str, str]:
        """Require every pinned reference to parse and be non-indirect.

        Args:
            value: Input-name -> textual reference mapping.

        Returns:
            Validated mapping.

        Raises:
            ValueError: If a reference is malformed or indirect.
        """
        for name, text in value.items():
            try:
                ref = classify(text)
            except ReferenceParseError as exc:
                raise ValueError(f"input '{name}': {exc}") from exc
            if isinstance(ref, IndirectRef):
                raise ValueError(f"input '{name}' is pinned to indirect '{text}'.")
        return value

    @classmethod
    def from_resolved(cls, resolved: ResolvedFlake) -> LockFile:
        """Build lock payload from a resolved root's direct inputs.

        Args:
            resolved: Resolved tree root.

        Returns:
            Lock file pinning each direct input to its canonical identity.
        """
        return cls(
            inputs={
                name: dep.identity.to_string()
                for name, dep in resolved.flake_deps.items()
            },
            non_flake_inputs={
                dep.alias: dep.source_info.resolved_ref.to_string()
                for dep in resolved.non_flake_deps
            },
        )

    def locked_refs(self) -> dict[str, FlakeRef]:
        """Return every pinned input as a parsed reference."""
        pinned = {**self.inputs, **self.non_flake_inputs}
        return {name: classify(text) for name, text in pinned.items()}
