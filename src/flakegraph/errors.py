"""Deterministic flake resolution error contracts."""

from __future__ import annotations

from enum import StrEnum


class FlakeErrorCode(StrEnum):
    """Stable flake reference/registry/resolution error codes."""

    REFERENCE_INVALID = "reference_invalid"
    ALIAS_NOT_FOUND = "alias_not_found"
    ALIAS_CYCLE = "alias_cycle"
    FLAKE_CYCLE = "flake_cycle"
    NOT_UPDATABLE = "lock_not_updatable"
    REGISTRY_INVALID = "registry_invalid"
    REGISTRY_DISABLED = "registry_disabled"
    LOCK_INVALID = "lock_invalid"
    FETCH_FAILED = "fetch_failed"
    EVALUATION_FAILED = "evaluation_failed"


class FlakeError(RuntimeError):
    """Flake failure with stable deterministic code."""

    code: FlakeErrorCode = FlakeErrorCode.REFERENCE_INVALID

    def __init__(
        self,
        message: str,
        *,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create flake failure.

        Args:
            message: Human-readable error message.
            data: Optional structured payload for diagnostics.
        """
        super().__init__(message)
        self.data = data or {}


class ReferenceParseError(FlakeError):
    """Raised when a textual flake reference is malformed."""

    code = FlakeErrorCode.REFERENCE_INVALID


class AliasNotFoundError(FlakeError):
    """Raised when an alias is absent from every consulted registry."""

    code = FlakeErrorCode.ALIAS_NOT_FOUND


class CyclicAliasError(FlakeError):
    """Raised when registry substitution revisits an alias."""

    code = FlakeErrorCode.ALIAS_CYCLE


class CyclicFlakeError(FlakeError):
    """Raised when concrete flakes depend on each other in a loop."""

    code = FlakeErrorCode.FLAKE_CYCLE


class NotUpdatableError(FlakeError):
    """Raised when a lock operation targets a non-path flake."""

    code = FlakeErrorCode.NOT_UPDATABLE


class RegistryDecodeError(FlakeError):
    """Raised when a persisted registry cannot be decoded/validated."""

    code = FlakeErrorCode.REGISTRY_INVALID


class RegistryDisabledError(FlakeError):
    """Raised when an indirect reference is used with registries disabled."""

    code = FlakeErrorCode.REGISTRY_DISABLED


class LockFileDecodeError(FlakeError):
    """Raised when a persisted lock file cannot be decoded/validated."""

    code = FlakeErrorCode.LOCK_INVALID


class FetchError(FlakeError):
    """Raised by fetch collaborators on network/VCS/filesystem failure."""

    code = FlakeErrorCode.FETCH_FAILED


class EvaluationError(FlakeError):
    """Raised by flake parsers on malformed or missing flake declarations."""

    code = FlakeErrorCode.EVALUATION_FAILED
