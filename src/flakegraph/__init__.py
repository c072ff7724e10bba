"""Flake reference registries, dependency graph resolution, and lock files."""

from flakegraph.bootstrap import build_flake_commands, configure_logging
from flakegraph.commands import CommandResult, CommandStatus, FlakeCommands
from flakegraph.errors import (
    AliasNotFoundError,
    CyclicAliasError,
    CyclicFlakeError,
    EvaluationError,
    FetchError,
    FlakeError,
    FlakeErrorCode,
    LockFileDecodeError,
    NotUpdatableError,
    ReferenceParseError,
    RegistryDecodeError,
    RegistryDisabledError,
)
from flakegraph.lockfile import LockFile, LockStore
from flakegraph.pinning import Pinner
from flakegraph.reference import (
    ConcreteRef,
    ConcreteScheme,
    FlakeRef,
    IndirectRef,
    PathRef,
    classify,
)
from flakegraph.registry import Registry, RegistryChain, RegistryTier
from flakegraph.resolver import (
    FlakeInput,
    FlakeMetadata,
    GraphResolver,
    LockMode,
    ResolvedFlake,
    SourceInfo,
)

__all__ = [
    "AliasNotFoundError",
    "CommandResult",
    "CommandStatus",
    "ConcreteRef",
    "ConcreteScheme",
    "CyclicAliasError",
    "CyclicFlakeError",
    "EvaluationError",
    "FetchError",
    "FlakeCommands",
    "FlakeError",
    "FlakeErrorCode",
    "FlakeInput",
    "FlakeMetadata",
    "FlakeRef",
    "GraphResolver",
    "IndirectRef",
    "LockFile",
    "LockFileDecodeError",
    "LockMode",
    "LockStore",
    "NotUpdatableError",
    "PathRef",
    "Pinner",
    "ReferenceParseError",
    "Registry",
    "RegistryChain",
    "RegistryDecodeError",
    "RegistryDisabledError",
    "RegistryTier",
    "ResolvedFlake",
    "SourceInfo",
    "build_flake_commands",
    "classify",
    "configure_logging",
]
