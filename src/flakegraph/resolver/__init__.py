"""Flake graph resolution."""

from flakegraph.resolver.capabilities import Fetcher, FlakeParser, LockReader
from flakegraph.resolver.graph import DEFAULT_MAX_WORKERS, GraphResolver
from flakegraph.resolver.listing import (
    DependencyEntry,
    DependencyKind,
    iter_dependencies,
)
from flakegraph.resolver.types import (
    Flake,
    FlakeInput,
    FlakeMetadata,
    LockMode,
    NonFlake,
    ResolvedFlake,
    SourceInfo,
)

__all__ = [
    "DEFAULT_MAX_WORKERS",
    "DependencyEntry",
    "DependencyKind",
    "Fetcher",
    "Flake",
    "FlakeInput",
    "FlakeMetadata",
    "FlakeParser",
    "GraphResolver",
    "LockMode",
    "LockReader",
    "NonFlake",
    "ResolvedFlake",
    "SourceInfo",
    "iter_dependencies",
]
