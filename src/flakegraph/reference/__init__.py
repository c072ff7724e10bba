"""Flake reference types and textual grammar."""

from flakegraph.reference.models import (
    ConcreteRef,
    ConcreteScheme,
    FlakeRef,
    IndirectRef,
    PathRef,
    ReferenceKind,
)
from flakegraph.reference.parser import CURRENT_DIRECTORY, classify, is_alias_token

__all__ = [
    "CURRENT_DIRECTORY",
    "ConcreteRef",
    "ConcreteScheme",
    "FlakeRef",
    "IndirectRef",
    "PathRef",
    "ReferenceKind",
    "classify",
    "is_alias_token",
]
