"""Breadth-first dependency listing over a resolved tree."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from flakegraph.resolver.types import Flake, NonFlake, ResolvedFlake


class DependencyKind(StrEnum):
    """Listed dependency kind."""

    FLAKE = "flake"
    NON_FLAKE = "non_flake"


class DependencyEntry(BaseModel):
    """One listed transitive dependency."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: DependencyKind
    name: str
    flake: Flake | None = None
    non_flake: NonFlake | None = None


def iter_dependencies(root: ResolvedFlake) -> Iterator[DependencyEntry]:
    """Yield transitive dependencies in work-queue order.

    For each dequeued node its non-flake inputs are yielded first, then each
    flake input, which is also enqueued. Shared nodes are listed once per
    position they occupy.

    Args:
        root: Resolved tree root.

    Yields:
        Dependency entries in queue order.
    """
    todo: deque[ResolvedFlake] = deque([root])
    while todo:
        node = todo.popleft()
        for non_flake in node.non_flake_deps:
            yield DependencyEntry(
                kind=DependencyKind.NON_FLAKE,
                name=non_flake.alias,
                non_flake=non_flake,
            )
        for name, dep in node.flake_deps.items():
            yield DependencyEntry(kind=DependencyKind.FLAKE, name=name, flake=dep.flake)
            todo.append(dep)
