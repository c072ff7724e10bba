"""Flake dependency graph resolution.

Resolution runs in two passes. Discovery walks the graph with a bounded
worker pool: each concrete reference is fetched once and each canonical
identity is parsed once, with in-flight work recorded under a mutex before
it starts so a second worker waits instead of fetching again. Assembly then
builds the ``ResolvedFlake`` tree depth-first in declaration order, reusing
nodes by identity and failing on concrete dependency cycles.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TypeVar

from flakegraph.errors import (
    AliasNotFoundError,
    CyclicAliasError,
    CyclicFlakeError,
    RegistryDisabledError,
)
from flakegraph.reference import FlakeRef, IndirectRef, PathRef
from flakegraph.registry import RegistryChain
from flakegraph.resolver.capabilities import Fetcher, FlakeParser, LockReader
from flakegraph.resolver.types import (
    Flake,
    FlakeInput,
    FlakeMetadata,
    LockMode,
    NonFlake,
    ResolvedFlake,
    SourceInfo,
)

DEFAULT_MAX_WORKERS = 4

_LOGGER = logging.getLogger(__name__)

V = TypeVar("V")


class GraphResolver:
    """Resolve flake references into concrete dependency trees."""

    def __init__(
        self,
        *,
        chain: RegistryChain,
        fetcher: Fetcher,
        parser: FlakeParser,
        lock_reader: LockReader | None = None,
        use_registries: bool = True,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Create resolver bound to one registry chain snapshot.

        Args:
            chain: Registry chain used for alias substitution.
            fetcher: Fetch capability.
            parser: Flake declaration parse capability.
            lock_reader: Optional reader for path-flake lock entries.
            use_registries: Whether indirect references may be looked up.
            max_workers: Upper bound on concurrent fetch/parse workers.

        Raises:
            ValueError: If ``max_workers`` is below one.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self._chain = chain
        self._fetcher = fetcher
        self._parser = parser
        self._lock_reader = lock_reader
        self._use_registries = use_registries
        self._max_workers = max_workers

    @property
    def chain(self) -> RegistryChain:
        """Registry chain snapshot used for substitution."""
        return self._chain

    def resolve_alias(self, ref: FlakeRef) -> FlakeRef:
        """Substitute aliases until a path or concrete reference is reached.

        Every step re-enters the full flag > user > global chain.

        Args:
            ref: Reference to resolve.

        Returns:
            Path or concrete reference.

        Raises:
            RegistryDisabledError: If registries are disabled and ``ref`` is indirect.
            AliasNotFoundError: If an alias in the chain has no registry entry.
            CyclicAliasError: If an alias reappears in the substitution chain.
        """
        current = ref
        seen: list[str] = []
        while isinstance(current, IndirectRef):
            if not self._use_registries:
                raise RegistryDisabledError(
                    f"'{current}' is an indirect flake reference, "
                    "but registry lookups are not allowed.",
                    data={"reference": current.to_string()},
                )
            if current.alias in seen:
                chain_text = " -> ".join([*seen, current.alias])
                raise CyclicAliasError(
                    f"Alias cycle detected: {chain_text}",
                    data={"aliases": [*seen, current.alias]},
                )
            seen.append(current.alias)
            substituted = self._chain.substitute_once(current)
            # substitute_once hands back the same object when nothing matched.
            if substituted is current:
                raise AliasNotFoundError(
                    f"Cannot find flake alias '{current.alias}' "
                    "in the flake registries.",
                    data={"alias": current.alias},
                )
            current = substituted
        return current

    def resolve_source(self, ref: FlakeRef) -> SourceInfo:
        """Resolve aliases and fetch one reference without recursing.

        Args:
            ref: Reference to fetch.

        Returns:
            Fetched source info.
        """
        concrete = self.resolve_alias(ref)
        _LOGGER.debug("Fetching '%s'", concrete)
        return self._fetcher.fetch(concrete)

    def get_flake(self, ref: FlakeRef) -> Flake:
        """Fetch and evaluate one flake without resolving its inputs.

        Args:
            ref: Reference to fetch.

        Returns:
            Flake metadata with its source info.
        """
        source_info = self.resolve_source(ref)
        metadata = self._parser.parse_flake(source_info)
        return Flake(metadata=metadata, source_info=source_info)

    def resolve(
        self,
        root: FlakeRef,
        lock_mode: LockMode = LockMode.USE_EXISTING_LOCK,
    ) -> ResolvedFlake:
        """Resolve a flake and all transitive inputs.

        Args:
            root: Resolution target.
            lock_mode: Whether a path root's lock entries freeze its direct inputs.

        Returns:
            Resolved dependency tree rooted at ``root``.

        Raises:
            CyclicAliasError: On alias substitution loops.
            CyclicFlakeError: On concrete flake dependency loops.
            FetchError: Propagated from the fetch capability.
            EvaluationError: Propagated from the parse capability.
        """
        _LOGGER.debug("Resolving '%s' (%s)", root, lock_mode)
        root_ref = self.resolve_alias(root)
        locked = self._locked_inputs(root_ref, lock_mode)
        run = _ResolutionRun(
            resolve_alias=self.resolve_alias,
            fetch=self.resolve_source,
            parse=self._parser.parse_flake,
            max_workers=self._max_workers,
        )
        return run.run(root_ref, locked)

    def _locked_inputs(
        self, root: FlakeRef, lock_mode: LockMode
    ) -> Mapping[str, FlakeRef] | None:
        """Return lock entries that apply to ``root``'s direct inputs."""
        if lock_mode == LockMode.FORCE_UPDATE or self._lock_reader is None:
            return None
        if not isinstance(root, PathRef):
            return None
        return dict(self._lock_reader(root))


@dataclass(frozen=True)
class _NodeEdges:
    """Concrete inputs of one identity, in declaration order."""

    flake_inputs: tuple[tuple[str, FlakeRef], ...]
    non_flake_inputs: tuple[tuple[str, FlakeRef], ...]


class _ResolutionRun:
    """State for one ``GraphResolver.resolve`` call."""

    def __init__(
        self,
        *,
        resolve_alias: Callable[[FlakeRef], FlakeRef],
        fetch: Callable[[FlakeRef], SourceInfo],
        parse: Callable[[SourceInfo], FlakeMetadata],
        max_workers: int,
    ) -> None:
        self._resolve_alias = resolve_alias
        self._fetch = fetch
        self._parse = parse
        self._max_workers = max_workers
        # Guarded by _mutex; touched by pool workers.
        self._mutex = threading.Lock()
        self._sources: dict[FlakeRef, Future[SourceInfo]] = {}
        self._metadata: dict[FlakeRef, Future[FlakeMetadata]] = {}
        # Main thread only.
        self._identities: dict[FlakeRef, FlakeRef] = {}
        self._flakes: dict[FlakeRef, Flake] = {}
        self._edges: dict[FlakeRef, _NodeEdges] = {}
        self._built: dict[FlakeRef, ResolvedFlake] = {}
        self._path: list[FlakeRef] = []

    def run(
        self, root_ref: FlakeRef, locked: Mapping[str, FlakeRef] | None
    ) -> ResolvedFlake:
        pool = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="flakegraph-resolve",
        )
        try:
            self._discover(pool, root_ref, locked)
        finally:
            pool.shutdown(wait=True, cancel_futures=True)
        return self._assemble(self._identities[root_ref])

    def _discover(
        self,
        pool: ThreadPoolExecutor,
        root_ref: FlakeRef,
        locked: Mapping[str, FlakeRef] | None,
    ) -> None:
        """Fetch and parse every reachable identity exactly once."""
        pending: dict[Future[object], tuple[FlakeRef, bool]] = {}
        scheduled: set[tuple[FlakeRef, bool]] = set()

        def schedule(ref: FlakeRef, *, flake: bool) -> None:
            if (ref, flake) in scheduled:
                return
            scheduled.add((ref, flake))
            loader = self._load_flake if flake else self._load_source
            pending[pool.submit(loader, ref)] = (ref, flake)

        schedule(root_ref, flake=True)
        while pending:
            done, _ = wait(tuple(pending), return_when=FIRST_COMPLETED)
            for future in done:
                ref, flake = pending.pop(future)
                result = future.result()
                if not flake:
                    continue
                source_info, metadata = result
                identity = source_info.resolved_ref
                self._identities[ref] = identity
                if identity in self._edges:
                    continue
                self._flakes[identity] = Flake(
                    metadata=metadata, source_info=source_info
                )
                edges = self._expand(metadata, locked if ref == root_ref else None)
                self._edges[identity] = edges
                for _, dep_ref in edges.flake_inputs:
                    schedule(dep_ref, flake=True)
                for _, dep_ref in edges.non_flake_inputs:
                    schedule(dep_ref, flake=False)

    def _expand(
        self,
        metadata: FlakeMetadata,
        locked: Mapping[str, FlakeRef] | None,
    ) -> _NodeEdges:
        """Resolve declared inputs to concrete references."""
        return _NodeEdges(
            flake_inputs=tuple(
                (name, self._concrete_input(name, item, locked))
                for name, item in metadata.flake_inputs()
            ),
            non_flake_inputs=tuple(
                (name, self._concrete_input(name, item, locked))
                for name, item in metadata.non_flake_inputs()
            ),
        )

    def _concrete_input(
        self,
        name: str,
        item: FlakeInput,
        locked: Mapping[str, FlakeRef] | None,
    ) -> FlakeRef:
        """Apply a lock entry, if any, then resolve aliases."""
        ref = item.ref
        if locked is not None and name in locked:
            ref = locked[name]
            _LOGGER.debug("Using locked '%s' for input '%s'", ref, name)
        return self._resolve_alias(ref)

    def _load_source(self, ref: FlakeRef) -> SourceInfo:
        """Fetch one concrete reference at most once per run."""
        return self._memoized(self._sources, ref, lambda: self._fetch(ref))

    def _load_flake(self, ref: FlakeRef) -> tuple[SourceInfo, FlakeMetadata]:
        """Fetch then parse one flake, parsing once per canonical identity."""
        source_info = self._load_source(ref)
        metadata = self._memoized(
            self._metadata,
            source_info.resolved_ref,
            lambda: self._parse(source_info),
        )
        return source_info, metadata

    def _memoized(
        self,
        table: dict[FlakeRef, Future[V]],
        key: FlakeRef,
        compute: Callable[[], V],
    ) -> V:
        """Compute once per key; concurrent callers wait on the first one.

        The in-flight marker is stored before the mutex is released.
        """
        with self._mutex:
            future = table.get(key)
            owner = future is None
            if future is None:
                future = Future()
                table[key] = future
        if not owner:
            _LOGGER.debug("Reusing in-flight work for '%s'", key)
            return future.result()
        try:
            value = compute()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        future.set_result(value)
        return value

    def _assemble(self, identity: FlakeRef) -> ResolvedFlake:
        """Build the tree for one identity, reusing nodes and rejecting cycles."""
        built = self._built.get(identity)
        if built is not None:
            return built
        if identity in self._path:
            cycle = [*self._path[self._path.index(identity) :], identity]
            raise CyclicFlakeError(
                "Flake dependency cycle detected: "
                + " -> ".join(str(ref) for ref in cycle),
                data={"cycle": [ref.to_string() for ref in cycle]},
            )
        self._path.append(identity)
        try:
            edges = self._edges[identity]
            flake_deps = {
                name: self._assemble(self._identities[dep_ref])
                for name, dep_ref in edges.flake_inputs
            }
            non_flake_deps = tuple(
                NonFlake(alias=name, source_info=self._sources[dep_ref].result())
                for name, dep_ref in edges.non_flake_inputs
            )
        finally:
            self._path.pop()
        node = ResolvedFlake(
            flake=self._flakes[identity],
            flake_deps=flake_deps,
            non_flake_deps=non_flake_deps,
        )
        self._built[identity] = node
        return node
