"""Test-only fetch/parse fakes and reference builders."""

from __future__ import annotations

import threading
from collections import Counter
from pathlib import Path

from flakegraph.errors import EvaluationError, FetchError
from flakegraph.reference import (
    ConcreteRef,
    ConcreteScheme,
    FlakeRef,
    IndirectRef,
    PathRef,
)
from flakegraph.registry import Registry, RegistryChain, RegistryTier
from flakegraph.resolver import (
    FlakeInput,
    FlakeMetadata,
    GraphResolver,
    LockReader,
    SourceInfo,
)

REV_A = "a" * 40
REV_B = "b" * 40


def github(owner: str, repo: str, *, rev: str | None = None) -> ConcreteRef:
    """Build a github reference."""
    return ConcreteRef(scheme=ConcreteScheme.GITHUB, owner=owner, repo=repo, rev=rev)


def pinned(ref: ConcreteRef, rev: str = REV_A) -> ConcreteRef:
    """Return ``ref`` pinned to ``rev``."""
    return ref.model_copy(update={"rev": rev})


class FakeFetcher:
    """Fetcher fake: maps requested refs to canned sources and counts calls.

    Refs not registered explicitly fetch to themselves pinned at ``REV_A``
    (path refs resolve to themselves).
    """

    def __init__(self, sources: dict[FlakeRef, SourceInfo] | None = None) -> None:
        self.sources = dict(sources or {})
        self.failing: set[FlakeRef] = set()
        self.calls: Counter[FlakeRef] = Counter()
        self._lock = threading.Lock()

    def fetch(self, ref: FlakeRef) -> SourceInfo:
        with self._lock:
            self.calls[ref] += 1
        if ref in self.failing:
            raise FetchError(f"cannot fetch '{ref}'", data={"reference": str(ref)})
        if ref in self.sources:
            return self.sources[ref]
        resolved = ref
        if isinstance(ref, ConcreteRef) and ref.scheme != ConcreteScheme.TARBALL:
            resolved = ref if ref.rev else pinned(ref)
        return SourceInfo(
            resolved_ref=resolved,
            rev_count=7,
            store_path=f"/store/{_store_name(resolved)}",
        )


class FakeParser:
    """Parser fake: maps canonical identities to declared metadata."""

    def __init__(self, flakes: dict[FlakeRef, FlakeMetadata] | None = None) -> None:
        self.flakes = dict(flakes or {})
        self.calls: Counter[FlakeRef] = Counter()
        self._lock = threading.Lock()

    def parse_flake(self, source_info: SourceInfo) -> FlakeMetadata:
        identity = source_info.resolved_ref
        with self._lock:
            self.calls[identity] += 1
        metadata = self.flakes.get(identity)
        if metadata is None:
            raise EvaluationError(
                f"no flake declaration at '{identity}'",
                data={"reference": str(identity)},
            )
        return metadata


def metadata(
    flake_id: str,
    *,
    inputs: dict[str, FlakeRef] | None = None,
    non_flake: dict[str, FlakeRef] | None = None,
    description: str = "",
) -> FlakeMetadata:
    """Build flake metadata with flake inputs first, then non-flake inputs."""
    declared = {name: FlakeInput(ref=ref) for name, ref in (inputs or {}).items()}
    declared.update(
        {
            name: FlakeInput(ref=ref, flake=False)
            for name, ref in (non_flake or {}).items()
        }
    )
    return FlakeMetadata(id=flake_id, description=description, inputs=declared)


def make_chain(
    *,
    flag: dict[str, FlakeRef] | None = None,
    user: dict[str, FlakeRef] | None = None,
    global_: dict[str, FlakeRef] | None = None,
) -> RegistryChain:
    """Build a registry chain from alias -> target dicts."""
    return RegistryChain(
        flag=_registry(RegistryTier.FLAG, flag),
        user=_registry(RegistryTier.USER, user),
        global_=_registry(RegistryTier.GLOBAL, global_),
    )


def make_resolver(
    fetcher: FakeFetcher,
    parser: FakeParser,
    *,
    chain: RegistryChain | None = None,
    lock_reader: LockReader | None = None,
    use_registries: bool = True,
    max_workers: int = 4,
) -> GraphResolver:
    """Build a resolver over fakes."""
    return GraphResolver(
        chain=chain or make_chain(),
        fetcher=fetcher,
        parser=parser,
        lock_reader=lock_reader,
        use_registries=use_registries,
        max_workers=max_workers,
    )


def path_ref(path: Path) -> PathRef:
    """Build a path reference for a directory."""
    return PathRef(path=str(path))


def _registry(tier: RegistryTier, mapping: dict[str, FlakeRef] | None) -> Registry:
    registry = Registry(tier)
    for alias, target in (mapping or {}).items():
        registry.upsert(IndirectRef(alias=alias), target)
    return registry


def _store_name(ref: FlakeRef) -> str:
    return ref.to_string().replace("/", "-").replace(":", "-").replace("?", "-")
