"""Unit tests for flake graph resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from flakegraph.errors import (
    AliasNotFoundError,
    CyclicAliasError,
    CyclicFlakeError,
    EvaluationError,
    FetchError,
    FlakeErrorCode,
    RegistryDisabledError,
)
from flakegraph.reference import FlakeRef, IndirectRef, PathRef
from flakegraph.resolver import LockMode
from tests.unit.helpers import (
    REV_B,
    FakeFetcher,
    FakeParser,
    github,
    make_chain,
    make_resolver,
    metadata,
    path_ref,
    pinned,
)


class _RecordingLockReader:
    """Lock reader fake returning fixed entries and recording calls."""

    def __init__(self, entries: dict[str, FlakeRef]) -> None:
        self.entries = entries
        self.calls: list[PathRef] = []

    def __call__(self, ref: PathRef) -> dict[str, FlakeRef]:
        self.calls.append(ref)
        return dict(self.entries)


@pytest.mark.unit
def test_resolve_alias_re_enters_full_chain_each_step() -> None:
    """Each substitution step should consult flag > user > global again."""
    # Arrange - user maps a -> b; b is overridden in the flag tier
    chain = make_chain(
        flag={"b": github("flag", "b")},
        user={"a": IndirectRef(alias="b")},
        global_={"b": github("global", "b")},
    )
    resolver = make_resolver(FakeFetcher(), FakeParser(), chain=chain)

    # Act - resolve first alias
    result = resolver.resolve_alias(IndirectRef(alias="a"))

    # Assert - flag override of the second hop wins
    assert result == github("flag", "b")


@pytest.mark.unit
def test_resolve_alias_detects_cycle() -> None:
    """Aliases mapping to each other should raise CyclicAliasError."""
    chain = make_chain(
        user={"a": IndirectRef(alias="b"), "b": IndirectRef(alias="a")},
    )
    resolver = make_resolver(FakeFetcher(), FakeParser(), chain=chain)

    with pytest.raises(CyclicAliasError) as exc_info:
        resolver.resolve_alias(IndirectRef(alias="a"))

    assert exc_info.value.code == FlakeErrorCode.ALIAS_CYCLE
    assert exc_info.value.data["aliases"] == ["a", "b", "a"]


@pytest.mark.unit
def test_resolve_alias_reports_missing_alias() -> None:
    """Unknown aliases should raise AliasNotFoundError naming the alias."""
    resolver = make_resolver(FakeFetcher(), FakeParser())

    with pytest.raises(AliasNotFoundError) as exc_info:
        resolver.resolve_alias(IndirectRef(alias="nixpkgs"))

    assert exc_info.value.data == {"alias": "nixpkgs"}


@pytest.mark.unit
def test_indirect_reference_rejected_when_registries_disabled() -> None:
    """With registries disabled an alias should fail before any lookup."""
    chain = make_chain(global_={"nixpkgs": github("NixOS", "nixpkgs")})
    resolver = make_resolver(
        FakeFetcher(), FakeParser(), chain=chain, use_registries=False
    )

    with pytest.raises(RegistryDisabledError):
        resolver.resolve_alias(IndirectRef(alias="nixpkgs"))
    assert resolver.resolve_alias(github("o", "r")) == github("o", "r")


@pytest.mark.unit
def test_get_flake_resolves_alias_and_parses_once() -> None:
    """get_flake should fetch the alias target and parse it without inputs."""
    # Arrange - alias to a github flake with an unresolved input
    target = github("NixOS", "nixpkgs")
    parser = FakeParser(
        {pinned(target): metadata("nixpkgs", inputs={"x": github("o", "x")})}
    )
    fetcher = FakeFetcher()
    chain = make_chain(global_={"nixpkgs": target})
    resolver = make_resolver(fetcher, parser, chain=chain)

    # Act - fetch flake
    flake = resolver.get_flake(IndirectRef(alias="nixpkgs"))

    # Assert - only the flake itself was fetched
    assert flake.id == "nixpkgs"
    assert flake.source_info.resolved_ref == pinned(target)
    assert list(fetcher.calls) == [target]


@pytest.mark.unit
@pytest.mark.parametrize("max_workers", [1, 4])
def test_diamond_dependency_fetched_and_parsed_once(
    flake_dir: Path, max_workers: int
) -> None:
    """A shared dependency should be fetched and parsed exactly once."""
    # Arrange - root -> left, right; both -> shared
    root = path_ref(flake_dir)
    left = github("o", "left")
    right = github("o", "right")
    shared = github("o", "shared")
    parser = FakeParser(
        {
            root: metadata("root", inputs={"left": left, "right": right}),
            pinned(left): metadata("left", inputs={"shared": shared}),
            pinned(right): metadata("right", inputs={"shared": shared}),
            pinned(shared): metadata("shared"),
        }
    )
    fetcher = FakeFetcher()
    resolver = make_resolver(fetcher, parser, max_workers=max_workers)

    # Act - resolve whole graph
    resolved = resolver.resolve(root)

    # Assert - single fetch/parse; same node reused
    assert fetcher.calls[shared] == 1
    assert parser.calls[pinned(shared)] == 1
    assert list(resolved.flake_deps) == ["left", "right"]
    left_shared = resolved.flake_deps["left"].flake_deps["shared"]
    right_shared = resolved.flake_deps["right"].flake_deps["shared"]
    assert left_shared is right_shared
    assert left_shared.identity == pinned(shared)


@pytest.mark.unit
def test_refs_with_same_identity_parse_once(flake_dir: Path) -> None:
    """Different refs fetching to one identity should share a single parse."""
    root = path_ref(flake_dir)
    floating = github("o", "lib")
    exact = pinned(floating)
    parser = FakeParser(
        {
            root: metadata("root", inputs={"a": floating, "b": exact}),
            exact: metadata("lib"),
        }
    )
    fetcher = FakeFetcher()
    resolver = make_resolver(fetcher, parser)

    resolved = resolver.resolve(root)

    assert fetcher.calls[floating] == 1
    assert fetcher.calls[exact] == 1
    assert parser.calls[exact] == 1
    assert resolved.flake_deps["a"] is resolved.flake_deps["b"]


@pytest.mark.unit
def test_concrete_dependency_cycle_raises(flake_dir: Path) -> None:
    """Flakes depending on each other should raise CyclicFlakeError."""
    # Arrange - root -> b -> c -> b
    root = path_ref(flake_dir)
    b, c = github("o", "b"), github("o", "c")
    parser = FakeParser(
        {
            root: metadata("root", inputs={"b": b}),
            pinned(b): metadata("b", inputs={"c": c}),
            pinned(c): metadata("c", inputs={"b": b}),
        }
    )
    resolver = make_resolver(FakeFetcher(), parser)

    # Act / Assert - cycle reported with its members
    with pytest.raises(CyclicFlakeError) as exc_info:
        resolver.resolve(root)

    assert exc_info.value.code == FlakeErrorCode.FLAKE_CYCLE
    assert exc_info.value.data["cycle"] == [
        pinned(b).to_string(),
        pinned(c).to_string(),
        pinned(b).to_string(),
    ]


@pytest.mark.unit
def test_dependency_back_to_root_is_cycle(flake_dir: Path) -> None:
    """An input pointing back at the root flake should be rejected."""
    root = path_ref(flake_dir)
    b = github("o", "b")
    parser = FakeParser(
        {
            root: metadata("root", inputs={"b": b}),
            pinned(b): metadata("b", inputs={"root": root}),
        }
    )
    resolver = make_resolver(FakeFetcher(), parser)

    with pytest.raises(CyclicFlakeError):
        resolver.resolve(root)


@pytest.mark.unit
def test_non_flake_inputs_are_fetched_not_parsed(flake_dir: Path) -> None:
    """Non-flake inputs should become leaves carrying their source info."""
    root = path_ref(flake_dir)
    data = github("o", "data")
    parser = FakeParser({root: metadata("root", non_flake={"data": data})})
    fetcher = FakeFetcher()
    resolver = make_resolver(fetcher, parser)

    resolved = resolver.resolve(root)

    assert resolved.flake_deps == {}
    assert len(resolved.non_flake_deps) == 1
    leaf = resolved.non_flake_deps[0]
    assert leaf.alias == "data"
    assert leaf.source_info.resolved_ref == pinned(data)
    assert parser.calls[pinned(data)] == 0


@pytest.mark.unit
def test_locked_entries_replace_root_inputs_only(flake_dir: Path) -> None:
    """Lock entries should freeze the root's direct inputs, not nested ones."""
    # Arrange - root -> dep (locked to REV_B); dep -> dep-named nested input
    root = path_ref(flake_dir)
    dep = github("o", "dep")
    locked_dep = github("o", "dep", rev=REV_B)
    nested = github("o", "nested")
    parser = FakeParser(
        {
            root: metadata("root", inputs={"dep": dep}),
            locked_dep: metadata("dep", inputs={"dep": nested}),
            pinned(nested): metadata("nested"),
        }
    )
    fetcher = FakeFetcher()
    reader = _RecordingLockReader({"dep": locked_dep})
    resolver = make_resolver(fetcher, parser, lock_reader=reader)

    # Act - resolve using lock
    resolved = resolver.resolve(root, LockMode.USE_EXISTING_LOCK)

    # Assert - locked ref fetched instead of floating one
    assert reader.calls == [root]
    assert fetcher.calls[dep] == 0
    assert resolved.flake_deps["dep"].identity == locked_dep
    assert resolved.flake_deps["dep"].flake_deps["dep"].identity == pinned(nested)


@pytest.mark.unit
def test_force_update_ignores_lock(flake_dir: Path) -> None:
    """force_update should not consult the lock reader."""
    root = path_ref(flake_dir)
    dep = github("o", "dep")
    parser = FakeParser(
        {root: metadata("root", inputs={"dep": dep}), pinned(dep): metadata("dep")}
    )
    reader = _RecordingLockReader({"dep": github("o", "dep", rev=REV_B)})
    resolver = make_resolver(FakeFetcher(), parser, lock_reader=reader)

    resolved = resolver.resolve(root, LockMode.FORCE_UPDATE)

    assert reader.calls == []
    assert resolved.flake_deps["dep"].identity == pinned(dep)


@pytest.mark.unit
def test_fetch_failure_propagates(flake_dir: Path) -> None:
    """Fetch errors from a dependency should surface unchanged."""
    root = path_ref(flake_dir)
    bad = github("o", "bad")
    parser = FakeParser({root: metadata("root", inputs={"bad": bad})})
    fetcher = FakeFetcher()
    fetcher.failing.add(bad)
    resolver = make_resolver(fetcher, parser)

    with pytest.raises(FetchError) as exc_info:
        resolver.resolve(root)

    assert exc_info.value.code == FlakeErrorCode.FETCH_FAILED


@pytest.mark.unit
def test_evaluation_failure_propagates(flake_dir: Path) -> None:
    """Parse errors should surface unchanged."""
    resolver = make_resolver(FakeFetcher(), FakeParser())

    with pytest.raises(EvaluationError):
        resolver.resolve(path_ref(flake_dir))


@pytest.mark.unit
def test_resolver_rejects_zero_workers() -> None:
    """max_workers below one should be rejected."""
    with pytest.raises(ValueError, match="max_workers"):
        make_resolver(FakeFetcher(), FakeParser(), max_workers=0)


@pytest.mark.unit
def test_alias_cycle_in_dependency_input_aborts_resolution(flake_dir: Path) -> None:
    """A cyclic alias declared as an input should abort the whole resolve."""
    # Arrange - root declares input through a cyclic alias pair
    root = path_ref(flake_dir)
    chain = make_chain(
        user={"a": IndirectRef(alias="b"), "b": IndirectRef(alias="a")},
    )
    parser = FakeParser(
        {root: metadata("root", inputs={"dep": IndirectRef(alias="a")})}
    )
    fetcher = FakeFetcher()
    resolver = make_resolver(fetcher, parser, chain=chain)

    # Act / Assert - cycle surfaces from resolve, nothing beyond root fetched
    with pytest.raises(CyclicAliasError) as exc_info:
        resolver.resolve(root)

    assert exc_info.value.data["aliases"] == ["a", "b", "a"]
    assert list(fetcher.calls) == [root]


@pytest.mark.unit
def test_metadata_splits_inputs_in_declaration_order() -> None:
    """Flake and non-flake inputs should each keep declaration order."""
    declared = metadata(
        "root",
        inputs={"z": github("o", "z"), "a": github("o", "a")},
        non_flake={"src": github("o", "src")},
    )

    assert [name for name, _ in declared.flake_inputs()] == ["z", "a"]
    assert [name for name, _ in declared.non_flake_inputs()] == ["src"]
