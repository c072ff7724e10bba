"""Structured payloads for flake/source-info command results."""

from __future__ import annotations

from typing import Any

from flakegraph.resolver import DependencyEntry, Flake, NonFlake, SourceInfo


def source_info_payload(source_info: SourceInfo) -> dict[str, Any]:
    """Describe fetched source: uri, branch, revision, revCount, path.

    Optional keys are omitted when the source does not carry them.
    """
    resolved = source_info.resolved_ref
    payload: dict[str, Any] = {"uri": resolved.to_string()}
    ref = getattr(resolved, "ref", None)
    rev = getattr(resolved, "rev", None)
    if ref is not None:
        payload["branch"] = ref
    if rev is not None:
        payload["revision"] = rev
    if source_info.rev_count is not None:
        payload["revCount"] = source_info.rev_count
    payload["path"] = source_info.store_path
    return payload


def flake_payload(flake: Flake) -> dict[str, Any]:
    """Describe one flake: id, description, epoch, then source info."""
    return {
        "id": flake.id,
        "description": flake.description,
        "epoch": flake.epoch,
        **source_info_payload(flake.source_info),
    }


def non_flake_payload(non_flake: NonFlake) -> dict[str, Any]:
    """Describe one non-flake input: alias as id, then source info."""
    return {"id": non_flake.alias, **source_info_payload(non_flake.source_info)}


def dependency_payload(entry: DependencyEntry) -> dict[str, Any]:
    """Describe one listed dependency with its kind and input name."""
    if entry.flake is not None:
        body = flake_payload(entry.flake)
    elif entry.non_flake is not None:
        body = non_flake_payload(entry.non_flake)
    else:
        body = {}
    return {"kind": entry.kind.value, "input": entry.name, **body}
