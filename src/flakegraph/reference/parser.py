"""Textual flake reference grammar.

A bare single-segment token is an alias. Anything containing a path
separator, the literal ``.``, or a recognized location scheme is a location.
Scheme forms may carry ``?ref=...&rev=...`` and a ``#ref`` fragment.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl

from pydantic import ValidationError

from flakegraph.errors import ReferenceParseError
from flakegraph.reference.models import (
    ConcreteRef,
    ConcreteScheme,
    FlakeRef,
    IndirectRef,
    PathRef,
)

CURRENT_DIRECTORY = "."

_ALIAS_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]*$")
_REV_RE = re.compile(r"^[0-9a-f]{40}$")
_URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_GIT_PREFIXES = ("git://", "git+http://", "git+https://", "git+ssh://", "git+file://")
_TARBALL_PREFIXES = ("http://", "https://")
_DECORATION_KEYS = frozenset({"ref", "rev"})


def classify(text: str) -> FlakeRef:
    """Classify textual flake identifier into a reference variant.

    Args:
        text: Raw flake identifier.

    Returns:
        Path, concrete, or indirect reference.

    Raises:
        ReferenceParseError: If the text is malformed for its detected form.
    """
    if text == CURRENT_DIRECTORY:
        return PathRef(path=CURRENT_DIRECTORY)
    try:
        if text.startswith("flake:"):
            return _parse_indirect(text)
        if text.startswith("path:"):
            return _parse_path(text)
        if text.startswith("github:"):
            return _parse_github(text)
        if text.startswith(_GIT_PREFIXES):
            return _parse_git(text)
        if text.startswith(_TARBALL_PREFIXES):
            return _parse_tarball(text)
    except ValidationError as exc:
        raise ReferenceParseError(
            f"Invalid flake reference '{text}': {exc}",
            data={"reference": text},
        ) from exc
    if _URL_SCHEME_RE.match(text):
        raise _parse_error(text, "unsupported location scheme")
    if "/" in text:
        return PathRef(path=text)
    if is_alias_token(text):
        return IndirectRef(alias=text)
    raise _parse_error(text, "expected an alias, a path, or a supported URI")


def is_alias_token(text: str) -> bool:
    """Return whether text is a valid bare alias token."""
    return _ALIAS_RE.fullmatch(text) is not None


def _parse_error(text: str, reason: str) -> ReferenceParseError:
    """Build a parse error with consistent message/payload."""
    return ReferenceParseError(
        f"Invalid flake reference '{text}': {reason}.",
        data={"reference": text, "reason": reason},
    )


def _split_decorations(text: str) -> tuple[str, str | None, str | None]:
    """Split ``base?ref=..&rev=..#ref`` into base and decorations.

    Args:
        text: Full textual reference.

    Returns:
        Base text, ref, and rev.

    Raises:
        ReferenceParseError: On unknown/duplicate/empty query keys or bad rev.
    """
    base, _, fragment = text.partition("#")
    base, has_query, query = base.partition("?")
    ref: str | None = None
    rev: str | None = None
    if has_query:
        try:
            pairs = parse_qsl(query, keep_blank_values=True, strict_parsing=True)
        except ValueError as exc:
            raise _parse_error(text, f"malformed query '{query}'") from exc
        seen: set[str] = set()
        for key, value in pairs:
            if key not in _DECORATION_KEYS:
                raise _parse_error(text, f"unsupported query parameter '{key}'")
            if key in seen:
                raise _parse_error(text, f"duplicate query parameter '{key}'")
            if not value:
                raise _parse_error(text, f"empty query parameter '{key}'")
            seen.add(key)
            if key == "ref":
                ref = value
            else:
                rev = value
    if fragment:
        if ref is not None:
            raise _parse_error(text, "ref given both as query and fragment")
        ref = fragment
    if rev is not None and not _REV_RE.match(rev):
        raise _parse_error(text, f"revision '{rev}' is not a 40-digit hex hash")
    return base, ref, rev


def _parse_indirect(text: str) -> IndirectRef:
    """Parse ``flake:<alias>[/<ref>][/<rev>]``."""
    base, ref, rev = _split_decorations(text)
    segments = base.removeprefix("flake:").split("/")
    alias = segments[0]
    if not is_alias_token(alias):
        raise _parse_error(text, f"invalid alias '{alias}'")
    extra = segments[1:]
    if len(extra) > 2 or any(not segment for segment in extra):
        raise _parse_error(text, "expected flake:<alias>[/<ref>][/<rev>]")
    if len(extra) == 2:
        ref = _merge_decoration(text, "ref", ref, extra[0])
        rev = _merge_rev(text, rev, extra[1])
    elif len(extra) == 1:
        if _REV_RE.match(extra[0]):
            rev = _merge_rev(text, rev, extra[0])
        else:
            ref = _merge_decoration(text, "ref", ref, extra[0])
    return IndirectRef(alias=alias, ref=ref, rev=rev)


def _parse_path(text: str) -> PathRef:
    """Parse ``path:<path>``."""
    path = text.removeprefix("path:")
    if not path:
        raise _parse_error(text, "empty path")
    return PathRef(path=path)


def _parse_github(text: str) -> ConcreteRef:
    """Parse ``github:<owner>/<repo>[/<ref-or-rev>]``."""
    base, ref, rev = _split_decorations(text)
    segments = base.removeprefix("github:").split("/")
    if len(segments) not in (2, 3) or any(not segment for segment in segments):
        raise _parse_error(text, "expected github:<owner>/<repo>[/<ref-or-rev>]")
    if len(segments) == 3:
        if _REV_RE.match(segments[2]):
            rev = _merge_rev(text, rev, segments[2])
        else:
            ref = _merge_decoration(text, "ref", ref, segments[2])
    return ConcreteRef(
        scheme=ConcreteScheme.GITHUB,
        owner=segments[0],
        repo=segments[1],
        ref=ref,
        rev=rev,
    )


def _parse_git(text: str) -> ConcreteRef:
    """Parse ``git://`` and ``git+<transport>://`` locations."""
    base, ref, rev = _split_decorations(text)
    url = base.removeprefix("git+")
    _, _, remainder = url.partition("://")
    if not remainder:
        raise _parse_error(text, "missing repository location")
    return ConcreteRef(scheme=ConcreteScheme.GIT, url=url, ref=ref, rev=rev)


def _parse_tarball(text: str) -> ConcreteRef:
    """Parse ``http(s)://`` tarball locations."""
    if "?" in text or "#" in text:
        raise _parse_error(text, "tarball locations do not accept ref or rev")
    _, _, remainder = text.partition("://")
    if not remainder:
        raise _parse_error(text, "missing tarball location")
    return ConcreteRef(scheme=ConcreteScheme.TARBALL, url=text)


def _merge_decoration(
    text: str, name: str, current: str | None, candidate: str
) -> str:
    """Combine a path-segment decoration with a query one, rejecting conflicts."""
    if current is not None and current != candidate:
        raise _parse_error(text, f"{name} given twice")
    return candidate


def _merge_rev(text: str, current: str | None, candidate: str) -> str:
    """Combine path-segment rev with query rev, validating hash format."""
    if not _REV_RE.match(candidate):
        raise _parse_error(text, f"revision '{candidate}' is not a 40-digit hex hash")
    return _merge_decoration(text, "rev", current, candidate)
