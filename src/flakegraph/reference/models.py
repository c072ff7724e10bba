"""Flake reference variants."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, model_validator

REV_PATTERN = r"^[0-9a-f]{40}$"


class ReferenceKind(StrEnum):
    """Discriminator for flake reference variants."""

    PATH = "path"
    CONCRETE = "concrete"
    INDIRECT = "indirect"


class ConcreteScheme(StrEnum):
    """Supported concrete location schemes."""

    GITHUB = "github"
    GIT = "git"
    TARBALL = "tarball"


def _decoration_suffix(ref: str | None, rev: str | None) -> str:
    """Render ref/rev decorations as a query suffix."""
    pairs = [(key, value) for key, value in (("ref", ref), ("rev", rev)) if value]
    if not pairs:
        return ""
    return "?" + urlencode(pairs)


class PathRef(BaseModel):
    """Local filesystem flake location. Always concrete."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal[ReferenceKind.PATH] = ReferenceKind.PATH
    path: str = Field(min_length=1)

    @property
    def is_direct(self) -> bool:
        """Path references never go through a registry."""
        return True

    def to_string(self) -> str:
        """Render textual form accepted by ``classify``.

        Returns:
            Plain path when it already classifies as a path, else ``path:`` form.
        """
        if self.path == ".":
            return self.path
        head, separator, _ = self.path.partition("/")
        # A colon before the first separator could be read as a scheme.
        if separator and ":" not in head:
            return self.path
        return f"path:{self.path}"

    def __str__(self) -> str:
        return self.to_string()


class ConcreteRef(BaseModel):
    """URI-like flake location with optional branch/tag and revision."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal[ReferenceKind.CONCRETE] = ReferenceKind.CONCRETE
    scheme: ConcreteScheme
    url: str | None = None
    owner: str | None = None
    repo: str | None = None
    ref: str | None = None
    rev: str | None = Field(default=None, pattern=REV_PATTERN)

    @model_validator(mode="after")
    def _validate_scheme_fields(self) -> ConcreteRef:
        """Validate scheme-specific field combinations.

        Returns:
            Validated reference.

        Raises:
            ValueError: If fields do not fit the scheme.
        """
        if self.scheme == ConcreteScheme.GITHUB:
            if not self.owner or not self.repo:
                raise ValueError("github reference requires owner and repo.")
            if self.url is not None:
                raise ValueError("github reference must not define url.")
            return self
        if not self.url:
            raise ValueError(f"{self.scheme.value} reference requires url.")
        if self.owner is not None or self.repo is not None:
            raise ValueError(
                f"{self.scheme.value} reference must not define owner/repo."
            )
        if self.scheme == ConcreteScheme.TARBALL and (self.ref or self.rev):
            raise ValueError("tarball reference does not accept ref or rev.")
        return self

    @property
    def is_direct(self) -> bool:
        """Concrete references never go through a registry."""
        return True

    @property
    def is_immutable(self) -> bool:
        """Whether the reference pins a fixed revision."""
        return self.rev is not None

    def to_string(self) -> str:
        """Render textual form accepted by ``classify``.

        Returns:
            Scheme-specific URI with ref/rev query suffix.
        """
        if self.scheme == ConcreteScheme.GITHUB:
            base = f"github:{self.owner}/{self.repo}"
        elif self.scheme == ConcreteScheme.GIT:
            url = self.url or ""
            base = url if url.startswith("git://") else f"git+{url}"
        else:
            base = self.url or ""
        return base + _decoration_suffix(self.ref, self.rev)

    def __str__(self) -> str:
        return self.to_string()


class IndirectRef(BaseModel):
    """Alias name awaiting registry substitution."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal[ReferenceKind.INDIRECT] = ReferenceKind.INDIRECT
    alias: str = Field(min_length=1)
    ref: str | None = None
    rev: str | None = Field(default=None, pattern=REV_PATTERN)

    @property
    def is_direct(self) -> bool:
        """Indirect references always need a registry lookup."""
        return False

    def to_string(self) -> str:
        """Render textual form accepted by ``classify``.

        Returns:
            Bare alias, or ``flake:`` form when decorations are present.
        """
        if self.ref is None and self.rev is None:
            return self.alias
        return f"flake:{self.alias}" + _decoration_suffix(self.ref, self.rev)

    def __str__(self) -> str:
        return self.to_string()


FlakeRef = Annotated[PathRef | ConcreteRef | IndirectRef, Field(discriminator="kind")]
