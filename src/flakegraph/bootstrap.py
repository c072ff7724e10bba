"""Runtime wiring: logging and command facade construction."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rich.logging import RichHandler

from flakegraph.commands import FlakeCommands
from flakegraph.config import FlakeGraphConfig
from flakegraph.lockfile import LockFileReader, LockStore
from flakegraph.pinning import Pinner
from flakegraph.registry import (
    Registry,
    RegistryChain,
    RegistryTier,
    load_registry,
)
from flakegraph.resolver import Fetcher, FlakeParser, GraphResolver

_LOGGING_CONFIGURED = False


def configure_logging(level: int = logging.INFO) -> None:
    """Configure Rich-backed logging once per process."""
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
    )
    _LOGGING_CONFIGURED = True


def load_global_registry(config: FlakeGraphConfig) -> Registry:
    """Load the configured global registry, empty when none is configured.

    Args:
        config: Effective config.

    Returns:
        Global-tier registry.
    """
    path = config.registries.global_registry_file()
    if path is None:
        return Registry(RegistryTier.GLOBAL)
    return load_registry(path, RegistryTier.GLOBAL)


def build_flake_commands(
    config: FlakeGraphConfig,
    *,
    fetcher: Fetcher,
    parser: FlakeParser,
    overrides: Iterable[tuple[str, str]] = (),
) -> FlakeCommands:
    """Build command facade for one invocation.

    Flag-tier overrides come from config first, then ``overrides``; later
    pairs win. The flag tier is never persisted.

    Args:
        config: Effective config.
        fetcher: Fetch capability.
        parser: Flake declaration parse capability.
        overrides: Per-invocation ``(alias, target)`` override pairs.

    Returns:
        Configured command facade.
    """
    user_path = config.registries.user_registry_file()
    user_registry = load_registry(user_path, RegistryTier.USER)
    global_registry = load_global_registry(config)
    chain = RegistryChain.from_overrides(
        [*config.registries.overrides.items(), *overrides],
        user=user_registry,
        global_=global_registry,
    )
    resolver = GraphResolver(
        chain=chain,
        fetcher=fetcher,
        parser=parser,
        lock_reader=LockFileReader(config.lock.filename),
        use_registries=config.registries.use_registries,
        max_workers=config.resolver.max_workers,
    )
    return FlakeCommands(
        resolver=resolver,
        lock_store=LockStore(resolver=resolver, filename=config.lock.filename),
        pinner=Pinner(
            resolver=resolver,
            user_registry_path=user_path,
            global_registry=global_registry,
        ),
        user_registry_path=user_path,
    )
