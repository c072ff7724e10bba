"""flakegraph configuration loading."""

from flakegraph.config.global_config import (
    ConfigError,
    FlakeGraphConfig,
    LockSettings,
    RegistrySettings,
    ResolverSettings,
    load_config,
)

__all__ = [
    "ConfigError",
    "FlakeGraphConfig",
    "LockSettings",
    "RegistrySettings",
    "ResolverSettings",
    "load_config",
]
