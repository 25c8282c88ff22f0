"""Amender configuration — where the package-specific patches come from.

A config is either a Python module defining ``AMENDERS`` or a declarative
YAML file. A few configs ship with amendpkg (see ``amendpkg/builtin_config``).
"""

from amendpkg.config.loader import (
    AmendConfig,
    list_builtin_configs,
    load_builtin_config,
    load_config,
)

__all__ = [
    "AmendConfig",
    "list_builtin_configs",
    "load_builtin_config",
    "load_config",
]
