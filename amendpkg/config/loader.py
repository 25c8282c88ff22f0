"""Loading amender registries from config files."""

from __future__ import annotations

import importlib.util
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from amendpkg.config.declarative import load_declarative_config
from amendpkg.engine.session import Amender
from amendpkg.errors import ConfigError

logger = logging.getLogger(__name__)

BUILTIN_CONFIG_DIR = Path(__file__).resolve().parent.parent / "builtin_config"

PYTHON_SUFFIXES = {".py"}
YAML_SUFFIXES = {".yaml", ".yml"}


@dataclass
class AmendConfig:
    """A loaded amender registry and where it came from."""

    source: Path
    amenders: dict[str, Amender] = field(default_factory=dict)

    @property
    def package_names(self) -> list[str]:
        return list(self.amenders)


def load_config(path: str | Path) -> AmendConfig:
    """Load a ``.py`` or ``.yaml``/``.yml`` config file.

    Raises:
        ConfigError: If the file is missing, of an unknown kind, or does not
            register at least one amender.
    """
    path = Path(path).resolve()
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in PYTHON_SUFFIXES:
        amenders = _load_python_config(path)
    elif suffix in YAML_SUFFIXES:
        amenders = load_declarative_config(path)
    else:
        raise ConfigError(f"unsupported config file type {suffix!r}: {path}")

    if not amenders:
        raise ConfigError(f"No package amender registered in {path}.")

    logger.debug("loaded %d amender(s) from %s", len(amenders), path)
    return AmendConfig(source=path, amenders=amenders)


def list_builtin_configs() -> list[str]:
    """Names of the config files shipped with amendpkg."""
    if not BUILTIN_CONFIG_DIR.is_dir():
        return []
    return sorted(
        p.name
        for p in BUILTIN_CONFIG_DIR.iterdir()
        if p.is_file()
        and not p.name.startswith("_")
        and p.suffix.lower() in PYTHON_SUFFIXES | YAML_SUFFIXES
    )


def load_builtin_config(name: str) -> AmendConfig:
    """Load a built-in config by file name, e.g. ``fix_echarts_esm.py``."""
    if name not in list_builtin_configs():
        raise ConfigError(
            f"Unknown built-in config: {name}. "
            f"Available: {', '.join(list_builtin_configs()) or '(none)'}"
        )
    return load_config(BUILTIN_CONFIG_DIR / name)


def _load_python_config(path: Path) -> dict[str, Amender]:
    module_name = f"_amendpkg_config_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ConfigError(f"cannot import config module: {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ConfigError(f"failed to import {path}: {e}") from e

    amenders = getattr(module, "AMENDERS", None)
    if not isinstance(amenders, Mapping):
        raise ConfigError(
            f"{path} must define AMENDERS as a mapping of package name to "
            f"amender function, got {type(amenders).__name__}."
        )
    for name, amender in amenders.items():
        if not isinstance(name, str) or not callable(amender):
            raise ConfigError(f"{path}: AMENDERS[{name!r}] must be a callable.")
    return dict(amenders)
