"""Declarative amenders — package patches described as YAML data.

Most compatibility patches only set a handful of attributes, so they can be
written without Python::

    amenders:
      resize-detector:
        set:
          type: module
          exports: {import: ./esm/index.js}
      zrender:
        expect_version: ["5.4.4"]
        skip_if_present: [exports]
        set: {type: module}
        sub_documents:
          - path: [dist]
            set: {type: commonjs}

Each entry compiles into an ordinary amender function.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from amendpkg.engine.api import PackageApi
from amendpkg.engine.session import Amender
from amendpkg.errors import ConfigError

_AMENDER_FIELDS = {"expect_version", "skip_if_present", "set", "sub_documents"}
_SUB_DOCUMENT_FIELDS = {"path", "set"}


@dataclass
class SubDocumentPatch:
    """Attributes to set in ``<path>/package.json``."""

    path: list[str]
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class DeclarativeAmender:
    """A compiled declarative amender for one package."""

    package_name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    expect_version: list[str] = field(default_factory=list)
    skip_if_present: list[str] = field(default_factory=list)
    sub_documents: list[SubDocumentPatch] = field(default_factory=list)

    def __call__(self, pkg: PackageApi) -> None:
        if self.expect_version:
            pkg.require_version(*self.expect_version)
        # Newer releases ship their own fix.
        if any(pkg.get_attribute_clone(key) is not None for key in self.skip_if_present):
            return
        for key, value in self.attributes.items():
            pkg.set_attribute(key, value)
        for sub in self.sub_documents:
            pkg.ensure_sub_document(sub.path, _set_all(sub.attributes))


def _set_all(attributes: dict[str, Any]):
    def amend_sub(sub) -> None:
        for key, value in attributes.items():
            sub.set_attribute(key, value)

    return amend_sub


def load_declarative_config(path: str | Path) -> dict[str, Amender]:
    """Load a YAML config file into an amender registry."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("amenders"), dict):
        raise ConfigError(f"{path}: expected a top-level 'amenders' mapping.")

    return {
        str(name): compile_amender(str(name), body)
        for name, body in data["amenders"].items()
    }


def compile_amender(package_name: str, body: Any) -> DeclarativeAmender:
    """Validate one ``amenders`` entry and turn it into an amender."""
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ConfigError(f"amender for {package_name!r} must be a mapping.")
    unknown = set(body) - _AMENDER_FIELDS
    if unknown:
        raise ConfigError(
            f"amender for {package_name!r} has unknown fields: {', '.join(sorted(unknown))}"
        )

    return DeclarativeAmender(
        package_name=package_name,
        attributes=_mapping(body.get("set"), f"{package_name}.set"),
        expect_version=_string_list(body.get("expect_version"), f"{package_name}.expect_version"),
        skip_if_present=_string_list(
            body.get("skip_if_present"), f"{package_name}.skip_if_present"
        ),
        sub_documents=[
            _sub_document(item, f"{package_name}.sub_documents[{i}]")
            for i, item in enumerate(body.get("sub_documents") or [])
        ],
    )


def _sub_document(item: Any, where: str) -> SubDocumentPatch:
    if not isinstance(item, dict):
        raise ConfigError(f"{where} must be a mapping.")
    unknown = set(item) - _SUB_DOCUMENT_FIELDS
    if unknown:
        raise ConfigError(f"{where} has unknown fields: {', '.join(sorted(unknown))}")
    path = _string_list(item.get("path"), f"{where}.path")
    if not path:
        raise ConfigError(f"{where}.path must name at least one directory.")
    return SubDocumentPatch(path=path, attributes=_mapping(item.get("set"), f"{where}.set"))


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping.")
    return {str(k): v for k, v in value.items()}


def _string_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a string or a list of strings.")
    return list(value)
