"""JSON documents — one package.json file held in memory."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from amendpkg.errors import PreconditionError

PACKAGE_JSON = "package.json"

_LOGGABLE_MAX_LEN = 50


@dataclass
class JSONDocument:
    """A JSON object file: its path and its (mutable, ordered) content."""

    path: Path
    content: dict[str, Any] = field(default_factory=dict)
    existed: bool = True

    @classmethod
    def load(cls, path: str | Path) -> JSONDocument:
        """Read and parse a JSON object file.

        Raises:
            PreconditionError: If the file is missing, is not valid JSON, or
                does not hold a JSON object at the top level.
        """
        path = Path(path)
        if not path.is_file():
            raise PreconditionError(f"{path} does not exist or is not a file.")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as e:
            raise PreconditionError(f"{path} is not valid UTF-8: {e}") from e
        except json.JSONDecodeError as e:
            raise PreconditionError(f"{path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise PreconditionError(
                f"{path} must hold a JSON object, got {type(data).__name__}."
            )
        return cls(path=path, content=data, existed=True)

    @classmethod
    def empty(cls, path: str | Path) -> JSONDocument:
        """A document for a file that does not exist yet."""
        return cls(path=Path(path), content={}, existed=False)

    def get_clone(self, key: str) -> Any:
        return clone_json(self.content.get(key))

    def dumps(self) -> str:
        return dump_json(self.content)


def clone_json(value: Any) -> Any:
    """Return a structurally independent copy of a JSON value."""
    return copy.deepcopy(value)


def dump_json(content: Any) -> str:
    """Serialize with stable, human-readable formatting."""
    return json.dumps(content, indent=2, ensure_ascii=False) + "\n"


def loggable_json_value(value: Any) -> str:
    """Compact single-line rendering of a JSON value for audit log lines."""
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if len(text) > _LOGGABLE_MAX_LEN:
        text = text[:_LOGGABLE_MAX_LEN] + " ..."
    return text
