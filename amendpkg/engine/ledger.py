"""Revert ledger — the record that makes every patch reversible.

The ledger lives inside the root package.json under a reserved key and maps
each touched manifest (by canonical subpath key) to a Part. A Part either
says "this file did not exist before patching" or records, per attribute,
the original value or the fact that the attribute was absent.

On disk the ledger is plain JSON with explicit tags, e.g.::

    "__amendpkg_revert_ledger__": {
      "": {"keys": {"type": {"value": "commonjs"}, "exports": {"absent": true}}},
      "dist": {"keys": {"type": {"absent": true}}},
      "build": {"absent": true}
    }

Recordings are first-seen-wins: patching twice never overwrites the true
original with an already-patched value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Union

from amendpkg.engine.document import JSONDocument, clone_json
from amendpkg.engine.subpath import SubPath
from amendpkg.errors import LedgerError

LEDGER_KEY = "__amendpkg_revert_ledger__"


# --- Key records ---


@dataclass(frozen=True)
class Original:
    """The attribute existed before patching with this value."""

    value: Any


@dataclass(frozen=True)
class WasAbsent:
    """The attribute did not exist before patching."""


WAS_ABSENT = WasAbsent()

KeyRecord = Union[Original, WasAbsent]


@dataclass(frozen=True)
class KeyReversal:
    """One step of reverting a document: delete ``key`` or restore ``value``."""

    key: str
    delete: bool
    value: Any = None


# --- Parts ---


class Part:
    """The ledger's record for one manifest file."""

    def __init__(self, file_absent: bool, records: dict[str, KeyRecord] | None = None):
        self._file_absent = file_absent
        self._records: dict[str, KeyRecord] = {} if file_absent else dict(records or {})

    @property
    def file_absent(self) -> bool:
        return self._file_absent

    @property
    def records(self) -> dict[str, KeyRecord]:
        return dict(self._records)

    @property
    def is_empty(self) -> bool:
        return not self._file_absent and not self._records

    def record_if_absent(self, content: dict[str, Any], key: str) -> None:
        """Remember the pre-patch state of ``key`` unless already known.

        A file-absent Part ignores key recordings: reverting deletes the
        whole file anyway.
        """
        if self._file_absent or key in self._records:
            return
        if key in content:
            self._records[key] = Original(clone_json(content[key]))
        else:
            self._records[key] = WAS_ABSENT

    def reversals(self) -> Iterator[KeyReversal]:
        for key, record in self._records.items():
            if isinstance(record, WasAbsent):
                yield KeyReversal(key=key, delete=True)
            else:
                yield KeyReversal(key=key, delete=False, value=clone_json(record.value))

    def to_json(self) -> dict[str, Any]:
        if self._file_absent:
            return {"absent": True}
        keys = {}
        for key, record in self._records.items():
            if isinstance(record, WasAbsent):
                keys[key] = {"absent": True}
            else:
                keys[key] = {"value": clone_json(record.value)}
        return {"keys": keys}

    @classmethod
    def from_json(cls, subpath_key: str, data: Any) -> Part:
        if not isinstance(data, dict):
            raise LedgerError(f"ledger part {subpath_key!r} must be an object, got {data!r}.")
        if data.get("absent") is True:
            return cls(file_absent=True)
        keys = data.get("keys")
        if not isinstance(keys, dict):
            raise LedgerError(f"ledger part {subpath_key!r} has no 'keys' object.")
        records: dict[str, KeyRecord] = {}
        for key, raw in keys.items():
            if isinstance(raw, dict) and raw.get("absent") is True:
                records[key] = WAS_ABSENT
            elif isinstance(raw, dict) and "value" in raw:
                records[key] = Original(raw["value"])
            else:
                raise LedgerError(
                    f"ledger record {subpath_key!r}/{key!r} is malformed: {raw!r}."
                )
        return cls(file_absent=False, records=records)


# --- Ledger ---


class RevertLedger:
    """Typed view of the ledger stored in a root document.

    Parts are held as objects while a session runs; ``sync`` writes them back
    into the root document before it is committed.
    """

    def __init__(self, root: JSONDocument, parts: dict[str, Part] | None = None):
        self.root = root
        self._parts: dict[str, Part] = parts if parts is not None else {}

    @classmethod
    def open(cls, root: JSONDocument) -> RevertLedger:
        """Bind to the reserved key of ``root``, parsing any existing ledger."""
        raw = root.content.get(LEDGER_KEY)
        if raw is None:
            return cls(root)
        if not isinstance(raw, dict):
            raise LedgerError(f"{root.path}: {LEDGER_KEY} must be an object.")
        parts = {key: Part.from_json(key, value) for key, value in raw.items()}
        return cls(root, parts)

    @property
    def exists(self) -> bool:
        """True when the root document carries a ledger (possibly empty)."""
        return LEDGER_KEY in self.root.content or bool(self._parts)

    def parts(self) -> dict[str, Part]:
        return dict(self._parts)

    def register_part(self, subpath_key: str, existed_before: bool) -> Part:
        """Return the Part for ``subpath_key``, creating it on first sight."""
        part = self._parts.get(subpath_key)
        if part is None:
            part = Part(file_absent=not existed_before)
            self._parts[subpath_key] = part
        return part

    def sync(self) -> None:
        """Write the typed Parts into the root document.

        A ledger holding nothing but empty Parts is only written if the root
        already carried one.
        """
        if LEDGER_KEY not in self.root.content and all(
            part.is_empty for part in self._parts.values()
        ):
            return
        self.root.content[LEDGER_KEY] = {
            key: part.to_json() for key, part in self._parts.items()
        }

    def perform_revert(
        self,
        on_delete_file: Callable[[SubPath], None],
        on_update_document: Callable[[SubPath, Iterator[KeyReversal]], None],
    ) -> bool:
        """Replay the ledger through the callbacks and drop it from the root.

        Returns:
            False if there was no ledger (nothing to revert), True otherwise.
        """
        if not self.exists:
            return False

        for key, part in self._parts.items():
            subpath = SubPath.from_key(key)
            if part.file_absent:
                on_delete_file(subpath)
            else:
                on_update_document(subpath, part.reversals())

        self.root.content.pop(LEDGER_KEY, None)
        self._parts = {}
        return True
