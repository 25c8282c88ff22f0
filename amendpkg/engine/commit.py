"""Commit batch — deferred file writes and deletes.

Sessions only *plan* changes. The planned entries are collected here and
executed after every session has finished, so an assertion failing half-way
through one amender can never leave a package partially modified.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from amendpkg.engine.document import clone_json, dump_json
from amendpkg.errors import CommitError

logger = logging.getLogger(__name__)


class CommitAction(Enum):
    WRITE = "write"
    DELETE = "delete"


@dataclass(frozen=True)
class CommitEntry:
    """One planned filesystem change."""

    target: Path
    action: CommitAction
    label: str
    content: dict[str, Any] | None = None

    @classmethod
    def write(cls, target: str | Path, content: dict[str, Any], label: str) -> CommitEntry:
        # Snapshot now: the live document may still change after planning.
        return cls(Path(target), CommitAction.WRITE, label, clone_json(content))

    @classmethod
    def delete(cls, target: str | Path, label: str) -> CommitEntry:
        return cls(Path(target), CommitAction.DELETE, label)


def delete_file(path: str | Path) -> bool:
    """Delete ``path`` if it is a regular file. Returns whether it was deleted."""
    path = Path(path)
    if not path.is_file():
        return False
    path.unlink()
    return True


def write_json_document(path: str | Path, content: dict[str, Any]) -> None:
    """Overwrite (or create) ``path`` with ``content`` as formatted JSON."""
    Path(path).write_text(dump_json(content), encoding="utf-8")


class CommitBatch:
    """Append-only collection of commit entries shared by all sessions."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self._entries: list[CommitEntry] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def entries(self) -> list[CommitEntry]:
        with self._lock:
            return list(self._entries)

    def add(self, entry: CommitEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def extend(self, entries: Iterable[CommitEntry]) -> None:
        entries = list(entries)
        with self._lock:
            self._entries.extend(entries)

    def execute(self) -> int:
        """Run every entry in queue order.

        In dry-run mode entries are logged exactly as in a real run but no
        filesystem call is made. The first failing entry stops the batch;
        entries already executed are not rolled back.

        Returns:
            Number of entries processed.

        Raises:
            CommitError: On the first I/O failure.
        """
        done = 0
        for entry in self.entries:
            try:
                self._execute_one(entry)
            except OSError as e:
                raise CommitError(entry.target, str(e)) from e
            done += 1
        return done

    def _execute_one(self, entry: CommitEntry) -> None:
        if entry.action is CommitAction.DELETE:
            if not entry.target.is_file():
                logger.debug("%s nothing to delete: %s", entry.label, entry.target)
                return
            logger.info("%s deleting file: %s", entry.label, entry.target)
            if not self.dry_run:
                delete_file(entry.target)
            return

        logger.info("%s writing file: %s", entry.label, entry.target)
        if not self.dry_run:
            write_json_document(entry.target, entry.content or {})
