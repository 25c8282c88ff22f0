"""Patch sessions — one apply or revert pass over one package directory.

A session never touches the filesystem except to read. Everything it wants
to change is returned as a list of commit entries for the driver to queue.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator

from amendpkg.engine.api import PackageApi
from amendpkg.engine.commit import CommitEntry
from amendpkg.engine.document import PACKAGE_JSON, JSONDocument, loggable_json_value
from amendpkg.engine.ledger import KeyReversal, RevertLedger
from amendpkg.engine.subpath import SubPath
from amendpkg.errors import PreconditionError

logger = logging.getLogger(__name__)

Amender = Callable[[PackageApi], None]


class SessionMode(Enum):
    APPLY = "apply"
    REVERT = "revert"


def make_log_tag(mode: SessionMode, dry_run: bool) -> str:
    tag = "[revert]" if mode is SessionMode.REVERT else "[patch]"
    return f"[dry-run] {tag}" if dry_run else tag


class PatchSession:
    """Plans the changes for one package directory."""

    def __init__(
        self,
        package_name: str,
        package_dir: str | Path,
        mode: SessionMode,
        amender: Amender | None = None,
        dry_run: bool = False,
    ):
        if mode is SessionMode.APPLY and amender is None:
            raise PreconditionError(f"No amender registered for package: {package_name}")
        self.package_name = package_name
        self.package_dir = Path(package_dir)
        self.mode = mode
        self.amender = amender
        self.log_tag = make_log_tag(mode, dry_run)
        self.planned: list[CommitEntry] = []

    def run(self) -> list[CommitEntry]:
        """Plan this session's changes and return them."""
        self.planned = []
        if self.mode is SessionMode.APPLY:
            self._apply()
        else:
            self._revert()
        return list(self.planned)

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def _apply(self) -> None:
        root = self._load_root()
        logger.info("%s will_update: %s", self.log_tag, root.path)

        ledger = RevertLedger.open(root)
        root_part = ledger.register_part(SubPath.root().key, existed_before=True)
        api = PackageApi(
            document=root,
            part=root_part,
            ledger=ledger,
            package_dir=self.package_dir,
            queue=self.planned.append,
            log_tag=self.log_tag,
        )

        self.amender(api)

        ledger.sync()
        self.planned.append(CommitEntry.write(root.path, root.content, f"{self.log_tag} update"))

    # ------------------------------------------------------------------
    # Revert
    # ------------------------------------------------------------------

    def _revert(self) -> None:
        root = self._load_root()
        ledger = RevertLedger.open(root)
        if not ledger.exists:
            logger.info("%s nothing to revert: %s", self.log_tag, root.path)
            return
        logger.info("%s will_update: %s", self.log_tag, root.path)

        def on_delete_file(subpath: SubPath) -> None:
            path = subpath.manifest_path(self.package_dir)
            logger.info("%s will_delete: %s", self.log_tag, path)
            self.planned.append(CommitEntry.delete(path, f"{self.log_tag} (delete)"))

        def on_update_document(subpath: SubPath, reversals: Iterator[KeyReversal]) -> None:
            if subpath.is_root:
                document = root
            else:
                path = subpath.manifest_path(self.package_dir)
                if not path.is_file():
                    raise PreconditionError(
                        f"{self.log_tag} {path} was patched but no longer exists; "
                        "cannot restore its original attributes."
                    )
                logger.info("%s will_update: %s", self.log_tag, path)
                document = JSONDocument.load(path)

            for reversal in reversals:
                if reversal.delete:
                    document.content.pop(reversal.key, None)
                    logger.info('%s delete_attr: "%s"', self.log_tag, reversal.key)
                else:
                    document.content[reversal.key] = reversal.value
                    logger.info(
                        '%s set_attr: "%s": %s',
                        self.log_tag,
                        reversal.key,
                        loggable_json_value(reversal.value),
                    )

            if not subpath.is_root:
                self.planned.append(
                    CommitEntry.write(document.path, document.content, f"{self.log_tag} (update)")
                )

        ledger.perform_revert(on_delete_file, on_update_document)
        # Written last: the ledger key is only gone once perform_revert returns.
        self.planned.append(CommitEntry.write(root.path, root.content, f"{self.log_tag} update"))

    def _load_root(self) -> JSONDocument:
        if not self.package_dir.is_dir():
            raise PreconditionError(f"{self.package_dir} is not a directory.")
        return JSONDocument.load(self.package_dir / PACKAGE_JSON)
