"""Patch capability API — what an amender is allowed to do.

An amender is a plain function receiving a ``PackageApi``::

    def amend_zrender(pkg):
        pkg.require_version("5.4.4")
        pkg.set_attribute("type", "module")
        pkg.ensure_sub_document(["dist"], lambda sub: sub.set_attribute("type", "commonjs"))

Every edit goes through ``set_attribute`` so that the ledger sees the value
before it changes. Reads hand out deep copies for the same reason.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Sequence

from amendpkg.engine.commit import CommitEntry
from amendpkg.engine.document import JSONDocument, clone_json, loggable_json_value
from amendpkg.engine.ledger import LEDGER_KEY, Part, RevertLedger
from amendpkg.engine.subpath import SubPath
from amendpkg.errors import PreconditionError, VersionMismatchError

logger = logging.getLogger(__name__)


class DocumentApi:
    """Edit operations bound to one document and its ledger Part.

    Sub-document amenders receive this class directly; it has no
    ``ensure_sub_document``, so nesting stops one level below the root.
    """

    def __init__(self, document: JSONDocument, part: Part, log_tag: str):
        self._document = document
        self._part = part
        self._log_tag = log_tag

    @property
    def path(self) -> Path:
        return self._document.path

    def set_attribute(self, key: str, value: Any) -> None:
        """Set a top-level attribute, recording its pre-patch state first."""
        _check_key(key)
        self._part.record_if_absent(self._document.content, key)
        self._document.content[key] = clone_json(value)
        logger.info(
            '%s set_attr: "%s": %s', self._log_tag, key, loggable_json_value(value)
        )

    def get_attribute_clone(self, key: str) -> Any:
        """Return a copy of the current value of ``key``, or None."""
        _check_key(key)
        return self._document.get_clone(key)

    def get_version(self) -> str | None:
        return self._document.content.get("version")

    def require_version(self, *accepted: str) -> None:
        """Fail fast unless the manifest version is one of ``accepted``."""
        version = self.get_version()
        if version not in accepted:
            raise VersionMismatchError(version, tuple(accepted))


SubAmender = Callable[[DocumentApi], None]


class PackageApi(DocumentApi):
    """Capability API for the root package.json of one package directory."""

    def __init__(
        self,
        document: JSONDocument,
        part: Part,
        ledger: RevertLedger,
        package_dir: str | Path,
        queue: Callable[[CommitEntry], None],
        log_tag: str,
    ):
        super().__init__(document, part, log_tag)
        self._ledger = ledger
        self._package_dir = Path(package_dir)
        self._queue = queue
        self._sub_documents: dict[str, JSONDocument] = {}

    @property
    def package_dir(self) -> Path:
        return self._package_dir

    def ensure_sub_document(self, segments: Sequence[str], sub_amender: SubAmender) -> None:
        """Create or update ``<segments>/package.json`` through ``sub_amender``.

        The directory itself must already exist. The sub-document is always
        queued for writing, changed or not.

        Raises:
            PreconditionError: If ``segments`` is malformed or empty, or the
                directory is missing.
        """
        subpath = SubPath.from_segments(segments)
        if subpath.is_root:
            raise PreconditionError(
                f"{self._log_tag} [ensure_sub_document] subpath must not be empty; "
                "use set_attribute for the root package.json."
            )
        directory = subpath.directory(self._package_dir)
        if not directory.exists():
            raise PreconditionError(
                f"{self._log_tag} [ensure_sub_document] {directory} does not exist."
            )
        if not directory.is_dir():
            raise PreconditionError(
                f"{self._log_tag} [ensure_sub_document] {directory} is not a directory."
            )

        manifest_path = subpath.manifest_path(self._package_dir)
        document = self._sub_documents.get(subpath.key)
        if document is not None:
            logger.info("%s will_update: %s", self._log_tag, manifest_path)
            label = f"{self._log_tag} ({'update' if document.existed else 'create'})"
        elif manifest_path.exists():
            logger.info("%s will_update: %s", self._log_tag, manifest_path)
            document = JSONDocument.load(manifest_path)
            label = f"{self._log_tag} (update)"
        else:
            logger.info("%s will_create: %s", self._log_tag, manifest_path)
            document = JSONDocument.empty(manifest_path)
            label = f"{self._log_tag} (create)"
        # The same directory may be amended more than once per session.
        self._sub_documents[subpath.key] = document
        part = self._ledger.register_part(subpath.key, existed_before=document.existed)

        sub_amender(DocumentApi(document, part, self._log_tag))

        self._queue(CommitEntry.write(manifest_path, document.content, label))


def _check_key(key: Any) -> None:
    if not isinstance(key, str):
        raise PreconditionError(f"attribute key must be a string, got {key!r}.")
    if key == LEDGER_KEY:
        raise PreconditionError(f"{LEDGER_KEY} is reserved for the revert ledger.")
