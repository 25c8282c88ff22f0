"""Exception hierarchy for amendpkg.

Everything the engine raises on purpose derives from ``AmendError`` so the
CLI can report it without a traceback.
"""

from __future__ import annotations

from pathlib import Path


class AmendError(Exception):
    """Base class for all amendpkg errors."""


class PreconditionError(AmendError):
    """A required input or on-disk state is missing or malformed."""


class ConfigError(AmendError):
    """The amender config could not be loaded or is invalid."""


class LedgerError(AmendError):
    """The revert ledger stored in a root manifest is malformed."""


class ResolutionError(AmendError):
    """Package directories could not be resolved."""


class VersionMismatchError(AmendError):
    """An amender was asked to patch a package version it does not know."""

    def __init__(self, package_version: str | None, accepted: tuple[str, ...]):
        self.package_version = package_version
        self.accepted = accepted
        super().__init__(
            f"Please check the patch logic for this package version. "
            f"current version: {package_version}, expected: {', '.join(accepted)}"
        )


class SessionError(AmendError):
    """A patch session failed; the original error is chained as ``__cause__``."""

    def __init__(self, package_name: str, package_dir: str | Path, reason: str):
        self.package_name = package_name
        self.package_dir = str(package_dir)
        super().__init__(f"{package_name} ({self.package_dir}): {reason}")


class CommitError(AmendError):
    """A planned write or delete failed during the commit phase."""

    def __init__(self, target: str | Path, reason: str):
        self.target = str(target)
        super().__init__(f"commit failed on {self.target}: {reason}")
