"""Canonical subpaths — package-relative directories that hold a manifest.

User input is a list of directory segments such as ``[]``, ``["dist"]`` or
``["src", "util"]``. The canonical key is the posix join of the segments;
the empty string denotes the package root.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from amendpkg.engine.document import PACKAGE_JSON
from amendpkg.errors import PreconditionError

_FORBIDDEN_SEGMENTS = {".", ".."}


@dataclass(frozen=True)
class SubPath:
    """A directory relative to the package root."""

    segments: tuple[str, ...] = ()

    @classmethod
    def root(cls) -> SubPath:
        return cls(())

    @classmethod
    def from_segments(cls, segments: Sequence[str]) -> SubPath:
        """Validate user-supplied segments.

        Raises:
            PreconditionError: If ``segments`` is not a list or tuple of
                plain, non-empty directory names.
        """
        if not isinstance(segments, (list, tuple)):
            raise PreconditionError(
                "subpath should be a list like [], ['dist'], ['src', 'util'], "
                f"got {type(segments).__name__}."
            )
        for segment in segments:
            if not isinstance(segment, str) or not segment:
                raise PreconditionError(
                    f"subpath segments must be non-empty strings, got {segment!r}."
                )
            if "/" in segment or "\\" in segment or segment in _FORBIDDEN_SEGMENTS:
                raise PreconditionError(
                    f"subpath segment {segment!r} must be a plain directory name."
                )
        return cls(tuple(segments))

    @classmethod
    def from_key(cls, key: str) -> SubPath:
        if key == "":
            return cls.root()
        return cls.from_segments(key.split(posixpath.sep))

    @property
    def key(self) -> str:
        return posixpath.sep.join(self.segments)

    @property
    def is_root(self) -> bool:
        return not self.segments

    def directory(self, package_dir: str | Path) -> Path:
        return Path(package_dir).joinpath(*self.segments)

    def manifest_path(self, package_dir: str | Path) -> Path:
        return self.directory(package_dir) / PACKAGE_JSON
