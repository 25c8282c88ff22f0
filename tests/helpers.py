"""Shared helpers for building fake installed packages on disk."""

import json
from pathlib import Path

from amendpkg.engine.commit import CommitBatch


def write_package(package_dir, content, subdirs=()):
    """Write ``package.json`` into ``package_dir`` and create ``subdirs``."""
    package_dir = Path(package_dir)
    package_dir.mkdir(parents=True, exist_ok=True)
    (package_dir / "package.json").write_text(json.dumps(content, indent=2))
    for sub in subdirs:
        (package_dir / sub).mkdir(parents=True, exist_ok=True)
    return package_dir


def read_json(path):
    return json.loads(Path(path).read_text())


def commit(entries, dry_run=False):
    batch = CommitBatch(dry_run=dry_run)
    batch.extend(entries)
    return batch.execute()
