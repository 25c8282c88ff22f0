"""npm operations — locate the installed copies of a package."""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path

from amendpkg.engine.document import PACKAGE_JSON
from amendpkg.errors import ResolutionError

logger = logging.getLogger(__name__)


def resolve_package_dirs(package_name: str, cwd: str | Path | None = None) -> list[str]:
    """Return the absolute directories of every installed copy of a package.

    Works with npm, yarn 1.x and pnpm layouts. All copies are listed when
    several versions are installed side by side.

    ``npm ls --parseable`` also prints the project root and may print paths
    of other packages in the dependency chain, so only directories whose
    package.json carries ``package_name`` are kept.

    Raises:
        ResolutionError: If npm cannot be executed.
    """
    cmd = ["npm", "ls", "--parseable", package_name]
    logger.debug("[cmd_exec_inline]: %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise ResolutionError(f"could not run npm: {e}") from e

    lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
    if proc.returncode != 0 and not lines:
        logger.warning(
            "npm ls exited with code %d for %s: %s",
            proc.returncode,
            package_name,
            proc.stderr.strip() or "(no output)",
        )
        return []

    return [line for line in lines if _is_package_dir(line, package_name)]


def _is_package_dir(path: str, package_name: str) -> bool:
    manifest = Path(path) / PACKAGE_JSON
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return False
    return isinstance(data, dict) and data.get("name") == package_name
