"""Driver — fan patch sessions out over packages and their installed copies.

A run has two phases:

1. Planning: one ``PatchSession`` per resolved package directory, run
   concurrently. Sessions only read from disk.
2. Commit: if (and only if) every session planned successfully, the
   collected entries are executed, or just logged in dry-run mode.

Partially applying a compatibility patch set is worse than applying none,
so any failing session aborts the run before anything is written.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ALL_COMPLETED, FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence

from amendpkg.engine.commit import CommitBatch, CommitEntry
from amendpkg.engine.session import Amender, PatchSession, SessionMode
from amendpkg.errors import ConfigError, PreconditionError, SessionError
from amendpkg.utils.npm import resolve_package_dirs

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Sequence[str]]


@dataclass
class RunOptions:
    """Parameters of one run."""

    packages: list[str] = field(default_factory=list)  # Empty means every registered package
    revert: bool = False
    dry_run: bool = False
    fail_fast: bool = True  # Skip sessions not yet started once one fails
    max_workers: int | None = None

    @property
    def mode(self) -> SessionMode:
        return SessionMode.REVERT if self.revert else SessionMode.APPLY


@dataclass
class SessionTarget:
    """One package directory to run a session on."""

    package_name: str
    package_dir: str
    planned_entries: int = 0


@dataclass
class RunResult:
    """Outcome of a completed run."""

    mode: SessionMode
    dry_run: bool
    targets: list[SessionTarget] = field(default_factory=list)
    executed_entries: int = 0

    @property
    def nothing_to_do(self) -> bool:
        return self.executed_entries == 0


def select_packages(amenders: Mapping[str, Amender], requested: Sequence[str]) -> list[str]:
    """Validate the requested package names against the registry.

    Raises:
        ConfigError: If no amender is registered at all.
        PreconditionError: If a requested package has no amender.
    """
    if not amenders:
        raise ConfigError("No package amender registered.")
    if not requested:
        return list(amenders)

    selected = []
    for name in requested:
        if name not in amenders:
            raise PreconditionError(f"Unknown package: {name}")
        if name not in selected:
            selected.append(name)
    return selected


def plan_targets(package_names: Sequence[str], resolver: Resolver) -> list[SessionTarget]:
    """Resolve package names to session targets, one per physical directory.

    Copies reached through symlinks or aliases collapse into one target.

    Raises:
        PreconditionError: If one directory is claimed by two package names.
    """
    owners: dict[str, str] = {}
    targets: list[SessionTarget] = []
    for name in package_names:
        for package_dir in resolver(name):
            real_dir = os.path.realpath(package_dir)
            owner = owners.get(real_dir)
            if owner == name:
                logger.debug("skipping duplicate directory for %s: %s", name, package_dir)
                continue
            if owner is not None:
                raise PreconditionError(
                    f"{real_dir} is resolved for both {owner!r} and {name!r}."
                )
            owners[real_dir] = name
            targets.append(SessionTarget(package_name=name, package_dir=package_dir))
    return targets


class AmendRunner:
    """Runs apply or revert over a set of packages."""

    def __init__(
        self,
        amenders: Mapping[str, Amender],
        options: RunOptions | None = None,
        resolver: Resolver | None = None,
    ):
        self.amenders = dict(amenders)
        self.options = options or RunOptions()
        self.resolver = resolver or resolve_package_dirs

    def run(self) -> RunResult:
        """Plan every session, then commit.

        Raises:
            SessionError: If any session failed; nothing has been written.
            CommitError: If the commit phase failed part-way.
        """
        opts = self.options
        names = select_packages(self.amenders, opts.packages)
        logger.info("[target_packages]: %s", ", ".join(names))

        targets = plan_targets(names, self.resolver)
        batch = CommitBatch(dry_run=opts.dry_run)
        self._plan(targets, batch)

        result = RunResult(mode=opts.mode, dry_run=opts.dry_run, targets=targets)
        if not len(batch):
            logger.warning(
                "Nothing to modify. Please check that the config is correct "
                "and that the packages are installed."
            )
            return result

        logger.info("Writing ...")
        result.executed_entries = batch.execute()
        logger.info("Write done.")
        return result

    def _plan(self, targets: list[SessionTarget], batch: CommitBatch) -> None:
        if not targets:
            return
        # Only fail-fast runs skip the sessions left after a failure.
        abort = threading.Event() if self.options.fail_fast else None
        return_when = FIRST_EXCEPTION if self.options.fail_fast else ALL_COMPLETED

        with ThreadPoolExecutor(max_workers=self.options.max_workers) as executor:
            futures: list[Future] = [
                executor.submit(self._run_session, target, abort) for target in targets
            ]
            _, pending = wait(futures, return_when=return_when)
            if pending:
                abort.set()
                for future in pending:
                    future.cancel()
                wait(pending)

        errors: list[SessionError] = []
        planned: list[list[CommitEntry]] = []
        for target, future in zip(targets, futures):
            if future.cancelled():
                continue
            error = future.exception()
            if error is not None:
                errors.append(error)
                continue
            entries = future.result()
            if entries is not None:
                target.planned_entries = len(entries)
                planned.append(entries)

        if errors:
            for error in errors[1:]:
                logger.error("session also failed: %s", error)
            raise errors[0]

        for entries in planned:
            batch.extend(entries)

    def _run_session(
        self, target: SessionTarget, abort: threading.Event | None
    ) -> list[CommitEntry] | None:
        if abort is not None and abort.is_set():
            logger.debug("skipping %s after an earlier failure", target.package_dir)
            return None
        session = PatchSession(
            package_name=target.package_name,
            package_dir=target.package_dir,
            mode=self.options.mode,
            amender=self.amenders.get(target.package_name),
            dry_run=self.options.dry_run,
        )
        try:
            return session.run()
        except Exception as e:
            if abort is not None:
                abort.set()
            logger.error(
                "%s failed on %s: %s", session.log_tag, target.package_dir, e
            )
            reason = str(e) or type(e).__name__
            raise SessionError(target.package_name, target.package_dir, reason) from e
