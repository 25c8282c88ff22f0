"""Tests for the driver: package selection, fan-out and the commit gate."""

import os
import tempfile
from pathlib import Path

import pytest

from amendpkg.engine.driver import (
    AmendRunner,
    RunOptions,
    plan_targets,
    select_packages,
)
from amendpkg.engine.ledger import LEDGER_KEY
from amendpkg.engine.session import SessionMode
from amendpkg.errors import ConfigError, PreconditionError, SessionError, VersionMismatchError
from helpers import read_json, write_package


def _set_type_module(pkg):
    pkg.set_attribute("type", "module")


def _fixture(tmpdir):
    """Two packages, one of them installed twice."""
    root = Path(tmpdir)
    dirs = {
        "alpha": [str(write_package(root / "node_modules" / "alpha", {"version": "1.0.0"}))],
        "beta": [
            str(write_package(root / "node_modules" / "beta", {"version": "2.0.0"})),
            str(
                write_package(
                    root / "node_modules" / "alpha" / "node_modules" / "beta",
                    {"version": "1.0.0"},
                )
            ),
        ],
    }
    return dirs, lambda name: dirs.get(name, [])


def test_select_packages_defaults_to_all():
    amenders = {"a": _set_type_module, "b": _set_type_module}
    assert select_packages(amenders, []) == ["a", "b"]
    assert select_packages(amenders, ["b", "b"]) == ["b"]


def test_select_packages_rejects_unknown_and_empty():
    with pytest.raises(PreconditionError, match="Unknown package: c"):
        select_packages({"a": _set_type_module}, ["c"])
    with pytest.raises(ConfigError):
        select_packages({}, [])


def test_plan_targets_dedupes_symlinked_copies():
    with tempfile.TemporaryDirectory() as tmpdir:
        real = write_package(Path(tmpdir) / "store" / "alpha", {"version": "1.0.0"})
        link = Path(tmpdir) / "alpha-link"
        os.symlink(real, link)

        targets = plan_targets(["alpha"], lambda name: [str(real), str(link)])
        assert [t.package_dir for t in targets] == [str(real)]


def test_plan_targets_rejects_directory_claimed_twice():
    with tempfile.TemporaryDirectory() as tmpdir:
        shared = str(write_package(Path(tmpdir) / "shared", {"version": "1.0.0"}))
        with pytest.raises(PreconditionError, match="both"):
            plan_targets(["a", "b"], lambda name: [shared])


def test_apply_then_revert_all_packages():
    with tempfile.TemporaryDirectory() as tmpdir:
        dirs, resolver = _fixture(tmpdir)
        amenders = {"alpha": _set_type_module, "beta": _set_type_module}

        result = AmendRunner(amenders, RunOptions(), resolver).run()
        assert result.mode is SessionMode.APPLY
        assert result.executed_entries == 3
        assert [t.planned_entries for t in result.targets] == [1, 1, 1]
        for package_dir in dirs["alpha"] + dirs["beta"]:
            content = read_json(Path(package_dir) / "package.json")
            assert content["type"] == "module"
            assert LEDGER_KEY in content

        AmendRunner(amenders, RunOptions(revert=True), resolver).run()
        assert read_json(Path(dirs["beta"][0]) / "package.json") == {"version": "2.0.0"}
        assert read_json(Path(dirs["beta"][1]) / "package.json") == {"version": "1.0.0"}


def test_only_requested_package_is_patched():
    with tempfile.TemporaryDirectory() as tmpdir:
        dirs, resolver = _fixture(tmpdir)
        amenders = {"alpha": _set_type_module, "beta": _set_type_module}

        AmendRunner(amenders, RunOptions(packages=["beta"]), resolver).run()

        assert "type" not in read_json(Path(dirs["alpha"][0]) / "package.json")
        assert read_json(Path(dirs["beta"][0]) / "package.json")["type"] == "module"


def test_dry_run_changes_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        dirs, resolver = _fixture(tmpdir)
        amenders = {"alpha": _set_type_module, "beta": _set_type_module}

        result = AmendRunner(amenders, RunOptions(dry_run=True), resolver).run()

        assert result.dry_run
        assert result.executed_entries == 3
        assert read_json(Path(dirs["alpha"][0]) / "package.json") == {"version": "1.0.0"}


@pytest.mark.parametrize("fail_fast", [True, False])
def test_failing_session_blocks_every_write(fail_fast):
    with tempfile.TemporaryDirectory() as tmpdir:
        dirs, resolver = _fixture(tmpdir)

        def guarded(pkg):
            pkg.require_version("2.0.0")
            pkg.set_attribute("type", "module")

        amenders = {"alpha": _set_type_module, "beta": guarded}
        runner = AmendRunner(amenders, RunOptions(fail_fast=fail_fast), resolver)

        with pytest.raises(SessionError) as exc_info:
            runner.run()

        assert exc_info.value.package_name == "beta"
        assert exc_info.value.package_dir == dirs["beta"][1]
        assert isinstance(exc_info.value.__cause__, VersionMismatchError)
        for package_dir in dirs["alpha"] + dirs["beta"]:
            assert "type" not in read_json(Path(package_dir) / "package.json")


def test_precondition_failure_inside_amender_aborts_run():
    with tempfile.TemporaryDirectory() as tmpdir:
        dirs, resolver = _fixture(tmpdir)

        def needs_dist(pkg):
            pkg.ensure_sub_document(["dist"], lambda sub: sub.set_attribute("type", "commonjs"))

        with pytest.raises(SessionError) as exc_info:
            AmendRunner({"alpha": needs_dist}, RunOptions(), resolver).run()
        assert isinstance(exc_info.value.__cause__, PreconditionError)


def test_nothing_to_modify_when_no_directories():
    result = AmendRunner({"ghost": _set_type_module}, RunOptions(), lambda name: []).run()
    assert result.targets == []
    assert result.nothing_to_do


def test_revert_without_ledger_commits_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        dirs, resolver = _fixture(tmpdir)
        result = AmendRunner(
            {"alpha": _set_type_module}, RunOptions(revert=True), resolver
        ).run()
        assert result.nothing_to_do
        assert read_json(Path(dirs["alpha"][0]) / "package.json") == {"version": "1.0.0"}


def test_max_workers_one_runs_sequentially():
    with tempfile.TemporaryDirectory() as tmpdir:
        dirs, resolver = _fixture(tmpdir)
        amenders = {"alpha": _set_type_module, "beta": _set_type_module}
        result = AmendRunner(amenders, RunOptions(max_workers=1), resolver).run()
        assert result.executed_entries == 3


def _failing_fixture(tmpdir, calls):
    dirs = {
        name: [str(write_package(Path(tmpdir) / name, {"version": "1.0.0"}))]
        for name in ("a", "b", "c")
    }

    def make_amender(name):
        def amend(pkg):
            calls.append(name)
            raise RuntimeError(f"{name} is broken")

        return amend

    amenders = {name: make_amender(name) for name in dirs}
    return amenders, lambda name: dirs[name]


def test_no_fail_fast_runs_every_session():
    calls = []
    with tempfile.TemporaryDirectory() as tmpdir:
        amenders, resolver = _failing_fixture(tmpdir, calls)
        options = RunOptions(fail_fast=False, max_workers=1)

        with pytest.raises(SessionError) as exc_info:
            AmendRunner(amenders, options, resolver).run()

    assert calls == ["a", "b", "c"]
    assert exc_info.value.package_name == "a"


def test_fail_fast_skips_remaining_sessions():
    calls = []
    with tempfile.TemporaryDirectory() as tmpdir:
        amenders, resolver = _failing_fixture(tmpdir, calls)
        options = RunOptions(fail_fast=True, max_workers=1)

        with pytest.raises(SessionError) as exc_info:
            AmendRunner(amenders, options, resolver).run()

    assert calls == ["a"]
    assert exc_info.value.package_name == "a"
