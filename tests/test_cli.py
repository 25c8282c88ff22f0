"""Tests for the click command line."""

import tempfile
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from amendpkg import __version__
from amendpkg.cli import main
from amendpkg.engine.ledger import LEDGER_KEY
from helpers import read_json, write_package

CONFIG = """
amenders:
  alpha:
    expect_version: ["1.0.0"]
    set: {type: module}
"""


def _project(tmpdir):
    config = Path(tmpdir) / "fix.yaml"
    config.write_text(CONFIG)
    package_dir = write_package(Path(tmpdir) / "alpha", {"name": "alpha", "version": "1.0.0"})
    return config, package_dir


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_builtins():
    result = CliRunner().invoke(main, ["builtins"])
    assert result.exit_code == 0
    assert "fix_echarts_esm.py" in result.output
    assert "fix_vue_echarts_esm.yaml" in result.output


def test_requires_exactly_one_config():
    runner = CliRunner()
    result = runner.invoke(main, ["apply"], env={"AMENDPKG_CONFIG": None})
    assert result.exit_code == 2
    assert "Exactly one of" in result.output

    result = runner.invoke(
        main, ["apply", "--config", "fix.yaml", "--builtin-config", "fix_echarts_esm.py"]
    )
    assert result.exit_code == 2


def test_apply_and_revert():
    with tempfile.TemporaryDirectory() as tmpdir:
        config, package_dir = _project(tmpdir)
        runner = CliRunner()
        with patch(
            "amendpkg.engine.driver.resolve_package_dirs", return_value=[str(package_dir)]
        ):
            result = runner.invoke(main, ["apply", "--config", str(config)])
            assert result.exit_code == 0, result.output
            assert "Patched 1 package directory" in result.output
            content = read_json(package_dir / "package.json")
            assert content["type"] == "module"
            assert LEDGER_KEY in content

            result = runner.invoke(main, ["revert", "--config", str(config)])
            assert result.exit_code == 0, result.output
            assert "Reverted 1 package directory" in result.output

        assert read_json(package_dir / "package.json") == {"name": "alpha", "version": "1.0.0"}


def test_config_from_environment():
    with tempfile.TemporaryDirectory() as tmpdir:
        config, package_dir = _project(tmpdir)
        with patch(
            "amendpkg.engine.driver.resolve_package_dirs", return_value=[str(package_dir)]
        ):
            result = CliRunner().invoke(
                main, ["apply", "--dry-run"], env={"AMENDPKG_CONFIG": str(config)}
            )
        assert result.exit_code == 0, result.output
        assert "dry run" in result.output
        assert read_json(package_dir / "package.json") == {"name": "alpha", "version": "1.0.0"}


def test_version_mismatch_exits_with_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        config, package_dir = _project(tmpdir)
        write_package(package_dir, {"name": "alpha", "version": "9.9.9"})
        with patch(
            "amendpkg.engine.driver.resolve_package_dirs", return_value=[str(package_dir)]
        ):
            result = CliRunner().invoke(main, ["apply", "--config", str(config)])
        assert result.exit_code == 1
        assert "Error" in result.output
        assert "VersionMismatchError" in result.output
        assert "type" not in read_json(package_dir / "package.json")


def test_unknown_package():
    with tempfile.TemporaryDirectory() as tmpdir:
        config, _ = _project(tmpdir)
        result = CliRunner().invoke(main, ["apply", "--config", str(config), "-p", "beta"])
        assert result.exit_code == 1
        assert "Unknown package: beta" in result.output


def test_no_installed_directories():
    with tempfile.TemporaryDirectory() as tmpdir:
        config, _ = _project(tmpdir)
        with patch("amendpkg.engine.driver.resolve_package_dirs", return_value=[]):
            result = CliRunner().invoke(main, ["apply", "--config", str(config)])
        assert result.exit_code == 0
        assert "No installed package directories found" in result.output


def test_revert_without_earlier_patch():
    with tempfile.TemporaryDirectory() as tmpdir:
        config, package_dir = _project(tmpdir)
        with patch(
            "amendpkg.engine.driver.resolve_package_dirs", return_value=[str(package_dir)]
        ):
            result = CliRunner().invoke(main, ["revert", "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "Nothing to revert" in result.output
        assert "Reverted" not in result.output
