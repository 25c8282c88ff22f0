"""amendpkg CLI — the main entry point for patching and reverting packages."""

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from amendpkg import __version__
from amendpkg.errors import AmendError

console = Console()

CONFIG_ENVVAR = "AMENDPKG_CONFIG"


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log debug details")
@click.option("--quiet", "-q", is_flag=True, help="Only log warnings and errors")
def main(verbose: bool, quiet: bool):
    """amendpkg — patch package.json manifests, and revert the patches.

    Works around ESM/CommonJS incompatibilities in installed npm packages by
    amending their package.json files. Every change is recorded so that
    'amendpkg revert' restores the original files exactly.
    """
    from amendpkg.utils.log_setup import configure_logging

    configure_logging(verbose=verbose, quiet=quiet)


def _run_options(func):
    """Options shared by apply and revert."""
    options = [
        click.option(
            "--config",
            "config_path",
            envvar=CONFIG_ENVVAR,
            default=None,
            type=click.Path(dir_okay=False),
            help=f"Config file (.py or .yaml). Defaults to ${CONFIG_ENVVAR}.",
        ),
        click.option(
            "--builtin-config",
            default=None,
            help="Name of a built-in config (see 'amendpkg builtins').",
        ),
        click.option(
            "--package",
            "-p",
            "packages",
            multiple=True,
            help="Only this package (repeatable). Default: every configured package.",
        ),
        click.option("--dry-run", is_flag=True, help="Log what would change without changing anything"),
        click.option(
            "--fail-fast/--no-fail-fast",
            default=True,
            help="Stop planning other packages as soon as one fails",
        ),
        click.option("--jobs", "-j", default=None, type=click.IntRange(min=1), help="Parallel sessions"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


# ── Apply ────────────────────────────────────────────────────────────


@main.command()
@_run_options
def apply(config_path, builtin_config, packages, dry_run, fail_fast, jobs):
    """Patch the configured packages."""
    _run(config_path, builtin_config, packages, dry_run, fail_fast, jobs, revert=False)


# ── Revert ───────────────────────────────────────────────────────────


@main.command()
@_run_options
def revert(config_path, builtin_config, packages, dry_run, fail_fast, jobs):
    """Revert earlier patches of the configured packages."""
    _run(config_path, builtin_config, packages, dry_run, fail_fast, jobs, revert=True)


# ── Built-in configs ─────────────────────────────────────────────────


@main.command()
def builtins():
    """List the built-in config files."""
    from amendpkg.config import list_builtin_configs

    names = list_builtin_configs()
    if not names:
        console.print("[yellow]No built-in config files.[/]")
        return

    console.print("Built-in config file names:\n")
    for name in names:
        console.print(f"  [cyan]{name}[/]")
    console.print("\nUse --builtin-config <config_file_name> to use one of them.")


def _run(config_path, builtin_config, packages, dry_run, fail_fast, jobs, revert):
    from amendpkg.config import load_builtin_config, load_config
    from amendpkg.engine.driver import AmendRunner, RunOptions

    if bool(config_path) == bool(builtin_config):
        raise click.UsageError("Exactly one of --config or --builtin-config must be specified.")

    try:
        config = load_builtin_config(builtin_config) if builtin_config else load_config(config_path)
        options = RunOptions(
            packages=list(packages),
            revert=revert,
            dry_run=dry_run,
            fail_fast=fail_fast,
            max_workers=jobs,
        )
        result = AmendRunner(config.amenders, options).run()
    except AmendError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        if e.__cause__ is not None:
            cause = e.__cause__
            console.print(f"  [red]caused by[/] {type(cause).__name__}: {escape(str(cause))}")
        raise SystemExit(1)

    if not result.targets:
        console.print("[yellow]No installed package directories found.[/]")
        return

    table = Table()
    table.add_column("Package", style="cyan")
    table.add_column("Directory")
    table.add_column("Files", justify="right", style="green")
    for target in result.targets:
        table.add_row(
            escape(target.package_name), escape(target.package_dir), str(target.planned_entries)
        )
    console.print(table)

    # Directories without a ledger plan nothing on revert.
    changed = [target for target in result.targets if target.planned_entries]
    if not changed:
        console.print(f"[yellow]Nothing to {'revert' if revert else 'patch'}.[/]")
        return

    verb = "Reverted" if revert else "Patched"
    if dry_run:
        verb = f"Would have {verb.lower()}"
    count = len(changed)
    noun = "directory" if count == 1 else "directories"
    summary = f"{verb} {count} package {noun}"
    if dry_run:
        summary += " (dry run)"
    console.print(f"[green]v[/] {summary}")


if __name__ == "__main__":
    main()
