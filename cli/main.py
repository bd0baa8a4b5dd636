"""CLI for inherit-cwd.

Usage:
    inherit-cwd [--dry-run] [--verbose] [--theme-dir PATH] [--enable-copilot]
                [--profile PATH] [--settings PATH] [--config PATH]
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from patcher.errors import PrerequisiteError

MIN_PYTHON = (3, 10)
DRY_RUN_PREFIX = "[dry-run] "


class DryRunFilter(logging.Filter):
    """Prefix every record so a dry run's log cannot be mistaken for real changes."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not str(record.msg).startswith(DRY_RUN_PREFIX):
            record.msg = DRY_RUN_PREFIX + str(record.msg)
        return True


def configure_logging(verbose: bool, dry_run: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)-7s %(message)s"))
    if dry_run:
        handler.addFilter(DryRunFilter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    return handler


def check_prerequisites(version_info: tuple[int, ...] = tuple(sys.version_info)) -> None:
    if tuple(version_info[:2]) < MIN_PYTHON:
        raise PrerequisiteError(
            f"Python {'.'.join(map(str, MIN_PYTHON))} or newer is required "
            f"(found {'.'.join(map(str, version_info[:3]))}). "
            "Install a current Python from https://www.python.org/downloads/ and re-run."
        )


def print_report(report) -> None:
    from rich.console import Console
    from rich.table import Table

    console = Console()
    styles = {"changed": "green", "unchanged": "dim", "skipped": "yellow", "error": "red"}

    table = Table(title="inherit-cwd" + (" (dry run)" if report.dry_run else ""))
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Detail", style="white")
    for step in report.steps:
        style = styles.get(step.status, "white")
        table.add_row(step.name, f"[{style}]{step.status}[/{style}]", step.detail)
    console.print(table)

    for record in report.backups:
        console.print(f"[dim]backup:[/dim] {record.original_path} -> {record.backup_path}")

    style = "yellow" if report.errors else "green"
    console.print(f"[{style}]{report.summary}[/{style}]")


@click.command("inherit-cwd")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing anything")
@click.option("--verbose", "-v", is_flag=True, help="Log detail lines")
@click.option(
    "--theme-dir",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Where built-in themes are copied before editing",
)
@click.option("--enable-copilot", is_flag=True, help="Add GitHub Copilot helper functions to the profile")
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="PowerShell profile to patch (default: $PROFILE location)",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Windows Terminal settings.json (default: search known install locations)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.inherit-cwd/config.yaml)",
)
def main(
    dry_run: bool,
    verbose: bool,
    theme_dir: Path | None,
    enable_copilot: bool,
    profile_path: Path | None,
    settings_path: Path | None,
    config_path: Path | None,
) -> None:
    """Make new Windows Terminal panes and tabs open in the current directory.

    Patches the PowerShell profile, its oh-my-posh theme and Windows Terminal's
    settings.json. Every modified file is backed up first.
    """
    try:
        check_prerequisites()
    except PrerequisiteError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    from config.loader import load_settings
    from patcher.orchestrator import run_patch

    # Unset flags fall through to the config file
    overrides = {
        "dry_run": dry_run or None,
        "verbose": verbose or None,
        "enable_copilot": enable_copilot or None,
        "theme_dir": theme_dir,
        "profile_path": profile_path,
        "settings_path": settings_path,
    }
    settings = load_settings(cli_overrides=overrides, config_path=config_path)

    configure_logging(settings.verbose, settings.dry_run)
    report = run_patch(settings)
    print_report(report)


if __name__ == "__main__":
    main()
