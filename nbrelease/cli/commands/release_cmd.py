from __future__ import annotations

from pathlib import Path

import typer

from nbrelease import __version__
from nbrelease.cli.context import build_context
from nbrelease.git.repository import Repository
from nbrelease.release.model import ReleaseOptions, outcome_exit_code
from nbrelease.release.pipeline import run_release
from nbrelease.release.report import print_outcome


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def release(
    version: str = typer.Argument(..., help="Version to release, e.g. 1.0.0 or 2.0.0-beta"),
    skip_tests: bool = typer.Option(False, "--skip-tests", help="Skip running tests"),
    skip_build: bool = typer.Option(False, "--skip-build", help="Skip build verification"),
    prerelease: bool = typer.Option(False, "--prerelease", help="Mark as pre-release"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would happen without making changes"
    ),
    force: bool = typer.Option(False, "--force", help="Skip confirmations"),
    project: Path | None = typer.Option(
        None, "--project", help="Project root (overrides auto detection)"
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Release config file (default: <project>/release.toml)"
    ),
    show_version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Bump descriptor versions, verify, then commit, tag and push a release."""
    del show_version
    ctx = build_context(project=project, config_path=config)
    options = ReleaseOptions(
        skip_tests=skip_tests,
        skip_build_check=skip_build,
        prerelease=prerelease,
        dry_run=dry_run,
        force=force,
    )

    outcome = run_release(
        version,
        project_root=ctx.project_root,
        config=ctx.config,
        options=options,
        console=ctx.console,
    )

    remote_url = Repository(ctx.project_root).remote_url(ctx.config.git.remote)
    print_outcome(outcome, console=ctx.console, config=ctx.config, remote_url=remote_url)
    raise typer.Exit(code=int(outcome_exit_code(outcome)))
