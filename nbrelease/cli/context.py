from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from nbrelease.core.config import Config, load_project_config
from nbrelease.core.errors import ErrorCode
from nbrelease.core.result import Err
from nbrelease.output.console import ConsoleProtocol, RichConsole

PROJECT_ROOT_ENV = "NBRELEASE_PROJECT_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    project_root: Path
    config: Config
    console: ConsoleProtocol


def detect_project_root(explicit: Path | None = None) -> Path:
    """Resolve the project checkout to release.

    Order: --project, $NBRELEASE_PROJECT_ROOT, nearest ancestor of the cwd
    holding ``.git``, then the cwd itself.
    """
    if explicit is not None:
        return explicit.expanduser().resolve()

    env = os.environ.get(PROJECT_ROOT_ENV)
    if env:
        return Path(env).expanduser().resolve()

    cwd = Path.cwd().resolve()
    for parent in (cwd, *cwd.parents):
        if (parent / ".git").exists():
            return parent
    return cwd


def build_context(*, project: Path | None = None, config_path: Path | None = None) -> CLIContext:
    root = detect_project_root(project)
    if not root.is_dir():
        typer.echo(f"error: project root is not a directory: {root}", err=True)
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    config_result = load_project_config(root, config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.FAILURE))

    return CLIContext(project_root=root, config=config_result.value, console=RichConsole())
