"""Pre-flight checks: tools on PATH, repository snapshot, release preconditions.

A dirty tree or a non-release branch is the operator's call. An existing
marker for the requested version is never accepted.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from nbrelease.core.config import Config
from nbrelease.core.result import Err, Ok, Result
from nbrelease.git.repository import Repository
from nbrelease.release.errors import ReleaseError
from nbrelease.release.model import ReleaseOptions, RepositoryState
from nbrelease.release.version import Version, marker_name

_MAX_LISTED_PATHS = 10


def check_tools(
    *, project_root: Path, config: Config, options: ReleaseOptions
) -> tuple[ReleaseError, ...]:
    """Return one error per required executable that cannot be found."""
    required: list[tuple[str, Path]] = [("git", project_root)]
    if not options.skip_tests:
        required.append((config.verify.test_command[0], project_root / config.verify.test_cwd))
    if not options.skip_build_check:
        required.append((config.verify.build_command[0], project_root / config.verify.build_cwd))

    missing: list[ReleaseError] = []
    for tool, cwd in required:
        if _tool_available(tool, cwd):
            continue
        missing.append(
            ReleaseError(
                kind="tool_missing",
                message=f"{tool}: not found",
                hint=_tool_hint(tool),
            )
        )
    return tuple(missing)


def _tool_available(tool: str, cwd: Path) -> bool:
    # Paths like ./gradlew resolve against the directory the command runs in.
    if os.sep in tool or "/" in tool:
        candidate = (cwd / tool).resolve()
        return candidate.is_file() and os.access(candidate, os.X_OK)
    return shutil.which(tool) is not None


def _tool_hint(tool: str) -> str:
    if tool == "git":
        return "Install git and make sure it is on PATH."
    return "Install it, or skip the stage that needs it (--skip-tests / --skip-build)."


def inspect_repository(repo: Repository, version: Version) -> Result[RepositoryState, ReleaseError]:
    """Read branch, working tree and marker existence in one pass."""
    if not repo.exists():
        return Err(
            ReleaseError(
                kind="not_a_repository",
                message=f"not a git repository: {repo.path}",
                hint="Run from the project checkout or pass --project.",
            )
        )

    status = repo.status()
    if isinstance(status, Err):
        return Err(ReleaseError(kind="git_failed", message=status.error.message))

    branch = status.value.branch
    if branch is None:
        return Err(
            ReleaseError(
                kind="detached_head",
                message="HEAD is detached",
                hint="Check out the branch to release from.",
            )
        )

    name = marker_name(version)
    exists = repo.tag_exists(name)
    if isinstance(exists, Err):
        return Err(ReleaseError(kind="git_failed", message=exists.error.message))

    return Ok(
        RepositoryState(
            root=repo.path,
            branch=branch,
            dirty_paths=status.value.paths,
            marker_name=name,
            marker_exists=exists.value,
        )
    )


def assert_preconditions(
    state: RepositoryState, config: Config
) -> Result[tuple[ReleaseError, ...], tuple[ReleaseError, ...]]:
    """Evaluate release preconditions.

    Returns:
        Ok(warnings) when only overridable findings (possibly none) exist,
        Err(findings) when at least one finding is fatal.
    """
    findings: list[ReleaseError] = []

    if not state.is_clean:
        listed = list(state.dirty_paths[:_MAX_LISTED_PATHS])
        extra = len(state.dirty_paths) - len(listed)
        if extra > 0:
            listed.append(f"... and {extra} more")
        findings.append(
            ReleaseError(
                kind="dirty_tree",
                message=f"working tree has {len(state.dirty_paths)} uncommitted change(s)",
                hint=", ".join(listed),
            )
        )

    if state.branch not in config.git.release_branches:
        findings.append(
            ReleaseError(
                kind="non_canonical_branch",
                message=f"not on a release branch: {state.branch}",
                hint=f"Release branches: {', '.join(config.git.release_branches)}",
            )
        )

    if state.marker_exists:
        findings.append(
            ReleaseError(
                kind="marker_exists",
                message=f"tag {state.marker_name} already exists",
                hint=(
                    f"Published releases are never overwritten. To discard it manually: "
                    f"git tag -d {state.marker_name} && "
                    f"git push {config.git.remote} --delete {state.marker_name}"
                ),
            )
        )

    if any(not f.overridable for f in findings):
        return Err(tuple(findings))
    return Ok(tuple(findings))
