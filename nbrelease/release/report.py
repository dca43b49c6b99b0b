from __future__ import annotations

import re

from nbrelease.core.config import Config
from nbrelease.output.console import ConsoleProtocol, Style
from nbrelease.release.errors import ReleaseError
from nbrelease.release.model import (
    AbortedByPrecondition,
    AbortedByUser,
    Completed,
    DryRunReport,
    FailedAtStage,
    PipelineOutcome,
    Stage,
)
from nbrelease.release.publisher import verification_summary

_GITHUB_RE = re.compile(r"github\.com[:/]+(?P<slug>[^/\s]+/[^/\s]+?)(?:\.git)?/?$")

_STAGE_LABELS: dict[Stage, str] = {
    "validate": "version validation",
    "preflight": "pre-flight checks",
    "mutate": "descriptor update",
    "tests": "tests",
    "build_check": "build check",
    "publish": "publish",
}


def github_slug(remote_url: str | None) -> str | None:
    """Return ``owner/name`` for a GitHub remote URL, else None."""
    if not remote_url:
        return None
    m = _GITHUB_RE.search(remote_url.strip())
    return m.group("slug") if m else None


def print_outcome(
    outcome: PipelineOutcome,
    *,
    console: ConsoleProtocol,
    config: Config,
    remote_url: str | None = None,
) -> None:
    match outcome:
        case Completed():
            _print_completed(outcome, console=console, config=config, remote_url=remote_url)
        case DryRunReport():
            _print_dry_run(outcome, console=console, config=config)
        case AbortedByUser(reason=reason):
            console.newline()
            console.error(f"aborted by user ({reason})")
        case AbortedByPrecondition(failures=failures):
            console.newline()
            for failure in failures:
                _print_error(failure, console=console)
            console.error("release blocked by pre-flight checks; nothing was changed")
        case FailedAtStage(stage=stage, cause=cause):
            console.newline()
            _print_error(cause, console=console)
            console.error(f"release failed at {_STAGE_LABELS[stage]}")
            if stage in ("tests", "build_check"):
                console.print(
                    "Descriptor edits are still in the working tree (uncommitted).",
                    Style.DIM,
                )


def _print_error(error: ReleaseError, *, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def _print_completed(
    outcome: Completed,
    *,
    console: ConsoleProtocol,
    config: Config,
    remote_url: str | None,
) -> None:
    marker = outcome.marker
    console.newline()
    console.success(f"release {outcome.version.raw} completed")
    console.print(f"tag: {marker.name} -> {marker.short_commit}")
    console.print(f"branch: {outcome.branch} (pushed to {config.git.remote})")
    console.print(f"pre-release: {'yes' if outcome.prerelease else 'no'}")
    console.print(f"verification: {verification_summary(outcome.skipped)}")
    if outcome.skipped:
        console.warning("this release was published with skipped verification")

    console.header("Next steps")
    slug = github_slug(remote_url)
    if slug is not None:
        console.print(f"1. Monitor the build: https://github.com/{slug}/actions")
        console.print(
            f"2. Download artifacts: https://github.com/{slug}/releases/tag/{marker.name}"
        )
    else:
        console.print("1. Monitor the CI build triggered by the tag")
        console.print("2. Download the artifacts once the build completes")
    artifacts = config.artifacts.render(app=config.app_name, version=outcome.version.raw)
    if artifacts:
        console.print(f"3. Test {', '.join(artifacts)}")


def _print_dry_run(report: DryRunReport, *, console: ConsoleProtocol, config: Config) -> None:
    console.header("Dry run")
    console.print(f"version: {report.version.raw}")
    console.print(f"tag: {report.marker_name}")
    console.print(f"branch: {report.state.branch}")
    console.print(f"pre-release: {'yes' if report.prerelease else 'no'}")

    if report.findings or report.problems:
        console.header("Pre-flight findings")
    for finding in report.findings:
        if finding.overridable:
            console.warning(f"{finding.message} (would ask for confirmation)")
        else:
            console.error(f"{finding.message} (would abort)")
        if finding.hint:
            console.print(f"hint: {finding.hint}", Style.DIM)
    for problem in report.problems:
        _print_error(problem, console=console)

    console.header("Would do")
    for edit in report.edits:
        rel = edit.path.relative_to(report.state.root).as_posix()
        for change in edit.changes:
            if change.is_noop:
                console.print(f"{rel}: {change.field} already {change.after}", Style.DIM)
            else:
                console.info(f"update {rel}: {change.field} {change.before} -> {change.after}")

    for stage, label in (("tests", "run tests"), ("build_check", "verify build")):
        if stage in report.skipped:
            console.print(f"skip: {label}", Style.DIM)
        else:
            console.info(label)

    console.info("commit descriptor changes")
    console.info(f"create tag {report.marker_name}")
    console.info(f"push {report.state.branch} and {report.marker_name} to {config.git.remote}")

    console.newline()
    if report.blocked:
        console.warning("dry run completed: a live run would stop at the findings above")
    else:
        console.success("dry run completed; nothing was changed")
