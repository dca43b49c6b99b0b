"""Release pipeline controller.

Steps run strictly in order:

    validating -> preflight -> (dry_run_report | confirming)
               -> mutating -> verifying -> publishing

Each step either advances or finishes with a terminal ``PipelineOutcome``.
Dry-run stops after pre-flight with a report of what a live run would do;
it never prompts and never writes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Literal, TypeAlias

from nbrelease.core.config import Config
from nbrelease.core.result import Err
from nbrelease.git.repository import Repository
from nbrelease.output.console import ConsoleProtocol, Style
from nbrelease.release.descriptors import apply_version, descriptor_files, plan_version
from nbrelease.release.errors import ReleaseError
from nbrelease.release.fsm import StepOutcome, advance, finish, run_state_machine
from nbrelease.release.inspector import assert_preconditions, check_tools, inspect_repository
from nbrelease.release.model import (
    AbortedByPrecondition,
    AbortedByUser,
    Completed,
    DryRunReport,
    FailedAtStage,
    PipelineOutcome,
    ReleaseOptions,
    RepositoryState,
    VerificationStage,
)
from nbrelease.release.publisher import Clock, publish
from nbrelease.release.verification import run_verification, skipped_stages
from nbrelease.release.version import Version, marker_name, numeric_encoding, parse_version

PipelineStep = Literal[
    "validating",
    "preflight",
    "dry_run_report",
    "confirming",
    "mutating",
    "verifying",
    "publishing",
]


@dataclass(frozen=True, slots=True)
class ReleaseSession:
    step: PipelineStep
    raw_version: str
    version: Version | None = None
    state: RepositoryState | None = None
    findings: tuple[ReleaseError, ...] = ()
    problems: tuple[ReleaseError, ...] = ()
    changed: tuple[Path, ...] = ()
    skipped: tuple[VerificationStage, ...] = ()


_Step: TypeAlias = StepOutcome[ReleaseSession, PipelineOutcome]


class ReleasePipeline:
    """Runs one release invocation against a project checkout."""

    def __init__(
        self,
        *,
        project_root: Path,
        config: Config,
        options: ReleaseOptions,
        console: ConsoleProtocol,
        clock: Clock = datetime.now,
    ) -> None:
        self.project_root = project_root
        self.config = config
        self.options = options
        self.console = console
        self.clock = clock
        self.repo = Repository(project_root, network_timeout=config.git.network_timeout)
        self.files = descriptor_files(project_root=project_root, config=config)

    def run(self, raw_version: str) -> PipelineOutcome:
        return run_state_machine(
            initial_state=ReleaseSession(step="validating", raw_version=raw_version),
            get_step=lambda s: s.step,
            handlers={
                "validating": self._validating,
                "preflight": self._preflight,
                "dry_run_report": self._dry_run_report,
                "confirming": self._confirming,
                "mutating": self._mutating,
                "verifying": self._verifying,
                "publishing": self._publishing,
            },
        )

    @property
    def prerelease(self) -> bool:
        return self.options.prerelease

    def _validating(self, s: ReleaseSession) -> _Step:
        self.console.header(f"Release {s.raw_version}")
        parsed = parse_version(s.raw_version)
        if isinstance(parsed, Err):
            return finish(FailedAtStage(stage="validate", cause=parsed.error))

        version = parsed.value
        self.console.print(f"tag: {marker_name(version)}")
        self.console.print(f"versionCode: {numeric_encoding(version)}")
        if version.is_prerelease and not self.options.prerelease:
            self.console.warning(
                f"{version.raw} has a pre-release label but --prerelease was not given"
            )
        if self.options.dry_run:
            self.console.warning("dry run: no changes will be made")
        return advance(replace(s, step="preflight", version=version))

    def _preflight(self, s: ReleaseSession) -> _Step:
        assert s.version is not None
        self.console.header("Pre-flight checks")

        inspected = inspect_repository(self.repo, s.version)
        if isinstance(inspected, Err):
            return finish(FailedAtStage(stage="preflight", cause=inspected.error))
        state = inspected.value

        self.console.print(f"branch: {state.branch}", Style.DIM)
        if state.is_clean:
            self.console.success("working tree is clean")

        missing_tools = check_tools(
            project_root=self.project_root, config=self.config, options=self.options
        )
        checked = assert_preconditions(state, self.config)
        findings = checked.error if isinstance(checked, Err) else checked.value

        if self.options.dry_run:
            return advance(
                replace(
                    s,
                    step="dry_run_report",
                    state=state,
                    findings=findings,
                    problems=missing_tools,
                )
            )

        if isinstance(checked, Err):
            return finish(AbortedByPrecondition(failures=findings))

        if missing_tools:
            for problem in missing_tools[1:]:
                self.console.error(problem.message)
            return finish(FailedAtStage(stage="preflight", cause=missing_tools[0]))

        return advance(replace(s, step="confirming", state=state, findings=findings))

    def _dry_run_report(self, s: ReleaseSession) -> _Step:
        assert s.version is not None and s.state is not None
        problems = list(s.problems)
        edits = ()
        planned = plan_version(files=self.files, version=s.version)
        if isinstance(planned, Err):
            problems.append(planned.error)
        else:
            edits = tuple(planned.value)

        return finish(
            DryRunReport(
                version=s.version,
                marker_name=marker_name(s.version),
                state=s.state,
                findings=s.findings,
                problems=tuple(problems),
                edits=edits,
                skipped=skipped_stages(self.options),
                prerelease=self.prerelease,
            )
        )

    def _confirming(self, s: ReleaseSession) -> _Step:
        assert s.version is not None and s.state is not None
        for finding in s.findings:
            if self.options.force:
                self.console.warning(f"{finding.message} (accepted: --force)")
                continue
            self.console.warning(finding.message)
            if finding.hint:
                self.console.print(finding.hint, Style.DIM)
            if not self.console.confirm("Continue anyway?"):
                return finish(AbortedByUser(reason=f"declined: {finding.message}"))

        if not self.options.force:
            self._print_summary(s.version, s.state)
            if not self.console.confirm("Continue with release?"):
                return finish(AbortedByUser(reason="release cancelled"))

        return advance(replace(s, step="mutating"))

    def _mutating(self, s: ReleaseSession) -> _Step:
        assert s.version is not None
        self.console.header("Updating descriptors")
        applied = apply_version(files=self.files, version=s.version)
        if isinstance(applied, Err):
            return finish(FailedAtStage(stage="mutate", cause=applied.error))

        for path in applied.value:
            self.console.success(f"updated {path.relative_to(self.project_root).as_posix()}")
        if not applied.value:
            self.console.info(f"descriptors already at {s.version.raw}")
        return advance(replace(s, step="verifying", changed=tuple(applied.value)))

    def _verifying(self, s: ReleaseSession) -> _Step:
        self.console.header("Verification")
        verified = run_verification(
            project_root=self.project_root,
            config=self.config,
            options=self.options,
            console=self.console,
        )
        if isinstance(verified, Err):
            stage = "tests" if verified.error.kind == "tests_failed" else "build_check"
            return finish(FailedAtStage(stage=stage, cause=verified.error))
        return advance(replace(s, step="publishing", skipped=verified.value))

    def _publishing(self, s: ReleaseSession) -> _Step:
        assert s.version is not None and s.state is not None
        self.console.header("Publishing")
        published = publish(
            repo=self.repo,
            version=s.version,
            state=s.state,
            descriptor_paths=self.files.all(),
            changed=s.changed,
            skipped=s.skipped,
            prerelease=self.prerelease,
            config=self.config,
            console=self.console,
            clock=self.clock,
        )
        if isinstance(published, Err):
            return finish(FailedAtStage(stage="publish", cause=published.error))

        return finish(
            Completed(
                version=s.version,
                marker=published.value,
                branch=s.state.branch,
                skipped=s.skipped,
                prerelease=self.prerelease,
            )
        )

    def _print_summary(self, version: Version, state: RepositoryState) -> None:
        self.console.header("Release summary")
        self.console.print(f"version:      {version.raw}")
        self.console.print(f"tag:          {marker_name(version)}")
        self.console.print(f"versionCode:  {numeric_encoding(version)}")
        self.console.print(f"branch:       {state.branch}")
        self.console.print(f"remote:       {self.config.git.remote}")
        self.console.print(f"skip tests:   {str(self.options.skip_tests).lower()}")
        self.console.print(f"skip build:   {str(self.options.skip_build_check).lower()}")
        self.console.print(f"pre-release:  {'yes' if self.prerelease else 'no'}")


def run_release(
    raw_version: str,
    *,
    project_root: Path,
    config: Config,
    options: ReleaseOptions,
    console: ConsoleProtocol,
    clock: Clock = datetime.now,
) -> PipelineOutcome:
    pipeline = ReleasePipeline(
        project_root=project_root,
        config=config,
        options=options,
        console=console,
        clock=clock,
    )
    return pipeline.run(raw_version)
