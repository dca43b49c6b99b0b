"""End-to-end release runs against a real checkout and a bare remote."""

from __future__ import annotations

import json
from datetime import datetime

from nbrelease.core.config import Config, DescriptorsConfig
from nbrelease.output.console import MockConsole
from nbrelease.release.model import (
    AbortedByPrecondition,
    AbortedByUser,
    Completed,
    DryRunReport,
    FailedAtStage,
    PipelineOutcome,
    ReleaseOptions,
    outcome_exit_code,
)
from nbrelease.release.pipeline import run_release
from nbrelease.test._helpers import FAIL_COMMAND, Project, requires_git

pytestmark = requires_git

FIXED_NOW = datetime(2026, 10, 19, 9, 0, 0)


def _release(
    project: Project,
    raw: str,
    *,
    options: ReleaseOptions | None = None,
    console: MockConsole | None = None,
    config: Config | None = None,
) -> PipelineOutcome:
    return run_release(
        raw,
        project_root=project.root,
        config=config or project.config,
        options=options or ReleaseOptions(),
        console=console or MockConsole(default_answer=True),
        clock=lambda: FIXED_NOW,
    )


def _snapshot(project: Project) -> tuple[object, ...]:
    return (
        project.manifest.read_bytes(),
        project.gradle.read_bytes(),
        project.git("rev-parse", "HEAD"),
        project.git("tag", "--list"),
        project.git("status", "--porcelain"),
        project.remote_git("for-each-ref"),
    )


class TestHappyPath:
    def test_release_completes(self, project: Project) -> None:
        outcome = _release(project, "2.1.0")

        assert isinstance(outcome, Completed)
        assert outcome_exit_code(outcome) == 0
        assert outcome.marker.name == "v2.1.0"
        assert outcome.skipped == ()

        manifest = json.loads(project.manifest.read_text(encoding="utf-8"))
        gradle = project.gradle.read_text(encoding="utf-8")
        assert manifest["version"] == "2.1.0"
        assert "versionCode 20100" in gradle
        assert 'versionName "2.1.0"' in gradle

        head = project.git("rev-parse", "HEAD")
        assert outcome.marker.commit == head
        assert project.git("status", "--porcelain") == ""
        assert project.remote_git("rev-parse", "main") == head
        assert project.remote_git("rev-parse", "v2.1.0^{commit}") == head

    def test_interactive_run_asks_once_on_clean_tree(self, project: Project) -> None:
        console = MockConsole(answers=[True])

        outcome = _release(project, "2.1.0", console=console)

        assert isinstance(outcome, Completed)
        assert console.questions == ["Continue with release?"]

    def test_force_never_prompts(self, project: Project) -> None:
        console = MockConsole()

        outcome = _release(project, "2.1.0", options=ReleaseOptions(force=True), console=console)

        assert isinstance(outcome, Completed)
        assert console.questions == []

    def test_prerelease(self, project: Project) -> None:
        outcome = _release(
            project,
            "2.0.0-beta",
            options=ReleaseOptions(prerelease=True, skip_build_check=True, force=True),
        )

        assert isinstance(outcome, Completed)
        assert outcome.prerelease
        assert outcome.skipped == ("build_check",)
        assert "versionCode 20000" in project.gradle.read_text(encoding="utf-8")
        annotation = project.git("tag", "-l", "--format=%(contents)", "v2.0.0-beta")
        assert "Pre-release: yes" in annotation
        assert "build check SKIPPED" in annotation

    def test_label_without_prerelease_flag_warns(self, project: Project) -> None:
        console = MockConsole(default_answer=True)

        _release(project, "2.0.0-rc1", console=console)

        assert console.find("--prerelease was not given")

    def test_feature_branch_accepted_with_force(self, project: Project) -> None:
        project.git("checkout", "-b", "hotfix")
        console = MockConsole()

        outcome = _release(project, "2.1.1", options=ReleaseOptions(force=True), console=console)

        assert isinstance(outcome, Completed)
        assert outcome.branch == "hotfix"
        assert console.find("(accepted: --force)")
        assert project.remote_git("rev-parse", "hotfix") == project.git("rev-parse", "HEAD")

    def test_non_ascii_build_descriptor_path(self, project: Project) -> None:
        project.git("mv", "android/app/build.gradle", "android/app/bé.gradle")
        project.git("commit", "-m", "rename build descriptor")
        config = Config(
            descriptors=DescriptorsConfig(build_descriptor="android/app/bé.gradle"),
            verify=project.config.verify,
        )
        before = project.git("rev-parse", "HEAD")

        outcome = _release(project, "2.1.0", options=ReleaseOptions(force=True), config=config)

        assert isinstance(outcome, Completed)
        head = project.git("rev-parse", "HEAD")
        assert head != before
        assert project.git("rev-parse", "v2.1.0^{commit}") == head
        assert project.git("status", "--porcelain") == ""


class TestAborts:
    def test_dirty_tree_declined(self, project: Project) -> None:
        (project.root / "notes.txt").write_text("wip\n", encoding="utf-8")
        before = _snapshot(project)
        console = MockConsole(answers=[False])

        outcome = _release(project, "2.1.0", console=console)

        assert isinstance(outcome, AbortedByUser)
        assert outcome.reason.startswith("declined: working tree has 1 uncommitted")
        assert outcome_exit_code(outcome) == 1
        assert console.questions == ["Continue anyway?"]
        assert _snapshot(project) == before

    def test_final_confirmation_declined(self, project: Project) -> None:
        before = _snapshot(project)

        outcome = _release(project, "2.1.0", console=MockConsole(answers=[False]))

        assert outcome == AbortedByUser(reason="release cancelled")
        assert _snapshot(project) == before

    def test_existing_tag_blocks_even_with_overrides(self, project: Project) -> None:
        project.git("tag", "-a", "v2.1.0", "-m", "Release v2.1.0")
        before = _snapshot(project)
        options = ReleaseOptions(force=True, skip_tests=True, skip_build_check=True)

        outcome = _release(project, "2.1.0", options=options)

        assert isinstance(outcome, AbortedByPrecondition)
        assert [f.kind for f in outcome.failures] == ["marker_exists"]
        assert _snapshot(project) == before

    def test_existing_tag_reported_before_missing_tools(self, project: Project) -> None:
        project.git("tag", "-a", "v2.1.0", "-m", "Release v2.1.0")
        config = project.with_verify(test_command=("no-such-runner-xyz",))

        outcome = _release(project, "2.1.0", config=config)

        assert isinstance(outcome, AbortedByPrecondition)

    def test_missing_tool(self, project: Project) -> None:
        before = _snapshot(project)
        config = project.with_verify(test_command=("no-such-runner-xyz", "test"))

        outcome = _release(project, "2.1.0", config=config)

        assert isinstance(outcome, FailedAtStage)
        assert outcome.stage == "preflight"
        assert outcome.cause.kind == "tool_missing"
        assert _snapshot(project) == before

    def test_invalid_version(self, project: Project) -> None:
        before = _snapshot(project)

        outcome = _release(project, "v1.0.0")

        assert isinstance(outcome, FailedAtStage)
        assert outcome.stage == "validate"
        assert outcome.cause.kind == "invalid_version"
        assert "MAJOR.MINOR.PATCH[-label]" in outcome.cause.message
        assert _snapshot(project) == before


class TestVerificationFailures:
    def test_build_check_failure_leaves_edits_uncommitted(self, project: Project) -> None:
        head = project.git("rev-parse", "HEAD")
        config = project.with_verify(build_command=FAIL_COMMAND)

        outcome = _release(project, "2.1.0", options=ReleaseOptions(force=True), config=config)

        assert isinstance(outcome, FailedAtStage)
        assert outcome.stage == "build_check"
        assert outcome_exit_code(outcome) == 1
        assert project.git("rev-parse", "HEAD") == head
        assert project.git("tag", "--list") == ""
        assert set(project.git("status", "--porcelain").splitlines()) == {
            " M android/app/build.gradle",
            " M package.json",
        }
        assert project.remote_git("tag", "--list") == ""

    def test_tests_failure_skips_build(self, project: Project) -> None:
        config = project.with_verify(test_command=FAIL_COMMAND, build_command=FAIL_COMMAND)

        outcome = _release(project, "2.1.0", options=ReleaseOptions(force=True), config=config)

        assert isinstance(outcome, FailedAtStage)
        assert outcome.stage == "tests"

    def test_rerun_after_fix_completes(self, project: Project) -> None:
        failing = project.with_verify(build_command=FAIL_COMMAND)
        first = _release(project, "2.1.0", options=ReleaseOptions(force=True), config=failing)
        assert isinstance(first, FailedAtStage)

        # The leftover edits show up as a dirty tree the operator accepts.
        console = MockConsole(answers=[True, True])
        second = _release(project, "2.1.0", console=console)

        assert isinstance(second, Completed)
        assert console.questions == ["Continue anyway?", "Continue with release?"]
        assert project.git("status", "--porcelain") == ""
        assert project.git("log", "-1", "--format=%s") == "chore: bump version to 2.1.0"


class TestDryRun:
    def test_changes_nothing(self, project: Project) -> None:
        before = _snapshot(project)
        console = MockConsole()

        outcome = _release(project, "2.1.0", options=ReleaseOptions(dry_run=True), console=console)

        assert isinstance(outcome, DryRunReport)
        assert outcome_exit_code(outcome) == 0
        assert not outcome.blocked
        assert console.questions == []
        assert _snapshot(project) == before

        changes = {(c.field, c.before, c.after) for e in outcome.edits for c in e.changes}
        assert changes == {
            ("version", "0.9.0", "2.1.0"),
            ("versionCode", "900", "20100"),
            ("versionName", "0.9.0", "2.1.0"),
        }

    def test_reports_every_finding(self, project: Project) -> None:
        project.git("checkout", "-b", "wip")
        project.git("tag", "-a", "v2.1.0", "-m", "Release v2.1.0")
        (project.root / "notes.txt").write_text("wip\n", encoding="utf-8")
        before = _snapshot(project)

        outcome = _release(project, "2.1.0", options=ReleaseOptions(dry_run=True))

        assert isinstance(outcome, DryRunReport)
        assert outcome_exit_code(outcome) == 0
        assert outcome.blocked
        assert [f.kind for f in outcome.findings] == [
            "dirty_tree",
            "non_canonical_branch",
            "marker_exists",
        ]
        assert _snapshot(project) == before

    def test_reports_unreadable_descriptor(self, project: Project) -> None:
        project.gradle.write_text("android {}\n", encoding="utf-8")
        project.git("commit", "-am", "drop version fields")

        outcome = _release(project, "2.1.0", options=ReleaseOptions(dry_run=True))

        assert isinstance(outcome, DryRunReport)
        assert outcome.blocked
        assert [p.kind for p in outcome.problems] == ["invalid_descriptor"]

    def test_reports_undecodable_manifest(self, project: Project) -> None:
        project.manifest.write_bytes(b'{"version": "0.9.0", "name": "\xff"}\n')
        project.git("commit", "-am", "corrupt manifest")
        before = _snapshot(project)

        outcome = _release(project, "2.1.0", options=ReleaseOptions(dry_run=True))

        assert isinstance(outcome, DryRunReport)
        assert [p.kind for p in outcome.problems] == ["invalid_descriptor"]
        assert _snapshot(project) == before


class TestMutateFailures:
    def test_undecodable_manifest(self, project: Project) -> None:
        project.manifest.write_bytes(b'{"version": "0.9.0", "name": "\xff"}\n')
        project.git("commit", "-am", "corrupt manifest")

        outcome = _release(project, "2.1.0", options=ReleaseOptions(force=True))

        assert isinstance(outcome, FailedAtStage)
        assert outcome.stage == "mutate"
        assert outcome.cause.kind == "invalid_descriptor"
        assert project.git("tag", "--list") == ""
