"""Commit, tag and push a prepared release.

The four steps run in order and stop at the first failure. A failed push
after a successful commit and tag leaves local state the remote does not
have; that state is reported, never retried or rolled back.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from nbrelease.core.config import Config
from nbrelease.core.result import Err, Ok, Result
from nbrelease.git.repository import Repository
from nbrelease.output.console import ConsoleProtocol, Style
from nbrelease.release.errors import ReleaseError
from nbrelease.release.model import ReleaseMarker, RepositoryState, VerificationStage
from nbrelease.release.version import Version, marker_name

Clock = Callable[[], datetime]

_VERIFY_LABELS: dict[VerificationStage, str] = {
    "tests": "tests",
    "build_check": "build check",
}


def commit_message(*, version: Version, paths: list[str]) -> str:
    lines = [f"chore: bump version to {version.raw}", ""]
    lines.extend(f"- Updated {p}" for p in paths)
    lines.append(f"- Preparing for release {marker_name(version)}")
    return "\n".join(lines)


def verification_summary(skipped: tuple[VerificationStage, ...]) -> str:
    parts = [
        f"{label} {'SKIPPED' if stage in skipped else 'passed'}"
        for stage, label in _VERIFY_LABELS.items()
    ]
    return ", ".join(parts)


def marker_message(
    *,
    version: Version,
    branch: str,
    short_commit: str,
    timestamp: datetime,
    prerelease: bool,
    skipped: tuple[VerificationStage, ...],
    artifacts: tuple[str, ...],
) -> str:
    lines = [
        f"Release {marker_name(version)}",
        "",
        f"Version: {version.raw}",
        f"Date: {timestamp:%Y-%m-%d %H:%M:%S}",
        f"Branch: {branch}",
        f"Commit: {short_commit}",
        f"Pre-release: {'yes' if prerelease else 'no'}",
        f"Verification: {verification_summary(skipped)}",
    ]
    if artifacts:
        lines.extend(["", "This release includes:"])
        lines.extend(f"- {a}" for a in artifacts)
    return "\n".join(lines)


def _remote_hint(*, remote: str, branch: str, name: str, step: str) -> str:
    return (
        f"The local commit and tag {name} exist but the {step} did not reach {remote}. "
        f"Check the remote first (git ls-remote {remote} {branch} refs/tags/{name}), "
        f"then push what is missing by hand. Do not re-run the release: the tag "
        f"already exists locally."
    )


def publish(
    *,
    repo: Repository,
    version: Version,
    state: RepositoryState,
    descriptor_paths: list[Path],
    changed: tuple[Path, ...],
    skipped: tuple[VerificationStage, ...],
    prerelease: bool,
    config: Config,
    console: ConsoleProtocol,
    clock: Clock = datetime.now,
) -> Result[ReleaseMarker, ReleaseError]:
    name = marker_name(version)
    remote = config.git.remote

    # 1. commit
    pending = repo.pending_paths(descriptor_paths)
    if isinstance(pending, Err):
        return Err(ReleaseError(kind="commit_failed", message=pending.error.message))

    unseen = [p for p in changed if p not in pending.value]
    if unseen:
        listed = ", ".join(p.relative_to(repo.path).as_posix() for p in unseen)
        return Err(
            ReleaseError(
                kind="commit_failed",
                message=f"git does not report the edited descriptors as modified: {listed}",
                hint="Nothing was committed or tagged. Check the paths in release.toml.",
            )
        )

    if pending.value:
        rels = [p.relative_to(repo.path).as_posix() for p in pending.value]
        message = commit_message(version=version, paths=rels)
        console.print(f"git add -- {' '.join(rels)}", Style.DIM)
        added = repo.add(pending.value)
        if isinstance(added, Err):
            return Err(
                ReleaseError(
                    kind="commit_failed",
                    message="git add failed",
                    hint=added.error.message,
                )
            )

        console.print(f"git commit -m {message.splitlines()[0]!r} -- {' '.join(rels)}", Style.DIM)
        committed = repo.commit(message, pending.value)
        if isinstance(committed, Err):
            return Err(
                ReleaseError(
                    kind="commit_failed",
                    message="git commit failed",
                    hint=committed.error.message
                    or "Configure git user.name/user.email, then retry.",
                )
            )
        console.success(f"committed {len(rels)} descriptor file(s)")
    else:
        console.info("descriptors already committed at this version; tagging HEAD")

    # 2. tag
    exists = repo.tag_exists(name)
    if isinstance(exists, Err):
        return Err(ReleaseError(kind="tag_failed", message=exists.error.message))
    if exists.value:
        return Err(
            ReleaseError(
                kind="marker_exists",
                message=f"tag {name} appeared after the pre-flight check",
                hint="Another release is running against this repository; nothing was pushed.",
            )
        )

    # HEAD is read before the tag exists; after tagging only the pushes remain.
    head = repo.head_sha()
    if isinstance(head, Err):
        return Err(ReleaseError(kind="tag_failed", message=head.error.message))
    short = repo.head_sha(short=True)
    if isinstance(short, Err):
        return Err(ReleaseError(kind="tag_failed", message=short.error.message))

    annotation = marker_message(
        version=version,
        branch=state.branch,
        short_commit=short.value,
        timestamp=clock(),
        prerelease=prerelease,
        skipped=skipped,
        artifacts=config.artifacts.render(app=config.app_name, version=version.raw),
    )
    console.print(f"git tag -a {name}", Style.DIM)
    tagged = repo.create_annotated_tag(name, annotation)
    if isinstance(tagged, Err):
        kind = "marker_exists" if "already exists" in tagged.error.message else "tag_failed"
        return Err(
            ReleaseError(
                kind=kind,
                message=f"failed to create tag {name}",
                hint=tagged.error.message,
            )
        )

    console.success(f"tag {name} created on {short.value}")

    # 3. push branch
    console.print(f"git push {remote} {state.branch}", Style.DIM)
    pushed = repo.push(remote, state.branch)
    if isinstance(pushed, Err):
        return Err(
            ReleaseError(
                kind="push_branch_failed",
                message=f"failed to push {state.branch} to {remote}: {pushed.error.message}",
                hint=_remote_hint(
                    remote=remote, branch=state.branch, name=name, step="branch push"
                ),
            )
        )
    console.success(f"pushed {state.branch}")

    # 4. push tag
    console.print(f"git push {remote} {name}", Style.DIM)
    pushed_tag = repo.push(remote, f"refs/tags/{name}")
    if isinstance(pushed_tag, Err):
        return Err(
            ReleaseError(
                kind="push_marker_failed",
                message=f"failed to push tag {name} to {remote}: {pushed_tag.error.message}",
                hint=_remote_hint(remote=remote, branch=state.branch, name=name, step="tag push"),
            )
        )
    console.success(f"pushed tag {name}")

    return Ok(ReleaseMarker(name=name, message=annotation, commit=head.value))
