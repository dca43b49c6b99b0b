from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from nbrelease.core.errors import ErrorCode
from nbrelease.release.errors import ReleaseError
from nbrelease.release.version import Version

Stage = Literal["validate", "preflight", "mutate", "tests", "build_check", "publish"]
VerificationStage = Literal["tests", "build_check"]


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Operator flags, built once at the CLI boundary and never mutated."""

    skip_tests: bool = False
    skip_build_check: bool = False
    prerelease: bool = False
    dry_run: bool = False
    force: bool = False


@dataclass(frozen=True, slots=True)
class RepositoryState:
    """Repository snapshot taken once at the start of an invocation."""

    root: Path
    branch: str
    dirty_paths: tuple[str, ...]
    marker_name: str
    marker_exists: bool

    @property
    def is_clean(self) -> bool:
        return not self.dirty_paths


@dataclass(frozen=True, slots=True)
class ReleaseMarker:
    name: str
    message: str
    commit: str

    @property
    def short_commit(self) -> str:
        return self.commit[:8]


@dataclass(frozen=True, slots=True)
class DescriptorChange:
    """One targeted field edit inside a descriptor file."""

    field: str
    before: str
    after: str

    @property
    def is_noop(self) -> bool:
        return self.before == self.after


@dataclass(frozen=True, slots=True)
class DescriptorEdit:
    path: Path
    changes: tuple[DescriptorChange, ...]
    content: str

    @property
    def changed(self) -> bool:
        return any(not c.is_noop for c in self.changes)


# Outcomes


@dataclass(frozen=True, slots=True)
class Completed:
    version: Version
    marker: ReleaseMarker
    branch: str
    skipped: tuple[VerificationStage, ...]
    prerelease: bool


@dataclass(frozen=True, slots=True)
class AbortedByUser:
    reason: str


@dataclass(frozen=True, slots=True)
class AbortedByPrecondition:
    failures: tuple[ReleaseError, ...]


@dataclass(frozen=True, slots=True)
class FailedAtStage:
    stage: Stage
    cause: ReleaseError


@dataclass(frozen=True, slots=True)
class DryRunReport:
    """Everything a live run would do, computed without writing.

    ``findings`` lists every precondition problem, overridable or not.
    ``problems`` lists failures a live run would hit before publishing
    (missing tools, unreadable descriptors).
    """

    version: Version
    marker_name: str
    state: RepositoryState
    findings: tuple[ReleaseError, ...]
    problems: tuple[ReleaseError, ...]
    edits: tuple[DescriptorEdit, ...]
    skipped: tuple[VerificationStage, ...]
    prerelease: bool

    @property
    def blocked(self) -> bool:
        return any(not f.overridable for f in self.findings) or bool(self.problems)


PipelineOutcome = Completed | AbortedByUser | AbortedByPrecondition | FailedAtStage | DryRunReport


def outcome_exit_code(outcome: PipelineOutcome) -> ErrorCode:
    match outcome:
        case Completed() | DryRunReport():
            return ErrorCode.OK
        case _:
            return ErrorCode.FAILURE
