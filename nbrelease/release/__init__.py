"""Release orchestration: version model, pre-flight, descriptors, verify, publish."""

from nbrelease.release.errors import ReleaseError
from nbrelease.release.model import (
    AbortedByPrecondition,
    AbortedByUser,
    Completed,
    DryRunReport,
    FailedAtStage,
    PipelineOutcome,
    ReleaseMarker,
    ReleaseOptions,
    RepositoryState,
    outcome_exit_code,
)
from nbrelease.release.pipeline import ReleasePipeline, run_release
from nbrelease.release.version import Version, marker_name, numeric_encoding, parse_version

__all__ = [
    "AbortedByPrecondition",
    "AbortedByUser",
    "Completed",
    "DryRunReport",
    "FailedAtStage",
    "PipelineOutcome",
    "ReleaseError",
    "ReleaseMarker",
    "ReleaseOptions",
    "ReleasePipeline",
    "RepositoryState",
    "Version",
    "marker_name",
    "numeric_encoding",
    "outcome_exit_code",
    "parse_version",
    "run_release",
]
