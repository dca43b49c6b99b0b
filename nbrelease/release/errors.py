from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    # input
    "invalid_version",
    # environment
    "not_a_repository",
    "detached_head",
    "git_failed",
    "tool_missing",
    # preconditions
    "dirty_tree",
    "non_canonical_branch",
    "marker_exists",
    # descriptors
    "descriptor_io",
    "invalid_descriptor",
    # verification
    "tests_failed",
    "build_check_failed",
    # publish
    "commit_failed",
    "tag_failed",
    "push_branch_failed",
    "push_marker_failed",
]

OVERRIDABLE_KINDS: frozenset[ReleaseErrorKind] = frozenset({"dirty_tree", "non_canonical_branch"})


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    @property
    def overridable(self) -> bool:
        """True for findings an operator may accept with --force or a prompt."""
        return self.kind in OVERRIDABLE_KINDS
