"""Git operations used by the release pipeline.

Usage:
    from nbrelease.git import Repository

    repo = Repository(Path("/path/to/project"))
    match repo.status():
        case Ok(status):
            print(f"Branch: {status.branch}")
"""

from nbrelease.git.repository import (
    GitError,
    GitStatus,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]
