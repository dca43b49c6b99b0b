"""Git repository abstraction.

All operations shell out to ``git`` through ``nbrelease.platform.process`` and
return Result types.

Usage:
    repo = Repository(Path("/path/to/project"))

    match repo.status():
        case Ok(status):
            print(f"Branch: {status.branch}")
            if status.is_clean:
                print("Working tree clean")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from nbrelease.core.result import Err, Ok, Result
from nbrelease.platform.process import ProcessError
from nbrelease.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message (git's stderr when available)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path relative to the repository root
    """

    xy: str
    path: str


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed ``git status --porcelain=v1 -b``.

    Attributes:
        branch: Current branch name, None on a detached HEAD
        entries: Modified, staged and untracked paths
    """

    branch: str | None
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(e.path for e in self.entries)


class Repository:
    """A single git working tree.

    Attributes:
        path: Path to the repository root
        network_timeout: Timeout for push operations, None to block
    """

    def __init__(self, path: Path, *, network_timeout: float | None = None) -> None:
        self.path = path
        self.network_timeout = network_timeout

    def exists(self) -> bool:
        """Check if this is a git working tree (``.git`` dir or worktree file)."""
        return (self.path / ".git").exists()

    def status(self) -> Result[GitStatus, GitError]:
        """Get branch and working tree status."""
        result = self._run(["status", "--porcelain=v1", "-b"])
        match result:
            case Err(e):
                return Err(self._error("status", e))
            case Ok(stdout):
                return Ok(self._parse_status(stdout))

    def head_sha(self, *, short: bool = False) -> Result[str, GitError]:
        args = ["rev-parse", "--short", "HEAD"] if short else ["rev-parse", "HEAD"]
        result = self._run(args)
        match result:
            case Err(e):
                return Err(self._error("rev-parse", e))
            case Ok(stdout):
                return Ok(stdout.strip())

    def tag_exists(self, name: str) -> Result[bool, GitError]:
        """Check whether a local tag with this exact name exists."""
        result = self._run(["tag", "--list", name])
        match result:
            case Err(e):
                return Err(self._error("tag --list", e))
            case Ok(stdout):
                return Ok(name in stdout.split())

    def pending_paths(self, paths: list[Path]) -> Result[list[Path], GitError]:
        """Return the subset of paths that differ from HEAD or are untracked."""
        if not paths:
            return Ok([])
        rels = [self._rel(p) for p in paths]
        # -z output is NUL-separated and never quoted, so paths compare verbatim.
        result = self._run(["status", "--porcelain=v1", "-z", "--", *rels])
        match result:
            case Err(e):
                return Err(self._error("status", e))
            case Ok(stdout):
                dirty = set(self._parse_z_paths(stdout))
                return Ok([p for p, rel in zip(paths, rels) if rel in dirty])

    def add(self, paths: list[Path]) -> Result[None, GitError]:
        result = self._run(["add", "--", *[self._rel(p) for p in paths]])
        match result:
            case Err(e):
                return Err(self._error("add", e))
            case Ok(_):
                return Ok(None)

    def commit(self, message: str, paths: list[Path]) -> Result[None, GitError]:
        """Commit only ``paths``, leaving any other staged changes alone."""
        result = self._run(["commit", "-m", message, "--", *[self._rel(p) for p in paths]])
        match result:
            case Err(e):
                return Err(self._error("commit", e))
            case Ok(_):
                return Ok(None)

    def create_annotated_tag(self, name: str, message: str) -> Result[None, GitError]:
        """Create an annotated tag on HEAD. Never overwrites an existing tag."""
        result = self._run(["tag", "-a", name, "-m", message])
        match result:
            case Err(e):
                return Err(self._error("tag -a", e))
            case Ok(_):
                return Ok(None)

    def push(self, remote: str, refspec: str) -> Result[None, GitError]:
        result = self._run(["push", remote, refspec])
        match result:
            case Err(e):
                return Err(self._error("push", e))
            case Ok(_):
                return Ok(None)

    def remote_url(self, remote: str) -> str | None:
        result = self._run(["config", "--get", f"remote.{remote}.url"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def _rel(self, path: Path) -> str:
        if path.is_absolute():
            return path.relative_to(self.path).as_posix()
        return path.as_posix()

    def _error(self, command: str, e: ProcessError) -> GitError:
        return GitError(
            command=command,
            message=e.detail or f"git {command} failed",
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        timeout = self.network_timeout if args[:1] == ["push"] else _GIT_TIMEOUT_SECONDS
        # Read-only commands must not rewrite .git/index (dry runs change nothing).
        env = {**os.environ, "GIT_OPTIONAL_LOCKS": "0"}
        cmd = ["git", "-C", str(self.path), "-c", "core.quotePath=false", *args]
        return run_process(cmd, cwd=self.path, env=env, timeout=timeout)

    def _parse_status(self, output: str) -> GitStatus:
        lines = [ln for ln in output.splitlines() if ln.strip()]
        if not lines:
            return GitStatus(branch=None)

        branch = self._parse_branch_line(lines[0])
        entries: list[StatusEntry] = []
        for line in lines[1:]:
            entry = self._parse_entry(line)
            if entry:
                entries.append(entry)

        return GitStatus(branch=branch, entries=tuple(entries))

    def _parse_branch_line(self, line: str) -> str | None:
        """Parse ``## branch...upstream [info]``."""
        s = line.strip()
        if s.startswith("##"):
            s = s[2:].lstrip()

        for prefix in ("No commits yet on ", "Initial commit on "):
            if s.startswith(prefix):
                return s[len(prefix) :].strip() or None

        if s.startswith("HEAD (no branch)"):
            return None

        s = s.split(" [", 1)[0].strip()
        if "..." in s:
            s = s.split("...", 1)[0].strip()
        return s or None

    def _parse_entry(self, line: str) -> StatusEntry | None:
        if len(line) < 4:
            return None

        xy = line[:2]
        path = line[3:]
        # Renames: "R  old -> new"
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if path.startswith('"') and path.endswith('"'):
            path = path[1:-1]
        return StatusEntry(xy=xy, path=path)

    def _parse_z_paths(self, output: str) -> list[str]:
        """Parse ``status --porcelain=v1 -z`` into current paths.

        Renames and copies carry the original path as an extra record.
        """
        records = output.split("\0")
        paths: list[str] = []
        i = 0
        while i < len(records):
            record = records[i]
            i += 1
            if len(record) < 4:
                continue
            paths.append(record[3:])
            if record[0] in "RC":
                i += 1
        return paths
