"""
Git command helpers shared by the worktree manager and merge previewer.

Repository discovery goes through GitPython and only reads the filesystem.
Commands that need git itself go through a ProcessRunner so that every
invocation is an awaited child process.
"""

from __future__ import annotations

import logging
from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from tandem.core.exceptions import ExternalCommandError
from tandem.core.process import AsyncProcessRunner, ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)


def open_repo(path: str | Path) -> Repo | None:
    """
    Open the repository containing path, or return None.

    Args:
        path: Any directory inside a working tree

    Returns:
        GitPython Repo, or None if path is not inside a git repository
    """
    try:
        return Repo(str(path), search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return None


def has_commits(repo: Repo) -> bool:
    """Return True if HEAD resolves to a commit."""
    return bool(repo.head.is_valid())


class GitRunner:
    """
    Runs git subcommands through a ProcessRunner.

    Example:
        >>> git = GitRunner()
        >>> branch = await git.output(["branch", "--show-current"], cwd="/repo")
    """

    def __init__(self, runner: ProcessRunner | None = None) -> None:
        self.runner: ProcessRunner = runner or AsyncProcessRunner()

    async def run(self, args: list[str], cwd: str | Path) -> ProcessResult:
        """Run `git <args>` and return the raw result."""
        return await self.runner.run(["git", *args], cwd=str(cwd))

    async def output(self, args: list[str], cwd: str | Path) -> str:
        """
        Run `git <args>` and return stripped stdout.

        Raises:
            ExternalCommandError: If git exits non-zero or cannot be started
        """
        result = await self.run(args, cwd)
        if not result.success:
            raise ExternalCommandError(
                ["git", *args],
                result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
                message=result.error,
            )
        return result.stdout.strip()

    async def succeeds(self, args: list[str], cwd: str | Path) -> bool:
        """Return True if `git <args>` exits 0."""
        result = await self.run(args, cwd)
        return result.success


__all__ = ["GitRunner", "has_commits", "open_repo"]
