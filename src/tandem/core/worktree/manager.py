"""
Git worktree manager implementation.

This module provides the WorktreeManager class, which gives each concurrently
running task its own worktree under `<project>/.worktrees/`:

- Categorized naming: `<category>/<NNN>-<slug>` (e.g. bugfix/001-fix-login-issue)
- Direct naming: a caller-supplied branch, folder name sanitized
- Removal with `git worktree prune` fallback and optional branch deletion
- Listing with stale-reference filtering and optional change probes
- Branch statistics (ahead/behind, files and lines changed)
- Base branch detection (main, then master, then the current branch)

Every git invocation is an awaited child process; nothing else suspends.
"""

from __future__ import annotations

import builtins
import logging
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from tandem.core.exceptions import ConfigurationError, RepositoryStateError
from tandem.core.git import GitRunner, has_commits, open_repo
from tandem.core.process import ProcessRunner
from tandem.core.worktree.models import (
    CreateWorktreeRequest,
    CreateWorktreeResult,
    DeleteWorktreeRequest,
    DeleteWorktreeResult,
    DiffSummary,
    SetupScriptResult,
    WorktreeCategory,
    WorktreeInfo,
    WorktreeStats,
)
from tandem.core.worktree.naming import (
    categorized_name,
    is_valid_branch_name,
    normalize_path,
    sanitize_branch_for_path,
)
from tandem.core.worktree.parsing import (
    count_status_entries,
    parse_diff_stat_summary,
    parse_rev_list_counts,
    parse_worktree_porcelain,
)
from tandem.core.worktree.sequence import SequenceAllocator
from tandem.core.worktree.setup_script import SETUP_SCRIPT_TIMEOUT_SECONDS, run_setup_script

if TYPE_CHECKING:
    from tandem.core.config.models import TandemConfig

logger = logging.getLogger(__name__)

# Default worktrees directory name, relative to the project root
WORKTREES_DIR = ".worktrees"

# Branches never deleted by remove()
PROTECTED_BRANCHES = frozenset({"main", "master"})

DEFAULT_INITIAL_COMMIT_MESSAGE = "chore: initial commit"


def _absolute(path: str) -> str:
    # git resolves relative paths against its cwd, not ours
    return normalize_path(str(Path(path).resolve()))


class _AddOutcome(NamedTuple):
    result: CreateWorktreeResult
    reused: bool
    populated: bool


class WorktreeManager:
    """
    Manages git worktrees for concurrently running tasks.

    Example:
        >>> manager = WorktreeManager()
        >>> result = await manager.create(
        ...     CreateWorktreeRequest(
        ...         project_path="/path/to/repo",
        ...         category=WorktreeCategory.BUGFIX,
        ...         title="Fix login issue",
        ...     )
        ... )
        >>> result.branch
        'bugfix/001-fix-login-issue'
        >>> stats = await manager.get_stats("/path/to/repo", result.branch)
        >>> await manager.remove(
        ...     DeleteWorktreeRequest(project_path="/path/to/repo", worktree_path=result.path)
        ... )
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        worktrees_dir_name: str = WORKTREES_DIR,
        setup_timeout: float = SETUP_SCRIPT_TIMEOUT_SECONDS,
        sequence: SequenceAllocator | None = None,
        default_setup_script: str | None = None,
        initial_commit_message: str = DEFAULT_INITIAL_COMMIT_MESSAGE,
    ) -> None:
        """
        Initialize the worktree manager.

        Args:
            runner: ProcessRunner for git and setup scripts
            worktrees_dir_name: Directory under the project holding worktrees
            setup_timeout: Setup script timeout in seconds
            sequence: Sequence allocator; pass a shared one to serialize
                categorized creates across managers
            default_setup_script: Setup script used when a request has none
            initial_commit_message: Message for the automatic empty commit
        """
        self.runner = runner
        self.git = GitRunner(runner)
        self.worktrees_dir_name = worktrees_dir_name
        self.setup_timeout = setup_timeout
        self.sequence = sequence or SequenceAllocator()
        self.default_setup_script = default_setup_script
        self.initial_commit_message = initial_commit_message

    @classmethod
    def from_config(
        cls,
        config: TandemConfig,
        runner: ProcessRunner | None = None,
        sequence: SequenceAllocator | None = None,
    ) -> WorktreeManager:
        """Build a manager from the `worktrees` section of a TandemConfig."""
        section = config.worktrees
        return cls(
            runner=runner,
            worktrees_dir_name=section.dir_name,
            setup_timeout=section.setup_timeout_seconds,
            sequence=sequence,
            default_setup_script=section.setup_script,
            initial_commit_message=section.initial_commit_message,
        )

    # -- Core operations ----------------------------------------------------

    async def create(self, request: CreateWorktreeRequest) -> CreateWorktreeResult:
        """
        Create a worktree with categorized or direct naming.

        If a worktree already exists for the resolved branch it is returned
        with is_new=False and nothing is created.

        Args:
            request: Creation options

        Returns:
            CreateWorktreeResult; a failing setup script is reported in
            setup_script_result rather than raised

        Raises:
            ConfigurationError: If neither branch_name nor category + title is given
            RepositoryStateError: If project_path is not a git repository, the
                initial commit cannot be created, or git reported success but
                the directory does not exist
            ExternalCommandError: If `git worktree add` fails
        """
        if not request.branch_name and not request.uses_categorized_naming:
            raise ConfigurationError(
                "Either branch_name or (category + title) must be provided for worktree creation"
            )

        project_path = _absolute(request.project_path)
        if not self.is_git_repo(project_path):
            raise RepositoryStateError("Not a git repository", path=project_path)

        await self.ensure_initial_commit(project_path)

        worktrees_dir = self.get_worktrees_dir(project_path)

        if request.uses_categorized_naming:
            assert request.category is not None and request.title is not None
            category = request.category.value
            async with self.sequence.reserve(worktrees_dir, category) as number:
                branch, folder = categorized_name(
                    category, number, request.title, short=request.short_slug
                )
                worktree_path = worktrees_dir / category / folder
                logger.info(
                    "Using categorized naming: branch=%r, path=%r", branch, str(worktree_path)
                )
                outcome = await self._add_worktree(
                    project_path, branch, worktree_path, request.base_branch
                )
        else:
            assert request.branch_name is not None
            branch = request.branch_name
            worktree_path = worktrees_dir / sanitize_branch_for_path(branch)
            outcome = await self._add_worktree(
                project_path, branch, worktree_path, request.base_branch
            )

        if outcome.reused:
            return outcome.result

        # Setup runs outside the sequence reservation
        script = request.setup_script or self.default_setup_script
        if script and outcome.populated:
            setup_result: SetupScriptResult = await run_setup_script(
                outcome.result.path, script, runner=self.runner, timeout=self.setup_timeout
            )
            return outcome.result.model_copy(update={"setup_script_result": setup_result})

        return outcome.result

    async def _add_worktree(
        self,
        project_path: str,
        branch: str,
        worktree_path: Path,
        base_branch: str | None,
    ) -> _AddOutcome:
        existing = await self.find_worktree_for_branch(project_path, branch)
        if existing is not None:
            logger.info("Found existing worktree for branch %r at: %s", branch, existing.path)
            return _AddOutcome(
                CreateWorktreeResult(path=existing.path, branch=branch, is_new=False),
                reused=True,
                populated=True,
            )

        worktree_path.parent.mkdir(parents=True, exist_ok=True)

        branch_exists = await self.branch_exists(project_path, branch)
        if branch_exists:
            args = ["worktree", "add", str(worktree_path), branch]
        else:
            args = ["worktree", "add", "-b", branch, str(worktree_path), base_branch or "HEAD"]

        logger.info("Creating worktree: git %s", " ".join(args))
        await self.git.output(args, cwd=project_path)

        if not worktree_path.is_dir():
            raise RepositoryStateError(
                f"Worktree directory was not created at {worktree_path}",
                path=str(worktree_path),
            )

        entries = builtins.list(worktree_path.iterdir())
        if not entries:
            logger.warning("Worktree directory is empty - git repo may have no commits")
        else:
            logger.info("Worktree created successfully with %d items", len(entries))

        result = CreateWorktreeResult(
            path=normalize_path(str(worktree_path.resolve())),
            branch=branch,
            is_new=not branch_exists,
        )
        return _AddOutcome(result, reused=False, populated=bool(entries))

    async def remove(self, request: DeleteWorktreeRequest) -> DeleteWorktreeResult:
        """
        Remove a worktree and optionally delete its branch.

        A failing `git worktree remove --force` falls back to
        `git worktree prune`. Branch deletion failures are logged and
        swallowed; main and master are never deleted.

        Raises:
            RepositoryStateError: If project_path is not a git repository
        """
        project_path = _absolute(request.project_path)
        worktree_path = _absolute(request.worktree_path)

        if not self.is_git_repo(project_path):
            raise RepositoryStateError("Not a git repository", path=project_path)

        branch: str | None = None
        head = await self.git.run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=worktree_path)
        if head.success:
            branch = head.stdout.strip() or None
            if branch == "HEAD":
                # Detached
                branch = None
        else:
            logger.debug("Could not read branch of %s", worktree_path)

        removed = await self.git.run(
            ["worktree", "remove", worktree_path, "--force"], cwd=project_path
        )
        if removed.success:
            logger.info("Removed worktree %s", worktree_path)
        else:
            logger.warning(
                "git worktree remove failed for %s (%s), pruning instead",
                worktree_path,
                removed.stderr.strip() or removed.error,
            )
            await self.prune(project_path)

        branch_deleted = False
        if request.delete_branch and branch and branch not in PROTECTED_BRANCHES:
            deleted = await self.git.run(["branch", "-D", branch], cwd=project_path)
            if deleted.success:
                branch_deleted = True
                logger.info("Deleted branch %s", branch)
            else:
                logger.warning(
                    "Branch deletion failed for %s (non-critical): %s",
                    branch,
                    deleted.stderr.strip() or deleted.error,
                )

        return DeleteWorktreeResult(
            worktree_path=worktree_path,
            branch=branch,
            branch_deleted=branch_deleted,
        )

    async def list(self, project_path: str, include_details: bool = False) -> builtins.list[WorktreeInfo]:
        """
        List the worktrees of a project.

        The first worktree git reports is the main worktree. Non-main worktrees
        whose directory no longer exists are left out (they are not pruned).

        Args:
            project_path: Path to the git repository
            include_details: Probe `git status --porcelain` in each worktree

        Returns:
            List of WorktreeInfo, empty if project_path is not a repository
        """
        project_path = _absolute(project_path)
        if not self.is_git_repo(project_path):
            return []

        listing = await self.git.run(["worktree", "list", "--porcelain"], cwd=project_path)
        if not listing.success:
            logger.warning("git worktree list failed: %s", listing.stderr.strip())
            return []

        worktrees: builtins.list[WorktreeInfo] = []
        for index, record in enumerate(parse_worktree_porcelain(listing.stdout)):
            is_main = index == 0
            path = normalize_path(record["path"])
            if not is_main and not Path(path).exists():
                logger.debug("Skipping stale worktree reference: %s", path)
                continue
            worktrees.append(WorktreeInfo(path=path, branch=record["branch"], is_main=is_main))

        if include_details:
            for worktree in worktrees:
                status = await self.git.run(["status", "--porcelain"], cwd=worktree.path)
                count = count_status_entries(status.stdout) if status.success else 0
                worktree.has_changes = count > 0
                worktree.changed_files_count = count

        return worktrees

    # -- Statistics ---------------------------------------------------------

    async def get_stats(
        self,
        project_path: str,
        branch: str,
        base_branch: str | None = None,
    ) -> WorktreeStats:
        """
        Compute ahead/behind counts and diff totals of branch against a base.

        Command failures (unrelated histories, identical commits) yield zeros.

        Args:
            project_path: Path to the git repository
            branch: Branch to measure
            base_branch: Base to compare against (auto-detected if omitted)
        """
        base = base_branch or await self.detect_base_branch(project_path)
        stats = WorktreeStats()

        rev_list = await self.git.run(
            ["rev-list", "--left-right", "--count", f"{base}...{branch}"], cwd=project_path
        )
        if rev_list.success:
            behind, ahead = parse_rev_list_counts(rev_list.stdout)
            stats.commits_ahead = ahead
            stats.commits_behind = behind
        else:
            logger.debug("rev-list failed for %s...%s", base, branch)

        diff = await self.git.run(["diff", "--stat", f"{base}...{branch}"], cwd=project_path)
        if diff.success:
            summary = parse_diff_stat_summary(diff.stdout)
            stats.files_changed = summary.files_changed
            stats.additions = summary.additions
            stats.deletions = summary.deletions

        return stats

    async def get_working_dir_stats(self, worktree_path: str) -> DiffSummary:
        """Summarize uncommitted changes in a worktree via `git diff --stat`."""
        diff = await self.git.run(["diff", "--stat"], cwd=worktree_path)
        if not diff.success:
            return DiffSummary()
        return parse_diff_stat_summary(diff.stdout)

    # -- Base branch detection ----------------------------------------------

    async def detect_base_branch(self, project_path: str) -> str:
        """Return main if it exists, else master, else the current branch."""
        for candidate in ("main", "master"):
            if await self.branch_exists(project_path, candidate):
                return candidate
        return await self.get_current_branch(project_path)

    async def get_current_branch(self, cwd: str) -> str:
        """Return the checked-out branch of a repository or worktree ('' on failure)."""
        result = await self.git.run(["branch", "--show-current"], cwd=cwd)
        return result.stdout.strip() if result.success else ""

    # -- Helpers ------------------------------------------------------------

    def is_git_repo(self, repo_path: str) -> bool:
        """Check whether repo_path is inside a git working tree."""
        return open_repo(repo_path) is not None

    async def branch_exists(self, project_path: str, branch: str) -> bool:
        """Check whether a ref resolves with `git rev-parse --verify`."""
        return await self.git.succeeds(["rev-parse", "--verify", branch], cwd=project_path)

    async def find_worktree_for_branch(self, project_path: str, branch: str) -> WorktreeInfo | None:
        """Return the worktree that has branch checked out, if any."""
        listing = await self.git.run(["worktree", "list", "--porcelain"], cwd=project_path)
        if not listing.success:
            return None

        for index, record in enumerate(parse_worktree_porcelain(listing.stdout)):
            if record["branch"] != branch:
                continue
            path = Path(record["path"])
            if not path.is_absolute():
                path = Path(project_path) / path
            return WorktreeInfo(
                path=normalize_path(str(path.resolve())),
                branch=branch,
                is_main=index == 0,
            )
        return None

    async def ensure_initial_commit(self, repo_path: str) -> bool:
        """
        Make sure the repository has at least one commit.

        Returns:
            True if an empty initial commit was created

        Raises:
            RepositoryStateError: If the commit could not be created
        """
        repo = open_repo(repo_path)
        if repo is not None and has_commits(repo):
            return False

        result = await self.git.run(
            ["commit", "--allow-empty", "-m", self.initial_commit_message], cwd=repo_path
        )
        if not result.success:
            raise RepositoryStateError(
                "Failed to create initial git commit. Please commit manually and retry.",
                path=repo_path,
                stderr=result.stderr,
            )
        logger.info("Created initial empty commit in %s", repo_path)
        return True

    def get_worktrees_dir(self, project_path: str) -> Path:
        """Return `<project>/<worktrees_dir_name>`."""
        return Path(project_path) / self.worktrees_dir_name

    async def count_by_category(self, project_path: str) -> dict[WorktreeCategory, int]:
        """
        Count worktree folders in each category.

        Raises:
            RepositoryStateError: If project_path is not a git repository
        """
        project_path = _absolute(project_path)
        if not self.is_git_repo(project_path):
            raise RepositoryStateError("Not a git repository", path=project_path)
        worktrees_dir = self.get_worktrees_dir(project_path)
        return {
            category: SequenceAllocator.count_existing(worktrees_dir, category.value)
            for category in WorktreeCategory
        }

    @staticmethod
    def is_valid_branch_name(name: str) -> bool:
        """Validate a branch name for git compatibility."""
        return is_valid_branch_name(name)

    async def prune(self, project_path: str) -> None:
        """Prune stale worktree references. Failures are logged, never raised."""
        result = await self.git.run(["worktree", "prune"], cwd=project_path)
        if result.success:
            logger.info("Pruned stale worktree references in %s", project_path)
        else:
            logger.warning(
                "Failed to prune worktrees: %s", result.stderr.strip() or result.error
            )


__all__ = ["PROTECTED_BRANCHES", "WORKTREES_DIR", "WorktreeManager"]
