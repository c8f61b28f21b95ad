"""
Worktree data models.

Defines the records returned by WorktreeManager: worktree listings, branch
statistics, and the request/result pairs for creation and removal.

Example:
    >>> from tandem.core.worktree.models import CreateWorktreeRequest, WorktreeCategory
    >>> request = CreateWorktreeRequest(
    ...     project_path="/path/to/repo",
    ...     category=WorktreeCategory.BUGFIX,
    ...     title="Fix login issue",
    ... )
    >>> request.uses_categorized_naming
    True
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class WorktreeCategory(str, Enum):
    """Folder categories under the worktrees root."""

    FEATURE = "feature"
    BUGFIX = "bugfix"
    HOTFIX = "hotfix"
    REFACTOR = "refactor"
    CHORE = "chore"
    DOCS = "docs"


class WorktreeInfo(BaseModel):
    """
    One on-disk worktree as reported by `git worktree list`.

    Attributes:
        path: Absolute path to the worktree (forward slashes)
        branch: Short branch name (refs/heads/ stripped)
        is_main: True for the repository's main worktree
        has_changes: Populated only when details were requested
        changed_files_count: Populated only when details were requested
    """

    path: str
    branch: str
    is_main: bool = False
    has_changes: bool | None = None
    changed_files_count: int | None = None


class DiffSummary(BaseModel):
    """File and line deltas parsed from a `git diff --stat` summary line."""

    files_changed: int = Field(default=0, ge=0)
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)


class WorktreeStats(BaseModel):
    """
    Branch statistics relative to a base branch.

    All values are derived on demand and never persisted.
    """

    commits_ahead: int = Field(default=0, ge=0)
    commits_behind: int = Field(default=0, ge=0)
    files_changed: int = Field(default=0, ge=0)
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)


class CreateWorktreeRequest(BaseModel):
    """
    Input for WorktreeManager.create().

    Either branch_name (direct naming) or category + title (categorized
    naming) must be supplied. Categorized naming wins when both are given.
    """

    project_path: str = Field(..., min_length=1, description="Path to the git repository")
    branch_name: str | None = Field(default=None, description="Branch for direct naming")
    base_branch: str | None = Field(
        default=None,
        description="Start point for a new branch (defaults to HEAD)",
    )
    category: WorktreeCategory | None = Field(
        default=None,
        description="Folder category for categorized naming",
    )
    title: str | None = Field(default=None, description="Title slugified into the branch name")
    short_slug: bool = Field(
        default=False,
        description="Keep only up to three significant title words in the slug",
    )
    setup_script: str | None = Field(
        default=None,
        description="Shell command run inside a freshly created worktree",
    )

    model_config = ConfigDict(populate_by_name=True)

    @property
    def uses_categorized_naming(self) -> bool:
        return self.category is not None and bool(self.title)


class SetupScriptResult(BaseModel):
    """Outcome of a worktree setup script. Failures are reported, not raised."""

    success: bool
    output: str | None = None
    error: str | None = None
    timed_out: bool = False


class CreateWorktreeResult(BaseModel):
    """Result of WorktreeManager.create()."""

    path: str
    branch: str
    is_new: bool
    setup_script_result: SetupScriptResult | None = None


class DeleteWorktreeRequest(BaseModel):
    """Input for WorktreeManager.remove()."""

    project_path: str = Field(..., min_length=1)
    worktree_path: str = Field(..., min_length=1)
    delete_branch: bool = False


class DeleteWorktreeResult(BaseModel):
    """Result of WorktreeManager.remove()."""

    worktree_path: str
    branch: str | None = None
    branch_deleted: bool = False
