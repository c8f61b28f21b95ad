"""
Git worktree management for concurrent task execution.

Each task gets its own worktree under `<project>/.worktrees/`, named either
`<category>/<NNN>-<slug>` or after a caller-supplied branch.

Example:
    >>> from tandem.core.worktree import CreateWorktreeRequest, WorktreeManager
    >>> manager = WorktreeManager()
    >>> result = await manager.create(
    ...     CreateWorktreeRequest(project_path=".", category="bugfix", title="Fix login issue")
    ... )
    >>> worktrees = await manager.list(".", include_details=True)
"""

from .lifecycle import TaskDescriptor, WorktreeLifecycle, infer_category
from .manager import PROTECTED_BRANCHES, WORKTREES_DIR, WorktreeManager
from .models import (
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
from .naming import is_valid_branch_name, title_to_branch_slug, title_to_slug
from .sequence import SequenceAllocator

__all__ = [
    "WorktreeManager",
    "WorktreeLifecycle",
    "SequenceAllocator",
    "TaskDescriptor",
    "CreateWorktreeRequest",
    "CreateWorktreeResult",
    "DeleteWorktreeRequest",
    "DeleteWorktreeResult",
    "DiffSummary",
    "SetupScriptResult",
    "WorktreeCategory",
    "WorktreeInfo",
    "WorktreeStats",
    "PROTECTED_BRANCHES",
    "WORKTREES_DIR",
    "infer_category",
    "is_valid_branch_name",
    "title_to_branch_slug",
    "title_to_slug",
]
