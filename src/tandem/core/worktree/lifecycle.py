"""
Worktree creation as part of a task's lifecycle.

When a task starts, its worktree category is inferred from the task's
category, its status, or hints in its title and description, and a
categorized worktree `<category>/<NNN>-<slug>` is created. A task that
already has a branch with a live worktree reuses it.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from tandem.core.worktree.manager import WorktreeManager
from tandem.core.worktree.models import (
    CreateWorktreeRequest,
    CreateWorktreeResult,
    WorktreeCategory,
)

logger = logging.getLogger(__name__)

CATEGORY_MAP: dict[str, WorktreeCategory] = {
    "feature": WorktreeCategory.FEATURE,
    "bugfix": WorktreeCategory.BUGFIX,
    "hotfix": WorktreeCategory.HOTFIX,
    "refactor": WorktreeCategory.REFACTOR,
    "chore": WorktreeCategory.CHORE,
    "docs": WorktreeCategory.DOCS,
    # Statuses and the uncategorized bucket fall back to feature
    "pending": WorktreeCategory.FEATURE,
    "backlog": WorktreeCategory.FEATURE,
    "in_progress": WorktreeCategory.FEATURE,
    "completed": WorktreeCategory.FEATURE,
    "verified": WorktreeCategory.FEATURE,
    "uncategorized": WorktreeCategory.FEATURE,
}

# Checked in order against title + description
_KEYWORD_HINTS: list[tuple[tuple[str, ...], WorktreeCategory]] = [
    (("bug", "fix"), WorktreeCategory.BUGFIX),
    (("hotfix", "urgent"), WorktreeCategory.HOTFIX),
    (("refactor", "cleanup"), WorktreeCategory.REFACTOR),
    (("docs", "document"), WorktreeCategory.DOCS),
    (("chore", "maintenance"), WorktreeCategory.CHORE),
]


class TaskDescriptor(BaseModel):
    """The parts of a task that drive worktree naming."""

    id: str = Field(..., min_length=1)
    title: str | None = None
    description: str | None = None
    category: str | None = None
    status: str | None = None
    branch_name: str | None = Field(
        default=None,
        description="Branch already assigned to the task, if any",
    )


def infer_category(task: TaskDescriptor) -> WorktreeCategory:
    """Pick a worktree category for a task."""
    for label in (task.category, task.status):
        key = (label or "").lower()
        if key in CATEGORY_MAP:
            return CATEGORY_MAP[key]

    combined = f"{(task.title or '').lower()} {(task.description or '').lower()}"
    for keywords, category in _KEYWORD_HINTS:
        if any(keyword in combined for keyword in keywords):
            return category

    return WorktreeCategory.FEATURE


def worktree_title(task: TaskDescriptor) -> str:
    """Title used for the slug: title, else the first 100 chars of the description, else the ID."""
    if task.title and task.title.strip():
        return task.title.strip()
    if task.description and task.description.strip():
        return task.description.strip()[:100]
    return f"task-{task.id[:8]}"


class WorktreeLifecycle:
    """
    Creates or reuses the worktree for a task about to run.

    Example:
        >>> lifecycle = WorktreeLifecycle(WorktreeManager())
        >>> result = await lifecycle.ensure_worktree_for_task(
        ...     "/path/to/repo", TaskDescriptor(id="t-1", title="Fix login issue")
        ... )
        >>> result.branch
        'bugfix/001-fix-login-issue'
    """

    def __init__(self, manager: WorktreeManager) -> None:
        self.manager = manager

    async def ensure_worktree_for_task(
        self,
        project_path: str,
        task: TaskDescriptor,
        base_branch: str | None = None,
        setup_script: str | None = None,
    ) -> CreateWorktreeResult:
        """
        Return the task's worktree, creating a categorized one if needed.

        Raises:
            Whatever WorktreeManager.create() raises
        """
        if task.branch_name:
            existing = await self.manager.find_worktree_for_branch(project_path, task.branch_name)
            if existing is not None:
                logger.info("Using existing worktree for task %s: %s", task.id, existing.path)
                return CreateWorktreeResult(path=existing.path, branch=task.branch_name, is_new=False)

        category = infer_category(task)
        title = worktree_title(task)
        logger.info("Creating %s worktree for task %s (%s)", category.value, task.id, title)

        return await self.manager.create(
            CreateWorktreeRequest(
                project_path=project_path,
                category=category,
                title=title,
                base_branch=base_branch,
                setup_script=setup_script,
            )
        )


__all__ = [
    "CATEGORY_MAP",
    "TaskDescriptor",
    "WorktreeLifecycle",
    "infer_category",
    "worktree_title",
]
