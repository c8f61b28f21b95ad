"""Tests for task-driven worktree creation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tandem.core.worktree import (
    CreateWorktreeResult,
    TaskDescriptor,
    WorktreeCategory,
    WorktreeInfo,
    WorktreeLifecycle,
    infer_category,
)
from tandem.core.worktree.lifecycle import worktree_title


class TestInferCategory:
    """Tests for infer_category."""

    def test_explicit_category(self):
        assert infer_category(TaskDescriptor(id="t", category="Hotfix")) == WorktreeCategory.HOTFIX

    def test_status_maps_to_feature(self):
        assert infer_category(TaskDescriptor(id="t", status="in_progress")) == WorktreeCategory.FEATURE

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Fix login issue", WorktreeCategory.BUGFIX),
            ("Urgent: payments down", WorktreeCategory.HOTFIX),
            ("Cleanup the config module", WorktreeCategory.REFACTOR),
            ("Document the API", WorktreeCategory.DOCS),
            ("Routine maintenance", WorktreeCategory.CHORE),
            ("Add OAuth login", WorktreeCategory.FEATURE),
        ],
    )
    def test_keyword_hints(self, title, expected):
        assert infer_category(TaskDescriptor(id="t", title=title)) == expected

    def test_description_is_considered(self):
        task = TaskDescriptor(id="t", title="Login", description="there is a bug when...")
        assert infer_category(task) == WorktreeCategory.BUGFIX


class TestWorktreeTitle:
    """Tests for worktree_title."""

    def test_prefers_title(self):
        assert worktree_title(TaskDescriptor(id="t", title="  Add OAuth ")) == "Add OAuth"

    def test_falls_back_to_description(self):
        task = TaskDescriptor(id="t", description="x" * 150)
        assert worktree_title(task) == "x" * 100

    def test_falls_back_to_id(self):
        assert worktree_title(TaskDescriptor(id="abcdef123456")) == "task-abcdef12"


class TestEnsureWorktreeForTask:
    """Tests for WorktreeLifecycle.ensure_worktree_for_task."""

    @pytest.mark.asyncio
    async def test_reuses_live_worktree_for_assigned_branch(self):
        manager = MagicMock()
        manager.find_worktree_for_branch = AsyncMock(
            return_value=WorktreeInfo(path="/repo/.worktrees/x", branch="x")
        )
        manager.create = AsyncMock()

        result = await WorktreeLifecycle(manager).ensure_worktree_for_task(
            "/repo", TaskDescriptor(id="t", title="Whatever", branch_name="x")
        )

        assert result == CreateWorktreeResult(path="/repo/.worktrees/x", branch="x", is_new=False)
        manager.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_categorized_worktree(self):
        manager = MagicMock()
        manager.find_worktree_for_branch = AsyncMock(return_value=None)
        manager.create = AsyncMock(
            return_value=CreateWorktreeResult(
                path="/repo/.worktrees/bugfix/001-fix-login-issue",
                branch="bugfix/001-fix-login-issue",
                is_new=True,
            )
        )

        await WorktreeLifecycle(manager).ensure_worktree_for_task(
            "/repo",
            TaskDescriptor(id="t", title="Fix login issue", branch_name="stale"),
            base_branch="main",
            setup_script="make",
        )

        request = manager.create.await_args.args[0]
        assert request.category == WorktreeCategory.BUGFIX
        assert request.title == "Fix login issue"
        assert request.base_branch == "main"
        assert request.setup_script == "make"
