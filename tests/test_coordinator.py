"""Tests for TaskCoordinator."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from tandem.core.config import TandemConfig, WorktreeSettings
from tandem.core.coordinator import TaskCoordinator
from tandem.core.exceptions import RepositoryStateError
from tandem.core.isolation import TaskToolIsolationRegistry
from tandem.core.merge import MergePreviewResult
from tandem.core.worktree import (
    CreateWorktreeResult,
    DeleteWorktreeResult,
    SetupScriptResult,
    TaskDescriptor,
)

WORKTREE = CreateWorktreeResult(
    path="/repo/.worktrees/bugfix/001-fix-login-issue",
    branch="bugfix/001-fix-login-issue",
    is_new=True,
)


@pytest.fixture
def worktrees():
    manager = MagicMock()
    manager.find_worktree_for_branch = AsyncMock(return_value=None)
    manager.create = AsyncMock(return_value=WORKTREE)
    manager.remove = AsyncMock(
        return_value=DeleteWorktreeResult(
            worktree_path=WORKTREE.path, branch=WORKTREE.branch, branch_deleted=False
        )
    )
    manager.detect_base_branch = AsyncMock(return_value="main")
    return manager


@pytest.fixture
def previewer():
    mock = MagicMock()
    mock.preview = AsyncMock(
        return_value=MergePreviewResult(success=True, result_tree="f" * 40)
    )
    return mock


@pytest.fixture
def coordinator(worktrees, previewer, sample_servers):
    return TaskCoordinator(worktrees, previewer, TaskToolIsolationRegistry(sample_servers))


TASK = TaskDescriptor(id="t1", title="Fix login issue")


class TestStartTask:
    """Tests for start_task."""

    @pytest.mark.asyncio
    async def test_creates_worktree_and_context(self, coordinator):
        session = await coordinator.start_task("/repo", TASK, feature_id="f1")

        assert session.work_dir == WORKTREE.path
        assert session.branch == WORKTREE.branch
        # Default servers are the catalog's enabled entries
        assert session.context.enabled_server_ids == ["a"]
        assert session.context.work_dir == WORKTREE.path
        assert "### Filesystem" in session.tool_prompt
        assert coordinator.isolation.validate_access("t1", "a").allowed is True
        assert coordinator.sessions == [session]

    @pytest.mark.asyncio
    async def test_explicit_servers(self, coordinator):
        session = await coordinator.start_task(
            "/repo", TASK, feature_id="f1", server_ids=["c", "invalid"]
        )

        assert session.context.enabled_server_ids == ["c"]
        assert session.tool_prompt == ""

    @pytest.mark.asyncio
    async def test_no_context_when_worktree_fails(self, coordinator, worktrees):
        worktrees.create.side_effect = RepositoryStateError("Not a git repository", path="/repo")

        with pytest.raises(RepositoryStateError):
            await coordinator.start_task("/repo", TASK, feature_id="f1")

        assert coordinator.isolation.get_context("t1") is None

    @pytest.mark.asyncio
    async def test_setup_failure_does_not_block(self, coordinator, worktrees):
        worktrees.create.return_value = WORKTREE.model_copy(
            update={"setup_script_result": SetupScriptResult(success=False, error="boom")}
        )

        session = await coordinator.start_task("/repo", TASK, feature_id="f1")

        assert session.context.active is True

    @pytest.mark.asyncio
    async def test_base_branch_is_passed_through(self, worktrees, previewer, sample_servers):
        coordinator = TaskCoordinator(
            worktrees, previewer, TaskToolIsolationRegistry(sample_servers), base_branch="develop"
        )

        await coordinator.start_task("/repo", TASK, feature_id="f1")

        assert worktrees.create.await_args.args[0].base_branch == "develop"


class TestPreviewMerge:
    """Tests for preview_merge."""

    @pytest.mark.asyncio
    async def test_defaults_to_detected_base(self, coordinator, previewer):
        session = await coordinator.start_task("/repo", TASK, feature_id="f1")

        result = await coordinator.preview_merge(session)

        assert result.can_merge_cleanly is True
        previewer.preview.assert_awaited_once_with(
            "/repo", source_branch=WORKTREE.branch, target_branch="main"
        )

    @pytest.mark.asyncio
    async def test_explicit_target(self, coordinator, previewer, worktrees):
        session = await coordinator.start_task("/repo", TASK, feature_id="f1")

        await coordinator.preview_merge(session, "release")

        assert previewer.preview.await_args.kwargs["target_branch"] == "release"
        worktrees.detect_base_branch.assert_not_awaited()


class TestFinishTask:
    """Tests for finish_task and shutdown."""

    @pytest.mark.asyncio
    async def test_releases_context_and_keeps_worktree(self, coordinator, worktrees):
        session = await coordinator.start_task("/repo", TASK, feature_id="f1")

        assert await coordinator.finish_task(session) is None

        assert session.context.active is False
        assert coordinator.isolation.validate_access("t1", "a").allowed is False
        assert coordinator.sessions == []
        worktrees.remove.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_removes_worktree(self, coordinator, worktrees):
        session = await coordinator.start_task("/repo", TASK, feature_id="f1")

        result = await coordinator.finish_task(session, remove_worktree=True, delete_branch=True)

        assert result.worktree_path == WORKTREE.path
        request = worktrees.remove.await_args.args[0]
        assert request.worktree_path == WORKTREE.path
        assert request.delete_branch is True

    @pytest.mark.asyncio
    async def test_shutdown_releases_everything(self, coordinator):
        await coordinator.start_task("/repo", TASK, feature_id="f1")
        await coordinator.start_task("/repo", TaskDescriptor(id="t2", title="Docs"), feature_id="f1")

        coordinator.shutdown()

        assert coordinator.isolation.get_stats().active_contexts == 0
        assert coordinator.sessions == []


class TestFromConfig:
    """Tests for TaskCoordinator.from_config."""

    def test_loads_catalog_and_settings(self, tmp_path):
        catalog_file = tmp_path / ".tandem" / "tool-servers.json"
        catalog_file.parent.mkdir()
        catalog_file.write_text(
            json.dumps(
                {
                    "version": 1,
                    "servers": [
                        {"id": "fs", "name": "FS", "transport": {"type": "stdio", "command": "npx"}}
                    ],
                }
            )
        )
        config = TandemConfig(
            worktrees=WorktreeSettings(base_branch="develop", delete_branch_on_remove=True)
        )

        coordinator = TaskCoordinator.from_config(tmp_path, config=config)

        assert coordinator.isolation.known_server_ids() == ["fs"]
        assert coordinator.base_branch == "develop"
        assert coordinator.delete_branch_on_remove is True
