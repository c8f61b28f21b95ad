"""
Task lifecycle across worktrees, merge previews and tool isolation.

A task runs in its own worktree with its own tool-server context:

    start_task    -> worktree created (or reused), isolation context created
    preview_merge -> conflicts of the task branch against a target, no side effects
    finish_task   -> context released, worktree optionally removed

The coordinator owns the three services it is given; nothing here is a
process-wide singleton.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field

from tandem.core.config import TandemConfig, load_config
from tandem.core.isolation import (
    ServerCatalogStore,
    TaskIsolationContext,
    TaskToolIsolationRegistry,
    build_custom_prompts_section,
    default_enabled_server_ids,
)
from tandem.core.merge import MergePreviewer, MergePreviewResult
from tandem.core.process import ProcessRunner
from tandem.core.worktree import (
    CreateWorktreeResult,
    DeleteWorktreeRequest,
    DeleteWorktreeResult,
    TaskDescriptor,
    WorktreeLifecycle,
    WorktreeManager,
)

logger = logging.getLogger(__name__)


class TaskSession(BaseModel):
    """A running task: where it works and which tool servers it may use."""

    task_id: str
    feature_id: str
    project_path: str
    worktree: CreateWorktreeResult
    context: TaskIsolationContext
    tool_prompt: str = Field(
        default="",
        description="Agent instructions for the task's enabled tool servers",
    )

    @property
    def work_dir(self) -> str:
        return self.worktree.path

    @property
    def branch(self) -> str:
        return self.worktree.branch


class TaskCoordinator:
    """
    Ties worktree creation, merge previews and tool isolation to task lifetimes.

    Example:
        >>> coordinator = TaskCoordinator.from_config(Path("/repo"))
        >>> session = await coordinator.start_task(
        ...     "/repo", TaskDescriptor(id="t1", title="Fix login issue"), feature_id="f1"
        ... )
        >>> preview = await coordinator.preview_merge(session, "main")
        >>> await coordinator.finish_task(session, remove_worktree=preview.can_merge_cleanly)
    """

    def __init__(
        self,
        worktrees: WorktreeManager,
        previewer: MergePreviewer,
        isolation: TaskToolIsolationRegistry,
        base_branch: str | None = None,
        delete_branch_on_remove: bool = False,
    ) -> None:
        self.worktrees = worktrees
        self.previewer = previewer
        self.isolation = isolation
        self.lifecycle = WorktreeLifecycle(worktrees)
        self.base_branch = base_branch
        self.delete_branch_on_remove = delete_branch_on_remove
        self._sessions: dict[str, TaskSession] = {}

    @classmethod
    def from_config(
        cls,
        project_dir: Path,
        config: TandemConfig | None = None,
        runner: ProcessRunner | None = None,
    ) -> TaskCoordinator:
        """Build a coordinator whose services share one runner and the project's catalog."""
        if config is None:
            config = load_config(project_dir)
        catalog = ServerCatalogStore.project(project_dir, config.isolation.servers_file).load()
        return cls(
            worktrees=WorktreeManager.from_config(config, runner=runner),
            previewer=MergePreviewer(runner),
            isolation=TaskToolIsolationRegistry(catalog.servers),
            base_branch=config.worktrees.base_branch,
            delete_branch_on_remove=config.worktrees.delete_branch_on_remove,
        )

    @property
    def sessions(self) -> list[TaskSession]:
        return list(self._sessions.values())

    async def start_task(
        self,
        project_path: str,
        task: TaskDescriptor,
        feature_id: str,
        server_ids: Iterable[str] | None = None,
        setup_script: str | None = None,
    ) -> TaskSession:
        """
        Give a task its worktree and tool-server context.

        Args:
            project_path: Main repository
            task: The task about to run
            feature_id: Feature the task belongs to
            server_ids: Tool servers to enable; defaults to the catalog's enabled entries
            setup_script: Overrides the configured setup script

        Raises:
            ConfigurationError, RepositoryStateError: From worktree creation.
                No isolation context is created in that case.
        """
        worktree = await self.lifecycle.ensure_worktree_for_task(
            project_path, task, base_branch=self.base_branch, setup_script=setup_script
        )
        if worktree.setup_script_result is not None and not worktree.setup_script_result.success:
            logger.warning(
                "Setup script failed for task %s in %s: %s",
                task.id,
                worktree.path,
                worktree.setup_script_result.error,
            )

        servers = self.isolation.servers
        requested = list(server_ids) if server_ids is not None else default_enabled_server_ids(servers)
        context = self.isolation.create_context(task.id, feature_id, requested, worktree.path)

        session = TaskSession(
            task_id=task.id,
            feature_id=feature_id,
            project_path=project_path,
            worktree=worktree,
            context=context,
            tool_prompt=build_custom_prompts_section(servers, context.enabled_server_ids),
        )
        self._sessions[task.id] = session
        logger.info("Started task %s on %s in %s", task.id, worktree.branch, worktree.path)
        return session

    async def preview_merge(
        self, session: TaskSession, target_branch: str | None = None
    ) -> MergePreviewResult:
        """Preview merging the task's branch into target_branch (the base branch by default)."""
        target = target_branch or self.base_branch
        if target is None:
            target = await self.worktrees.detect_base_branch(session.project_path)
        return await self.previewer.preview(
            session.project_path, source_branch=session.branch, target_branch=target
        )

    async def finish_task(
        self,
        session: TaskSession,
        remove_worktree: bool = False,
        delete_branch: bool | None = None,
    ) -> DeleteWorktreeResult | None:
        """
        End a task.

        The isolation context is released first so the task loses tool access
        before its worktree goes away.

        Returns:
            The removal result when remove_worktree is set, else None
        """
        self.isolation.release_context(session.task_id)
        self._sessions.pop(session.task_id, None)

        if not remove_worktree:
            logger.info("Finished task %s, keeping worktree %s", session.task_id, session.work_dir)
            return None

        if delete_branch is None:
            delete_branch = self.delete_branch_on_remove
        return await self.worktrees.remove(
            DeleteWorktreeRequest(
                project_path=session.project_path,
                worktree_path=session.work_dir,
                delete_branch=delete_branch,
            )
        )

    def shutdown(self) -> None:
        """Release every isolation context."""
        self._sessions.clear()
        self.isolation.cleanup()


__all__ = ["TaskCoordinator", "TaskSession"]
