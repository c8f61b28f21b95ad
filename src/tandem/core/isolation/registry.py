"""
Per-task tool-server isolation.

TaskToolIsolationRegistry hands each running task a TaskIsolationContext
listing the tool servers it may use, and answers "may task T call server S?"
just before a tool invocation. Tasks running side by side never see each
other's servers.

The registry is an ordinary object owned by whoever supervises task
execution; there is no module-level instance. Its methods are synchronous
and never await, so with cooperative scheduling each call is atomic with
respect to the others.

A context's enabled servers are validated once, against the catalog snapshot
current when the context is created. Later catalog updates neither narrow nor
widen existing contexts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from tandem.core.exceptions import ServerValidationError
from tandem.core.isolation.models import (
    AccessDecision,
    IsolationStats,
    ResolvedServerConfig,
    TaskIsolationContext,
    ToolServerConfig,
)
from tandem.core.isolation.servers import resolve_server_configs, validate_server_ids

logger = logging.getLogger(__name__)


class TaskToolIsolationRegistry:
    """
    Issues and enforces task-scoped tool-server access.

    Example:
        >>> registry = TaskToolIsolationRegistry()
        >>> registry.update_global_servers(catalog.servers)
        >>> ctx = registry.create_context("t1", "f1", ["fs", "missing"], "/work")
        >>> ctx.enabled_server_ids
        ['fs']
        >>> registry.validate_access("t1", "github").allowed
        False
        >>> registry.release_context("t1")
        True
    """

    def __init__(self, servers: Sequence[ToolServerConfig] | None = None) -> None:
        self._contexts: dict[str, TaskIsolationContext] = {}
        self._servers: tuple[ToolServerConfig, ...] = tuple(servers or ())
        logger.debug("Task tool isolation registry initialized")

    # -- Catalog ------------------------------------------------------------

    def update_global_servers(self, servers: Sequence[ToolServerConfig]) -> None:
        """Replace the catalog snapshot used for contexts created from now on."""
        self._servers = tuple(servers)
        logger.debug("Updated global tool servers: %d configured", len(self._servers))

    @property
    def servers(self) -> tuple[ToolServerConfig, ...]:
        """The current catalog snapshot."""
        return self._servers

    def known_server_ids(self) -> list[str]:
        """IDs in the current catalog snapshot."""
        return [server.id for server in self._servers]

    # -- Contexts -----------------------------------------------------------

    def create_context(
        self,
        task_id: str,
        feature_id: str,
        enabled_server_ids: Iterable[str],
        work_dir: str,
        strict: bool = False,
    ) -> TaskIsolationContext:
        """
        Create the isolation context for a task.

        Unknown server IDs are dropped with a warning. An existing context for
        the same task is deactivated and replaced.

        Args:
            task_id: Unique identifier of this task execution
            feature_id: Feature the task belongs to
            enabled_server_ids: Server IDs the task asks for
            work_dir: The task's working directory
            strict: Raise instead of dropping unknown IDs

        Returns:
            The new, active context

        Raises:
            ServerValidationError: Only when strict=True and unknown IDs were given
        """
        valid_ids, invalid_ids = validate_server_ids(self._servers, enabled_server_ids)

        if invalid_ids:
            error = ServerValidationError(task_id, invalid_ids)
            if strict:
                raise error
            logger.warning("%s; ignoring them", error)

        if task_id in self._contexts:
            logger.warning("Task context already exists for task %s, replacing", task_id)
            self.release_context(task_id)

        context = TaskIsolationContext(
            task_id=task_id,
            feature_id=feature_id,
            enabled_server_ids=valid_ids,
            resolved_configs=resolve_server_configs(self._servers, valid_ids),
            work_dir=work_dir,
        )
        self._contexts[task_id] = context

        logger.info(
            "Created tool isolation context for task %s (feature: %s) with servers: [%s]",
            task_id,
            feature_id,
            ", ".join(valid_ids),
        )
        return context

    def get_context(self, task_id: str) -> TaskIsolationContext | None:
        """Return the task's active context, or None if missing or inactive."""
        context = self._contexts.get(task_id)
        if context is not None and not context.active:
            logger.warning("Attempted to access inactive context for task %s", task_id)
            return None
        return context

    def get_tool_configs(self, task_id: str) -> dict[str, ResolvedServerConfig]:
        """Resolved server configs for a task; empty when it has no active context."""
        context = self.get_context(task_id)
        if context is None:
            logger.debug("No tool isolation context found for task %s", task_id)
            return {}
        return dict(context.resolved_configs)

    def validate_access(self, task_id: str, server_id: str) -> AccessDecision:
        """
        Decide whether a task may invoke a tool server.

        Call this immediately before the invocation.
        """
        context = self.get_context(task_id)
        if context is None:
            return AccessDecision(
                allowed=False,
                reason=f"No active tool isolation context for task {task_id}",
            )

        if server_id not in context.enabled_server_ids:
            return AccessDecision(
                allowed=False,
                reason=(
                    f"Tool server '{server_id}' is not enabled for task {task_id}. "
                    f"Enabled servers: [{', '.join(context.enabled_server_ids)}]"
                ),
                context=context,
            )

        return AccessDecision(allowed=True, context=context)

    def release_context(self, task_id: str) -> bool:
        """
        Deactivate and drop a task's context.

        Returns:
            True if a context existed, False otherwise
        """
        context = self._contexts.pop(task_id, None)
        if context is None:
            logger.debug("No context to release for task %s", task_id)
            return False

        context.active = False
        lifetime_ms = int((datetime.now(timezone.utc) - context.created_at).total_seconds() * 1000)
        logger.info(
            "Released tool isolation context for task %s (feature: %s), was active for %dms",
            task_id,
            context.feature_id,
            lifetime_ms,
        )
        return True

    # -- Introspection ------------------------------------------------------

    def get_stats(self) -> IsolationStats:
        """Count active contexts and how many of them use each server."""
        stats = IsolationStats()
        for task_id, context in self._contexts.items():
            if not context.active:
                continue
            stats.task_ids.append(task_id)
            for server_id in context.enabled_server_ids:
                stats.server_usage[server_id] = stats.server_usage.get(server_id, 0) + 1
                stats.total_servers_in_use += 1
        stats.active_contexts = len(stats.task_ids)
        return stats

    def get_tasks_using_server(self, server_id: str) -> list[str]:
        """Task IDs whose active context enables server_id."""
        return [
            task_id
            for task_id, context in self._contexts.items()
            if context.active and server_id in context.enabled_server_ids
        ]

    def cleanup(self) -> None:
        """Deactivate and drop every context (process shutdown)."""
        count = len(self._contexts)
        for context in self._contexts.values():
            context.active = False
        self._contexts.clear()
        logger.info("Cleaned up %d tool isolation contexts", count)


__all__ = ["TaskToolIsolationRegistry"]
