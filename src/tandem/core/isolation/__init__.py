"""
Task-scoped tool-server isolation.

Example:
    >>> from tandem.core.isolation import ServerCatalogStore, TaskToolIsolationRegistry
    >>> registry = TaskToolIsolationRegistry(ServerCatalogStore.project().load().servers)
    >>> registry.create_context("t1", "f1", ["fs"], "/work").active
    True
"""

from .models import (
    AccessDecision,
    HttpConnection,
    HttpTransport,
    IsolationStats,
    ResolvedServerConfig,
    ServerCatalog,
    StdioConnection,
    StdioTransport,
    TaskIsolationContext,
    ToolServerConfig,
    Transport,
)
from .registry import TaskToolIsolationRegistry
from .servers import (
    build_custom_prompts_section,
    default_enabled_server_ids,
    resolve_server_configs,
    resolve_transport,
    validate_server_ids,
)
from .store import DEFAULT_SERVERS_FILE, ServerCatalogStore

__all__ = [
    # Registry
    "TaskToolIsolationRegistry",
    # Models
    "AccessDecision",
    "HttpConnection",
    "HttpTransport",
    "IsolationStats",
    "ResolvedServerConfig",
    "ServerCatalog",
    "StdioConnection",
    "StdioTransport",
    "TaskIsolationContext",
    "ToolServerConfig",
    "Transport",
    # Helpers
    "build_custom_prompts_section",
    "default_enabled_server_ids",
    "resolve_server_configs",
    "resolve_transport",
    "validate_server_ids",
    # Storage
    "DEFAULT_SERVERS_FILE",
    "ServerCatalogStore",
]
