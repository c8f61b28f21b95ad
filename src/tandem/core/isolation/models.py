"""
Tool-server catalog and task isolation models.

A tool server is reached over one of two transports:

- stdio: a local process (command, args, env)
- http: a remote endpoint (url, headers)

The transport is a discriminated union on its `type` field, resolved when a
catalog entry is validated, so downstream code never re-checks the tag.

Example:
    >>> server = ToolServerConfig.model_validate(
    ...     {
    ...         "id": "fs",
    ...         "name": "Filesystem",
    ...         "transport": {"type": "stdio", "command": "npx", "args": ["-y", "server-fs"]},
    ...     }
    ... )
    >>> isinstance(server.transport, StdioTransport)
    True
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StdioTransport(BaseModel):
    """Launch the server as a local process and talk over stdin/stdout."""

    type: Literal["stdio"] = "stdio"
    command: str = Field(..., min_length=1, description="Command to execute (e.g. npx, uvx)")
    args: list[str] = Field(default_factory=list, description="Command arguments")
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment variables for the server process",
    )


class HttpTransport(BaseModel):
    """Connect to a remote server over HTTP(S)."""

    type: Literal["http"] = "http"
    url: str = Field(..., min_length=1, description="Server URL")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra request headers (e.g. for authentication)",
    )

    @field_validator("url")
    @classmethod
    def require_http_scheme(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"HTTP transport URL must start with http:// or https://, got {v!r}")
        return v


Transport = Annotated[StdioTransport | HttpTransport, Field(discriminator="type")]


class ToolServerConfig(BaseModel):
    """
    One entry of the global tool-server catalog.

    Attributes:
        id: Unique identifier referenced by tasks
        name: Human-readable name
        transport: How to reach the server
        enabled: Whether new tasks enable this server by default
        description: Optional description
        custom_prompt: Optional guidance for the agent on using this server
        tags: Free-form labels
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    transport: Transport
    enabled: bool = True
    description: str | None = None
    custom_prompt: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(populate_by_name=True)


class StdioConnection(BaseModel):
    """Ready-to-use descriptor for a stdio server."""

    type: Literal["stdio"] = "stdio"
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None

    def to_sdk_dict(self) -> dict[str, Any]:
        """Serialize for an agent SDK, omitting an empty env."""
        return self.model_dump(exclude_none=True)


class HttpConnection(BaseModel):
    """Ready-to-use descriptor for an HTTP server."""

    type: Literal["http"] = "http"
    url: str
    headers: dict[str, str] | None = None

    def to_sdk_dict(self) -> dict[str, Any]:
        """Serialize for an agent SDK, omitting empty headers."""
        return self.model_dump(exclude_none=True)


ResolvedServerConfig = Annotated[StdioConnection | HttpConnection, Field(discriminator="type")]


class TaskIsolationContext(BaseModel):
    """
    The tool servers one task may use.

    enabled_server_ids was validated against the catalog when the context
    was created and is not re-checked afterwards.
    """

    task_id: str
    feature_id: str
    enabled_server_ids: list[str] = Field(default_factory=list)
    resolved_configs: dict[str, ResolvedServerConfig] = Field(default_factory=dict)
    work_dir: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    active: bool = True

    def sdk_configs(self) -> dict[str, dict[str, Any]]:
        """Resolved configs serialized for an agent SDK, keyed by server ID."""
        return {server_id: cfg.to_sdk_dict() for server_id, cfg in self.resolved_configs.items()}


class AccessDecision(BaseModel):
    """Whether a task may invoke a tool server, and why not if it may not."""

    allowed: bool
    reason: str | None = None
    context: TaskIsolationContext | None = None


class IsolationStats(BaseModel):
    """Snapshot of active contexts and per-server usage."""

    active_contexts: int = 0
    total_servers_in_use: int = 0
    task_ids: list[str] = Field(default_factory=list)
    server_usage: dict[str, int] = Field(default_factory=dict)


class ServerCatalog(BaseModel):
    """On-disk tool-server catalog: `{"version": 1, "servers": [...]}`."""

    version: int = 1
    servers: list[ToolServerConfig] = Field(default_factory=list)

    @field_validator("servers")
    @classmethod
    def unique_ids(cls, v: list[ToolServerConfig]) -> list[ToolServerConfig]:
        seen: set[str] = set()
        for server in v:
            if server.id in seen:
                raise ValueError(f"Duplicate tool server id: {server.id}")
            seen.add(server.id)
        return v

    def get(self, server_id: str) -> ToolServerConfig | None:
        return next((s for s in self.servers if s.id == server_id), None)
