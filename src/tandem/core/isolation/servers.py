"""
Helpers over the tool-server catalog.

- validate_server_ids: split requested IDs into known and unknown
- resolve_server_configs: turn catalog entries into connection descriptors
- default_enabled_server_ids: IDs enabled by default for new tasks
- build_custom_prompts_section: agent instructions for the enabled servers
"""

from collections.abc import Iterable, Sequence

from tandem.core.isolation.models import (
    HttpConnection,
    HttpTransport,
    ResolvedServerConfig,
    StdioConnection,
    StdioTransport,
    ToolServerConfig,
)


def validate_server_ids(
    servers: Sequence[ToolServerConfig],
    requested_ids: Iterable[str],
) -> tuple[list[str], list[str]]:
    """
    Split requested IDs into those present in the catalog and those missing.

    Order is preserved and duplicates are dropped.

    Returns:
        Tuple of (valid_ids, invalid_ids)

    Example:
        >>> validate_server_ids(servers, ["fs", "deleted-server"])
        (['fs'], ['deleted-server'])
    """
    known = {server.id for server in servers}
    valid: list[str] = []
    invalid: list[str] = []
    for server_id in requested_ids:
        bucket = valid if server_id in known else invalid
        if server_id not in bucket:
            bucket.append(server_id)
    return valid, invalid


def resolve_transport(transport: StdioTransport | HttpTransport) -> ResolvedServerConfig:
    """Convert a catalog transport into a connection descriptor."""
    if isinstance(transport, StdioTransport):
        return StdioConnection(
            command=transport.command,
            args=list(transport.args),
            env=dict(transport.env) or None,
        )
    return HttpConnection(url=transport.url, headers=dict(transport.headers) or None)


def resolve_server_configs(
    servers: Sequence[ToolServerConfig],
    enabled_ids: Iterable[str],
) -> dict[str, ResolvedServerConfig]:
    """
    Resolve the enabled servers into descriptors keyed by server ID.

    IDs missing from the catalog are ignored.
    """
    wanted = set(enabled_ids)
    if not servers or not wanted:
        return {}
    return {server.id: resolve_transport(server.transport) for server in servers if server.id in wanted}


def default_enabled_server_ids(servers: Sequence[ToolServerConfig]) -> list[str]:
    """IDs of catalog entries whose `enabled` flag is set."""
    return [server.id for server in servers if server.enabled]


def build_custom_prompts_section(
    servers: Sequence[ToolServerConfig],
    enabled_ids: Iterable[str],
) -> str:
    """
    Build a prompt section with the custom instructions of enabled servers.

    Returns an empty string when no enabled server has instructions.
    """
    wanted = set(enabled_ids)
    prompts = [
        (server.name, server.custom_prompt.strip())
        for server in servers
        if server.id in wanted and server.custom_prompt and server.custom_prompt.strip()
    ]
    if not prompts:
        return ""

    lines = ["## Tool Server Instructions", ""]
    for name, prompt in prompts:
        lines.extend([f"### {name}", prompt, ""])
    return "\n".join(lines)


__all__ = [
    "build_custom_prompts_section",
    "default_enabled_server_ids",
    "resolve_server_configs",
    "resolve_transport",
    "validate_server_ids",
]
