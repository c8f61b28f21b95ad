"""Tests for tool-server catalog models and helpers."""

import pytest
from pydantic import ValidationError

from tandem.core.isolation import (
    HttpConnection,
    HttpTransport,
    ServerCatalog,
    StdioConnection,
    StdioTransport,
    ToolServerConfig,
    build_custom_prompts_section,
    default_enabled_server_ids,
    resolve_server_configs,
    validate_server_ids,
)


class TestTransportUnion:
    """The transport is resolved once, at validation time."""

    def test_stdio(self):
        server = ToolServerConfig.model_validate(
            {"id": "fs", "name": "FS", "transport": {"type": "stdio", "command": "npx"}}
        )
        assert isinstance(server.transport, StdioTransport)
        assert server.transport.args == []

    def test_http(self):
        server = ToolServerConfig.model_validate(
            {"id": "s", "name": "S", "transport": {"type": "http", "url": "https://x.dev/mcp"}}
        )
        assert isinstance(server.transport, HttpTransport)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            ToolServerConfig.model_validate(
                {"id": "s", "name": "S", "transport": {"type": "sse", "url": "https://x.dev"}}
            )

    def test_stdio_requires_command(self):
        with pytest.raises(ValidationError):
            ToolServerConfig.model_validate(
                {"id": "s", "name": "S", "transport": {"type": "stdio", "url": "https://x.dev"}}
            )

    def test_http_requires_scheme(self):
        with pytest.raises(ValidationError):
            HttpTransport(url="ftp://x.dev")


class TestServerCatalog:
    """Tests for the on-disk catalog model."""

    def test_duplicate_ids_rejected(self, sample_servers):
        with pytest.raises(ValidationError):
            ServerCatalog(servers=[sample_servers[0], sample_servers[0]])

    def test_get(self, sample_servers):
        catalog = ServerCatalog(servers=sample_servers)
        assert catalog.get("c").name == "Search"
        assert catalog.get("missing") is None


class TestHelpers:
    """Tests for catalog helper functions."""

    def test_validate_server_ids(self, sample_servers):
        valid, invalid = validate_server_ids(sample_servers, ["a", "invalid", "a", "c", "invalid"])
        assert valid == ["a", "c"]
        assert invalid == ["invalid"]

    def test_resolve_server_configs(self, sample_servers):
        resolved = resolve_server_configs(sample_servers, ["a", "c", "unknown"])

        assert set(resolved) == {"a", "c"}
        assert resolved["a"] == StdioConnection(command="npx", args=["-y", "server-fs"])
        assert resolved["c"] == HttpConnection(
            url="https://search.example.com/mcp", headers={"Authorization": "Bearer token"}
        )

    def test_sdk_dict_omits_empty_env(self, sample_servers):
        resolved = resolve_server_configs(sample_servers, ["a"])
        assert resolved["a"].to_sdk_dict() == {
            "type": "stdio",
            "command": "npx",
            "args": ["-y", "server-fs"],
        }

    def test_resolve_nothing(self, sample_servers):
        assert resolve_server_configs(sample_servers, []) == {}
        assert resolve_server_configs([], ["a"]) == {}

    def test_default_enabled(self, sample_servers):
        assert default_enabled_server_ids(sample_servers) == ["a"]

    def test_custom_prompts_section(self, sample_servers):
        section = build_custom_prompts_section(sample_servers, ["a", "c"])
        assert section.startswith("## Tool Server Instructions")
        assert "### Filesystem" in section
        assert "Only touch files inside the worktree." in section
        assert "### Search" not in section

    def test_custom_prompts_section_empty(self, sample_servers):
        assert build_custom_prompts_section(sample_servers, ["c"]) == ""
