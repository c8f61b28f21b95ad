"""Tests for the tool-server catalog store."""

import json

import pytest

from tandem.core.exceptions import ConfigurationError
from tandem.core.isolation import ServerCatalog, ServerCatalogStore, StdioTransport


class TestServerCatalogStore:
    """Tests for load/save."""

    def test_missing_file_is_empty(self, tmp_path):
        catalog = ServerCatalogStore(tmp_path / "none.json").load()
        assert catalog.servers == []
        assert catalog.version == 1

    def test_round_trip(self, tmp_path, sample_servers):
        store = ServerCatalogStore(tmp_path / "nested" / "servers.json")

        path = store.save(ServerCatalog(servers=sample_servers))
        loaded = store.load()

        assert path.exists()
        assert [s.id for s in loaded.servers] == ["a", "c"]
        assert isinstance(loaded.servers[0].transport, StdioTransport)
        assert list(path.parent.glob("*.tmp")) == []

    def test_saved_json_shape(self, tmp_path, sample_servers):
        path = ServerCatalogStore(tmp_path / "servers.json").save(ServerCatalog(servers=sample_servers))

        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["servers"][0]["transport"]["type"] == "stdio"
        assert "description" not in data["servers"][0]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "servers.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            ServerCatalogStore(path).load()

    def test_invalid_catalog(self, tmp_path):
        path = tmp_path / "servers.json"
        path.write_text(json.dumps({"servers": [{"id": "x", "name": "X", "transport": {"type": "carrier-pigeon"}}]}))

        with pytest.raises(ConfigurationError):
            ServerCatalogStore(path).load()

    def test_project_location(self, tmp_path):
        store = ServerCatalogStore.project(tmp_path)
        assert store.catalog_file == tmp_path / ".tandem" / "tool-servers.json"

    def test_project_custom_location(self, tmp_path):
        store = ServerCatalogStore.project(tmp_path, "config/servers.json")
        assert store.catalog_file == tmp_path / "config" / "servers.json"
