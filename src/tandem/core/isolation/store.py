"""
Storage for the tool-server catalog.

The catalog lives at `.tandem/tool-servers.json` in the project by default:

    {"version": 1, "servers": [{"id": "fs", "name": "Filesystem", ...}]}

Writes go to a temp file in the same directory and are renamed into place so
a crashed save never leaves a half-written catalog behind.

Example:
    store = ServerCatalogStore.project(Path("/repo"))
    catalog = store.load()
    registry.update_global_servers(catalog.servers)
"""

import json
import logging
import tempfile
from pathlib import Path

from pydantic import ValidationError

from tandem.core.exceptions import ConfigurationError
from tandem.core.isolation.models import ServerCatalog

logger = logging.getLogger(__name__)

DEFAULT_SERVERS_FILE = Path(".tandem") / "tool-servers.json"


class ServerCatalogStore:
    """
    Reads and writes a ServerCatalog JSON file.

    Attributes:
        catalog_file: Path to the catalog JSON file
    """

    def __init__(self, catalog_file: Path) -> None:
        self.catalog_file = Path(catalog_file)

    def load(self) -> ServerCatalog:
        """
        Load the catalog from disk.

        Returns an empty catalog if the file doesn't exist yet.

        Raises:
            ConfigurationError: If the file is not valid JSON or fails validation
        """
        if not self.catalog_file.exists():
            logger.debug("No tool-server catalog at %s", self.catalog_file)
            return ServerCatalog()

        try:
            with open(self.catalog_file, encoding="utf-8") as f:
                data = json.load(f)
            catalog = ServerCatalog.model_validate(data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in tool-server catalog {self.catalog_file}: {e}",
                path=str(self.catalog_file),
            ) from e
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid tool-server catalog {self.catalog_file}: {e}",
                path=str(self.catalog_file),
            ) from e

        logger.debug("Loaded %d tool servers from %s", len(catalog.servers), self.catalog_file)
        return catalog

    def save(self, catalog: ServerCatalog) -> Path:
        """
        Write the catalog to disk atomically.

        Returns:
            Path to the saved catalog file
        """
        self.catalog_file.parent.mkdir(parents=True, exist_ok=True)
        json_str = json.dumps(catalog.model_dump(mode="json", exclude_none=True), indent=2)

        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=self.catalog_file.parent,
            delete=False,
            suffix=".tmp",
        ) as tmp:
            tmp.write(json_str)
            tmp.flush()
            tmp_path = Path(tmp.name)

        tmp_path.replace(self.catalog_file)
        return self.catalog_file

    @classmethod
    def project(
        cls, project_dir: Path | None = None, servers_file: Path | str | None = None
    ) -> "ServerCatalogStore":
        """
        Create a store for a project's catalog.

        Args:
            project_dir: Project directory (defaults to current directory)
            servers_file: Catalog path relative to project_dir
        """
        if project_dir is None:
            project_dir = Path.cwd()
        return cls(Path(project_dir) / (servers_file or DEFAULT_SERVERS_FILE))


__all__ = ["DEFAULT_SERVERS_FILE", "ServerCatalogStore"]
