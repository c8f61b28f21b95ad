"""
Configuration loading with multi-layer merging.

Precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tandem.core.exceptions import ConfigurationError

from .models import TandemConfig

logger = logging.getLogger(__name__)

# Cached per project directory so one process can serve several repos
_config_cache: dict[Path, TandemConfig] = {}


def get_xdg_config_home() -> Path:
    """Return $XDG_CONFIG_HOME, defaulting to ~/.config."""
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/tandem/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "tandem" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Project directory (defaults to current directory)
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".tandem.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two dictionaries, `override` winning on conflicts.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 20}})
        {'a': 1, 'b': {'x': 10, 'y': 20}}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON object from a file.

    Returns None if the file doesn't exist, can't be parsed, or does not hold
    an object. Broken config files are logged and skipped.
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if isinstance(data, dict):
        return data
    logger.warning("Ignoring config at %s: top-level value is not an object", path)
    return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        TANDEM_WORKTREES_DIR - overrides worktrees.dir_name
        TANDEM_SETUP_TIMEOUT - overrides worktrees.setup_timeout_seconds
        TANDEM_BASE_BRANCH - overrides worktrees.base_branch
    """
    result = config_dict.copy()
    worktrees = dict(result.get("worktrees") or {})

    if dir_name := os.environ.get("TANDEM_WORKTREES_DIR"):
        worktrees["dir_name"] = dir_name

    if timeout_str := os.environ.get("TANDEM_SETUP_TIMEOUT"):
        try:
            timeout = int(timeout_str)
        except ValueError:
            logger.warning("Invalid TANDEM_SETUP_TIMEOUT value '%s', ignoring", timeout_str)
        else:
            if timeout < 1:
                logger.warning("TANDEM_SETUP_TIMEOUT must be >= 1, got %d, ignoring", timeout)
            else:
                worktrees["setup_timeout_seconds"] = timeout

    if base_branch := os.environ.get("TANDEM_BASE_BRANCH"):
        worktrees["base_branch"] = base_branch

    if worktrees:
        result["worktrees"] = worktrees
    return result


def get_default_config() -> dict[str, Any]:
    """Hardcoded defaults, before any file or env layer."""
    return {
        "worktrees": {
            "dir_name": ".worktrees",
            "setup_timeout_seconds": 300,
            "delete_branch_on_remove": False,
        },
        "isolation": {"servers_file": ".tandem/tool-servers.json"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> TandemConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TANDEM_*)
        2. Project config (.tandem.json)
        3. User config (~/.config/tandem/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .tandem.json from (defaults to cwd)
        use_cache: If True, return cached config from a previous load

    Raises:
        ConfigurationError: If the merged config fails validation

    Example:
        >>> config = load_config(Path("/repo"))
        >>> config.worktrees.dir_name
        '.worktrees'
    """
    cache_key = (project_dir or Path.cwd()).resolve()
    if use_cache and cache_key in _config_cache:
        return _config_cache[cache_key]

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    try:
        config = TandemConfig(**merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", project_dir=str(cache_key)) from e

    _config_cache[cache_key] = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    _config_cache.clear()
