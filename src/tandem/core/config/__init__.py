"""
Configuration models and loading.

Pydantic models for tandem configuration with multi-layer merging:
defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    deep_merge,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import IsolationSettings, TandemConfig, WorktreeSettings

__all__ = [
    # Models
    "IsolationSettings",
    "TandemConfig",
    "WorktreeSettings",
    # Loader functions
    "clear_cache",
    "deep_merge",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]
