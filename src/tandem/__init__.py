"""
Tandem - concurrent task workspaces.

Git worktree orchestration, merge-conflict previews and per-task tool-server
isolation for running several coding tasks side by side in one repository.
"""

__version__ = "0.1.0"

# Re-export the main services for convenience
from tandem.core.config.models import TandemConfig
from tandem.core.isolation.registry import TaskToolIsolationRegistry
from tandem.core.merge.preview import MergePreviewer
from tandem.core.worktree.manager import WorktreeManager

__all__ = [
    "MergePreviewer",
    "TandemConfig",
    "TaskToolIsolationRegistry",
    "WorktreeManager",
    "__version__",
]
