"""
Configuration data models for tandem.

These models define the structure of .tandem.json and
~/.config/tandem/config.json files.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorktreeSettings(BaseModel):
    """
    Worktree placement and bootstrap settings.
    """
    dir_name: str = Field(
        default=".worktrees",
        min_length=1,
        description="Directory under the project root that holds worktrees"
    )
    base_branch: Optional[str] = Field(
        default=None,
        description="Base for new branches (HEAD when unset) and for stats (auto-detected when unset)"
    )
    setup_script: Optional[str] = Field(
        default=None,
        description="Shell command run inside each newly populated worktree"
    )
    setup_timeout_seconds: int = Field(
        default=300,
        ge=1,
        description="Wall-clock limit for the setup script, in seconds"
    )
    delete_branch_on_remove: bool = Field(
        default=False,
        description="Delete the worktree's branch when removing it (never main/master)"
    )
    initial_commit_message: str = Field(
        default="chore: initial commit",
        min_length=1,
        description="Message of the empty commit created in repositories without commits"
    )

    @field_validator("dir_name")
    @classmethod
    def reject_absolute_dir(cls, v: str) -> str:
        """Worktrees always live inside the project."""
        if v.startswith("/") or ".." in v.split("/"):
            raise ValueError(f"dir_name must be a relative path inside the project, got {v!r}")
        return v


class IsolationSettings(BaseModel):
    """
    Tool-server isolation settings.
    """
    servers_file: str = Field(
        default=".tandem/tool-servers.json",
        description="Tool-server catalog, relative to the project root"
    )


class TandemConfig(BaseModel):
    """
    Top-level tandem configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = TandemConfig(worktrees=WorktreeSettings(setup_script="npm ci"))
        >>> config.worktrees.setup_timeout_seconds
        300
    """
    worktrees: WorktreeSettings = Field(
        default_factory=WorktreeSettings,
        description="Worktree settings"
    )
    isolation: IsolationSettings = Field(
        default_factory=IsolationSettings,
        description="Tool-server isolation settings"
    )

    model_config = ConfigDict(
        extra="allow",
        validate_assignment=True,
    )
