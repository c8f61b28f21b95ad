"""
Merge preview models.

MergePreviewResult enforces its own consistency: a result reports conflicts
exactly when its conflict list is non-empty, and only a successful,
conflict-free probe carries a result tree.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class ConflictType(str, Enum):
    """Kinds of merge conflict git can report."""

    CONTENT = "content"
    MODIFY_DELETE = "modify-delete"
    ADD_ADD = "add-add"
    RENAME_DELETE = "rename-delete"
    RENAME_RENAME = "rename-rename"
    UNKNOWN = "unknown"


class MergeConflict(BaseModel):
    """
    A single conflicting path.

    Attributes:
        file_path: Path relative to the repository root
        conflict_type: Classified kind of conflict
        description: Git's message or a description inferred from index stages
        ancestor_mode: File mode at stage 1 (common ancestor), if present
        ours_mode: File mode at stage 2 (target side), if present
        theirs_mode: File mode at stage 3 (source side), if present
    """

    file_path: str
    conflict_type: ConflictType
    description: str
    ancestor_mode: str | None = None
    ours_mode: str | None = None
    theirs_mode: str | None = None


@dataclass(frozen=True)
class Classified:
    """A CONFLICT line whose type and path were both recognized."""

    conflict: MergeConflict


@dataclass(frozen=True)
class Unclassified:
    """A CONFLICT line that could not be fully classified."""

    raw_line: str
    reason: str
    conflict: MergeConflict | None = None


ConflictLine = Classified | Unclassified


class MergeTreeParseResult(BaseModel):
    """Structured view of `git merge-tree --write-tree` output."""

    has_conflicts: bool
    conflicts: list[MergeConflict] = Field(default_factory=list)
    result_tree: str | None = None
    unclassified: list[str] = Field(
        default_factory=list,
        description="Raw CONFLICT lines that degraded to 'unknown' or were skipped",
    )


class MergePreviewResult(BaseModel):
    """Outcome of a non-destructive merge preview."""

    success: bool
    has_conflicts: bool = False
    conflict_count: int = Field(default=0, ge=0)
    conflicts: list[MergeConflict] = Field(default_factory=list)
    merge_base: str | None = None
    result_tree: str | None = None
    source_branch: str | None = None
    target_branch: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def check_consistency(self) -> "MergePreviewResult":
        if self.has_conflicts != bool(self.conflicts):
            raise ValueError("has_conflicts must be true exactly when conflicts is non-empty")
        if self.conflict_count != len(self.conflicts):
            raise ValueError("conflict_count must equal the number of conflicts")
        clean = self.success and not self.has_conflicts
        if (self.result_tree is not None) != clean:
            raise ValueError("result_tree is set exactly for a successful, conflict-free preview")
        return self

    @classmethod
    def failure(
        cls,
        error: str,
        source_branch: str | None = None,
        target_branch: str | None = None,
    ) -> "MergePreviewResult":
        """Build a failed preview carrying an error message."""
        return cls(
            success=False,
            error=error,
            source_branch=source_branch,
            target_branch=target_branch,
        )

    @property
    def can_merge_cleanly(self) -> bool:
        return self.success and not self.has_conflicts
