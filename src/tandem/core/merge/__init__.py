"""
Merge-conflict previews.

Example:
    >>> from tandem.core.merge import MergePreviewer, parse_merge_tree_output
    >>> parsed = parse_merge_tree_output("", "CONFLICT (content): Merge conflict in a.py")
    >>> parsed.has_conflicts
    True
"""

from .models import (
    Classified,
    ConflictType,
    MergeConflict,
    MergePreviewResult,
    MergeTreeParseResult,
    Unclassified,
)
from .parser import classify_conflict, classify_conflict_line, parse_merge_tree_output
from .preview import MergePreviewer

__all__ = [
    "MergePreviewer",
    "MergePreviewResult",
    "MergeConflict",
    "MergeTreeParseResult",
    "ConflictType",
    "Classified",
    "Unclassified",
    "classify_conflict",
    "classify_conflict_line",
    "parse_merge_tree_output",
]
