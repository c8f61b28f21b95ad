"""
Parse `git merge-tree --write-tree` output into structured conflicts.

Two sources are combined:

1. `CONFLICT (<type>): <description>` lines on stderr, classified by type and
   mined for the file path with a type-specific pattern.
2. Index-style entries on stdout, `<mode> <sha> <stage>\\t<path>` with stage
   1 (ancestor), 2 (ours) or 3 (theirs). Paths already reported on stderr are
   not repeated; for the rest the conflict type is inferred from the stages.

If nothing conflicts and the first stdout line is a bare 40-hex object ID,
that ID is the tree the merge would produce.

Git's wording differs across versions, so nothing here raises: lines that
cannot be classified degrade to ConflictType.UNKNOWN (or are skipped when no
path can be found) and are logged so new formats can be spotted.
"""

from __future__ import annotations

import logging
import re

from tandem.core.merge.models import (
    Classified,
    ConflictLine,
    ConflictType,
    MergeConflict,
    MergeTreeParseResult,
    Unclassified,
)

logger = logging.getLogger(__name__)

_CONFLICT_RE = re.compile(r"^CONFLICT \(([^)]+)\): (.+)$")
_INDEX_ENTRY_RE = re.compile(r"^(\d{6})\s+([a-f0-9]{40})\s+(\d)\t(.+)$")
_TREE_RE = re.compile(r"^[a-f0-9]{40}$")

_MERGE_CONFLICT_IN_RE = re.compile(r"Merge conflict in (.+)")
_MODIFY_DELETE_RE = re.compile(r"(.+?) deleted in .+ and modified in")
_RENAMED_RE = re.compile(r"(.+?) was renamed")

# Tried in order for types we do not recognize
_FALLBACK_PATH_PATTERNS = (_MERGE_CONFLICT_IN_RE, _MODIFY_DELETE_RE, _RENAMED_RE)


def _conflict_type_for(raw_type: str) -> ConflictType | None:
    raw = raw_type.lower()
    if raw == "content":
        return ConflictType.CONTENT
    if raw == "modify/delete":
        return ConflictType.MODIFY_DELETE
    if raw == "add/add":
        return ConflictType.ADD_ADD
    if "rename" in raw:
        return ConflictType.RENAME_DELETE if "delete" in raw else ConflictType.RENAME_RENAME
    return None


def _path_pattern_for(conflict_type: ConflictType) -> re.Pattern[str]:
    if conflict_type in (ConflictType.CONTENT, ConflictType.ADD_ADD):
        return _MERGE_CONFLICT_IN_RE
    if conflict_type is ConflictType.MODIFY_DELETE:
        return _MODIFY_DELETE_RE
    return _RENAMED_RE


def classify_conflict_line(line: str) -> ConflictLine | None:
    """
    Classify one line of merge-tree messages.

    Returns:
        Classified when both type and path were recognized, Unclassified when
        the line is a CONFLICT message missing one of them (with a best-effort
        UNKNOWN conflict if a path could still be found), or None for lines
        that are not CONFLICT messages at all.

    Example:
        >>> classify_conflict_line("CONFLICT (content): Merge conflict in src/a.ts")
        Classified(conflict=MergeConflict(file_path='src/a.ts', ...))
    """
    match = _CONFLICT_RE.match(line)
    if not match:
        return None

    raw_type, description = match.group(1), match.group(2)
    conflict_type = _conflict_type_for(raw_type)

    if conflict_type is not None:
        path_match = _path_pattern_for(conflict_type).search(description)
        if path_match:
            return Classified(
                MergeConflict(
                    file_path=path_match.group(1).strip(),
                    conflict_type=conflict_type,
                    description=description,
                )
            )
        return Unclassified(line, f"no file path in {raw_type!r} message")

    for pattern in _FALLBACK_PATH_PATTERNS:
        path_match = pattern.search(description)
        if path_match:
            return Unclassified(
                line,
                f"unrecognized conflict type {raw_type!r}",
                MergeConflict(
                    file_path=path_match.group(1).strip(),
                    conflict_type=ConflictType.UNKNOWN,
                    description=description,
                ),
            )
    return Unclassified(line, f"unrecognized conflict type {raw_type!r} and no file path")


def classify_conflict(
    ancestor_exists: bool,
    ours_exists: bool,
    theirs_exists: bool,
) -> ConflictType:
    """
    Infer a conflict type from which index stages exist for a path.

    Example:
        >>> classify_conflict(False, True, True)
        <ConflictType.ADD_ADD: 'add-add'>
    """
    if ours_exists and theirs_exists:
        return ConflictType.CONTENT if ancestor_exists else ConflictType.ADD_ADD
    if ancestor_exists and (ours_exists or theirs_exists):
        return ConflictType.MODIFY_DELETE
    return ConflictType.UNKNOWN


def _describe_stages(conflict_type: ConflictType, ours_exists: bool) -> str:
    if conflict_type is ConflictType.ADD_ADD:
        return "Both branches added this file with different content"
    if conflict_type is ConflictType.CONTENT:
        return "Merge conflict in file content"
    if conflict_type is ConflictType.MODIFY_DELETE:
        if ours_exists:
            return "File was modified in current branch but deleted in incoming branch"
        return "File was deleted in current branch but modified in incoming branch"
    return "Merge conflict"


def _non_empty_lines(text: str) -> list[str]:
    return [line.rstrip("\r") for line in text.strip().splitlines() if line.strip()]


def parse_merge_tree_output(stdout: str, stderr: str) -> MergeTreeParseResult:
    """
    Parse captured merge-tree output.

    Args:
        stdout: Standard output of `git merge-tree --write-tree`
        stderr: Standard error of the same invocation

    Returns:
        MergeTreeParseResult; never raises on unexpected output

    Example:
        >>> result = parse_merge_tree_output("", "CONFLICT (content): Merge conflict in src/a.ts")
        >>> result.conflicts[0].file_path
        'src/a.ts'
    """
    conflicts: list[MergeConflict] = []
    unclassified: list[str] = []

    for line in _non_empty_lines(stderr):
        classified = classify_conflict_line(line)
        if classified is None:
            continue
        if isinstance(classified, Classified):
            conflicts.append(classified.conflict)
            continue
        logger.warning("Unclassified merge-tree conflict (%s): %s", classified.reason, line)
        unclassified.append(line)
        if classified.conflict is not None:
            conflicts.append(classified.conflict)

    stdout_lines = _non_empty_lines(stdout)

    # path -> {stage: mode}, in first-seen order
    staged: dict[str, dict[int, str]] = {}
    for line in stdout_lines:
        match = _INDEX_ENTRY_RE.match(line)
        if not match:
            continue
        mode, _sha, stage_text, file_path = match.groups()
        stage = int(stage_text)
        if stage == 0:
            continue
        staged.setdefault(file_path, {})[stage] = mode

    reported = {conflict.file_path for conflict in conflicts}
    for file_path, modes in staged.items():
        if file_path in reported:
            continue
        ancestor, ours, theirs = 1 in modes, 2 in modes, 3 in modes
        conflict_type = classify_conflict(ancestor, ours, theirs)
        if conflict_type is ConflictType.UNKNOWN:
            logger.warning(
                "Unclassified merge-tree index entry for %s (stages %s)",
                file_path,
                sorted(modes),
            )
        conflicts.append(
            MergeConflict(
                file_path=file_path,
                conflict_type=conflict_type,
                description=_describe_stages(conflict_type, ours),
                ancestor_mode=modes.get(1),
                ours_mode=modes.get(2),
                theirs_mode=modes.get(3),
            )
        )

    result_tree = None
    if not conflicts and stdout_lines and _TREE_RE.match(stdout_lines[0].strip()):
        result_tree = stdout_lines[0].strip()

    return MergeTreeParseResult(
        has_conflicts=bool(conflicts),
        conflicts=conflicts,
        result_tree=result_tree,
        unclassified=unclassified,
    )


__all__ = ["classify_conflict", "classify_conflict_line", "parse_merge_tree_output"]
