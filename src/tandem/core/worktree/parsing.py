"""
Parsers for git plumbing output used by the worktree manager.

All parsers are pure functions over captured stdout so they can be tested
without a repository.
"""

import re

from tandem.core.worktree.models import DiffSummary

_FILES_CHANGED_RE = re.compile(r"(\d+)\s+files?\s+changed")
_INSERTIONS_RE = re.compile(r"(\d+)\s+insertions?\(\+\)")
_DELETIONS_RE = re.compile(r"(\d+)\s+deletions?\(-\)")

_HEADS_PREFIX = "refs/heads/"


def parse_worktree_porcelain(output: str) -> list[dict[str, str]]:
    """
    Parse `git worktree list --porcelain` into records.

    Records are separated by blank lines. Only records carrying both a
    `worktree` and a `branch` line are returned, so detached and bare
    worktrees are skipped. Branch refs are shortened to their branch name.

    Args:
        output: Raw porcelain output

    Returns:
        List of {"path": ..., "branch": ...} dicts in git's order (main first)

    Example:
        >>> parse_worktree_porcelain("worktree /repo\\nbranch refs/heads/main\\n")
        [{'path': '/repo', 'branch': 'main'}]
    """
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}

    # Trailing "" flushes a final record without a blank line after it
    for line in [*output.splitlines(), ""]:
        line = line.rstrip("\r")
        if line.startswith("worktree "):
            current["path"] = line[len("worktree ") :]
        elif line.startswith("branch "):
            ref = line[len("branch ") :]
            current["branch"] = ref[len(_HEADS_PREFIX) :] if ref.startswith(_HEADS_PREFIX) else ref
        elif line == "":
            if "path" in current and "branch" in current:
                records.append(current)
            current = {}

    return records


def parse_diff_stat_summary(output: str) -> DiffSummary:
    """
    Parse the trailing summary line of `git diff --stat`.

    Any of the three clauses may be absent, e.g. "1 file changed, 3 deletions(-)".

    Example:
        >>> parse_diff_stat_summary(" a.py | 2 +-\\n 1 file changed, 1 insertion(+), 1 deletion(-)")
        DiffSummary(files_changed=1, additions=1, deletions=1)
    """
    lines = output.strip().splitlines()
    if not lines:
        return DiffSummary()

    summary = lines[-1]
    files = _FILES_CHANGED_RE.search(summary)
    insertions = _INSERTIONS_RE.search(summary)
    deletions = _DELETIONS_RE.search(summary)

    return DiffSummary(
        files_changed=int(files.group(1)) if files else 0,
        additions=int(insertions.group(1)) if insertions else 0,
        deletions=int(deletions.group(1)) if deletions else 0,
    )


def parse_rev_list_counts(output: str) -> tuple[int, int]:
    """
    Parse `git rev-list --left-right --count base...branch`.

    Returns:
        Tuple of (behind, ahead). Unparseable fields count as 0.
    """
    parts = output.split()

    def _int(index: int) -> int:
        try:
            return int(parts[index])
        except (IndexError, ValueError):
            return 0

    return _int(0), _int(1)


def count_status_entries(output: str) -> int:
    """Count non-empty lines of `git status --porcelain`."""
    return sum(1 for line in output.splitlines() if line.strip())
