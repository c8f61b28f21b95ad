"""
Branch and directory naming for worktrees.

Categorized worktrees are named `<category>/<NNN>-<slug>` where NNN is a
zero-padded sequence number and slug is derived from a task title.
"""

import re

MAX_BRANCH_NAME_LENGTH = 250
MAX_SLUG_LENGTH = 50
SEQUENCE_WIDTH = 3

_VALID_BRANCH_RE = re.compile(r"[a-zA-Z0-9._\-/]+")
_PATH_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_-]")

# Leading verbs dropped by title_to_branch_slug
_LEADING_VERBS = frozenset(
    {
        "fix", "add", "update", "implement", "create", "remove", "refactor",
        "improve", "enhance", "resolve", "handle", "setup", "configure",
        "enable", "disable", "integrate",
    }
)

_FILLER_WORDS = frozenset(
    {
        "the", "a", "an", "to", "for", "of", "in", "on", "with", "and", "or",
        "that", "this", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "shall", "can", "need", "dare",
        "ought", "used", "when", "where", "why", "how", "all", "each", "every",
        "both", "few", "more", "most", "other", "some", "such", "no", "nor",
        "not", "only", "own", "same", "so", "than", "too", "very", "just",
        "also", "now", "here", "there",
    }
)


def title_to_slug(title: str) -> str:
    """
    Convert a title to a kebab-case slug for branch names.

    Example:
        >>> title_to_slug("Fix login issue!")
        'fix-login-issue'
    """
    slug = title.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug[:MAX_SLUG_LENGTH]


def title_to_branch_slug(title: str) -> str:
    """
    Convert a title to a short slug of at most three significant words.

    A leading verb and filler words are dropped. Falls back to "task" when
    nothing usable remains.

    Example:
        >>> title_to_branch_slug("Add dark mode toggle to settings")
        'dark-mode-toggle'
    """
    normalized = re.sub(r"[^a-z0-9\s]", " ", title.lower())
    normalized = re.sub(r"\s+", " ", normalized).strip()
    words = normalized.split(" ") if normalized else []

    if words and words[0] in _LEADING_VERBS:
        words = words[1:]

    words = [w for w in words if len(w) > 1 and w not in _FILLER_WORDS][:3]

    if not words:
        words = [w for w in normalized.split(" ") if len(w) > 1][:3]

    return "-".join(words) or "task"


def sanitize_branch_for_path(branch_name: str) -> str:
    """Replace every character outside [a-zA-Z0-9_-] with a hyphen."""
    return _PATH_UNSAFE_RE.sub("-", branch_name)


def format_sequence(number: int) -> str:
    """Zero-pad a sequence number to three digits."""
    return str(number).zfill(SEQUENCE_WIDTH)


def categorized_name(
    category: str, number: int, title: str, short: bool = False
) -> tuple[str, str]:
    """
    Build the branch name and folder name for a categorized worktree.

    With short=True the slug keeps at most three significant words.

    Returns:
        Tuple of (branch_name, folder_name)
    """
    slug = title_to_branch_slug(title) if short else title_to_slug(title)
    folder_name = f"{format_sequence(number)}-{slug}"
    return f"{category}/{folder_name}", folder_name


def is_valid_branch_name(name: str) -> bool:
    """Return True if name uses only [a-zA-Z0-9._-/] and is under 250 characters."""
    return bool(_VALID_BRANCH_RE.fullmatch(name)) and len(name) < MAX_BRANCH_NAME_LENGTH


def normalize_path(path: str) -> str:
    """Normalize path separators to forward slashes."""
    return path.replace("\\", "/")
