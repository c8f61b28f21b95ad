"""
Sequence-number allocation for categorized worktrees.

The next number for a category is the count of existing subdirectories under
`<worktrees_root>/<category>` plus one. Counting and the subsequent
`git worktree add` form a read-then-write sequence, so callers that want
distinct numbers for concurrent creates hold `reserve()` across both steps.
The lock is per allocator instance and per category; it does not protect
against other processes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


class SequenceAllocator:
    """
    Allocates `NNN` prefixes for categorized worktree folders.

    Example:
        >>> allocator = SequenceAllocator()
        >>> async with allocator.reserve(Path("/repo/.worktrees"), "bugfix") as number:
        ...     ...  # create .worktrees/bugfix/<number>-<slug> here
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, worktrees_dir: Path, category: str) -> asyncio.Lock:
        key = str(worktrees_dir / category)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @staticmethod
    def count_existing(worktrees_dir: Path, category: str) -> int:
        """Count subdirectories in a category folder (0 if it does not exist)."""
        category_dir = worktrees_dir / category
        try:
            return sum(1 for entry in category_dir.iterdir() if entry.is_dir())
        except (FileNotFoundError, NotADirectoryError):
            return 0

    def next_number(self, worktrees_dir: Path, category: str) -> int:
        """Return the next sequence number without reserving it."""
        return self.count_existing(worktrees_dir, category) + 1

    @asynccontextmanager
    async def reserve(self, worktrees_dir: Path, category: str) -> AsyncIterator[int]:
        """
        Hold the category lock and yield the next sequence number.

        The number stays reserved until the block exits; the block is expected
        to create the folder so the next count sees it.
        """
        lock = self._lock_for(worktrees_dir, category)
        async with lock:
            number = self.next_number(worktrees_dir, category)
            logger.debug("Reserved %s/%03d", category, number)
            yield number


__all__ = ["SequenceAllocator"]
