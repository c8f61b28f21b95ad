"""
Non-destructive merge previews.

MergePreviewer simulates merging a source branch into a target branch with
`git merge-tree --write-tree`, which touches neither the working tree nor the
index. It is therefore safe to call speculatively, e.g. before deciding
whether a task branch can be folded back.
"""

from __future__ import annotations

import logging

from tandem.core.git import GitRunner
from tandem.core.merge.models import MergePreviewResult
from tandem.core.merge.parser import parse_merge_tree_output
from tandem.core.process import ProcessRunner

logger = logging.getLogger(__name__)

# merge-tree exits 1 when the merge has conflicts; both codes carry output
_MERGE_TREE_OK_EXIT_CODES = frozenset({0, 1})

FEATURE_BRANCH_PREFIX = "feature/"


class MergePreviewer:
    """
    Previews merges between two refs.

    Example:
        >>> previewer = MergePreviewer()
        >>> result = await previewer.preview("/repo", "bugfix/001-fix-login", "main")
        >>> result.has_conflicts
        False
    """

    def __init__(self, runner: ProcessRunner | None = None) -> None:
        self.git = GitRunner(runner)

    async def preview(
        self,
        project_path: str,
        source_branch: str | None = None,
        target_branch: str | None = None,
        feature_id: str | None = None,
    ) -> MergePreviewResult:
        """
        Preview merging source_branch into target_branch.

        Either both branches are given, or feature_id is given and the branch
        `feature/<feature_id>` is previewed against the current branch.

        Never raises: problems are reported with success=False and error set.
        """
        if source_branch and target_branch:
            source, target = source_branch, target_branch
        elif feature_id:
            source = f"{FEATURE_BRANCH_PREFIX}{feature_id}"
            head = await self.git.run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=project_path)
            if not head.success:
                return MergePreviewResult.failure(
                    f"Unable to determine current branch: {head.stderr.strip() or head.error}",
                    source_branch=source,
                )
            target = head.stdout.strip()
        else:
            return MergePreviewResult.failure(
                "Either feature_id or both source_branch and target_branch are required"
            )

        base = await self.git.run(["merge-base", target, source], cwd=project_path)
        if not base.success:
            return MergePreviewResult.failure(
                f"Unable to find merge base between {target} and {source}. "
                "Branches may be unrelated.",
                source_branch=source,
                target_branch=target,
            )
        merge_base = base.stdout.strip()

        probe = await self.git.run(["merge-tree", "--write-tree", target, source], cwd=project_path)
        if probe.exit_code not in _MERGE_TREE_OK_EXIT_CODES:
            logger.error("merge-tree failed for %s into %s: %s", source, target, probe.stderr.strip())
            return MergePreviewResult.failure(
                probe.stderr.strip() or probe.error or f"git merge-tree exited with {probe.exit_code}",
                source_branch=source,
                target_branch=target,
            )

        parsed = parse_merge_tree_output(probe.stdout, probe.stderr)
        if probe.exit_code == 1 and not parsed.has_conflicts:
            logger.warning(
                "merge-tree exited 1 for %s into %s but no conflict could be parsed", source, target
            )
            return MergePreviewResult.failure(
                "git merge-tree reported conflicts that could not be parsed",
                source_branch=source,
                target_branch=target,
            )
        if not parsed.has_conflicts and parsed.result_tree is None:
            return MergePreviewResult.failure(
                "git merge-tree reported no conflicts but no result tree",
                source_branch=source,
                target_branch=target,
            )

        logger.info(
            "Merge preview %s -> %s: %d conflict(s)", source, target, len(parsed.conflicts)
        )
        return MergePreviewResult(
            success=True,
            has_conflicts=parsed.has_conflicts,
            conflict_count=len(parsed.conflicts),
            conflicts=parsed.conflicts,
            merge_base=merge_base,
            result_tree=parsed.result_tree,
            source_branch=source,
            target_branch=target,
        )


__all__ = ["FEATURE_BRANCH_PREFIX", "MergePreviewer"]
