"""Selection and batch removal of prunable worktrees."""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from grove.exceptions import GitOperationError, ValidationError
from grove.logging_config import get_logger
from grove.models.prune import PruneSelection, RemovalSummary
from grove.models.worktree import Worktree
from grove.services.git.merge_detector import MergeDetector
from grove.services.git.operations import GitOperations

logger = get_logger(__name__)


class PruneService:
    """Decides which worktrees are safe to remove and removes them."""

    def __init__(self, git_ops: GitOperations, merge_detector: Optional[MergeDetector] = None):
        self.git_ops = git_ops
        self.merge_detector = merge_detector or MergeDetector(git_ops)

    @staticmethod
    def is_protected(worktree: Worktree, base_branch: Optional[str] = None) -> bool:
        """Main, locked, and detached worktrees (and the base's own) are never pruned."""
        if worktree.is_main or worktree.is_locked or worktree.is_detached:
            return True
        return bool(base_branch) and worktree.branch == base_branch

    def find_candidates(
        self,
        worktrees: Iterable[Worktree],
        base_branch: Optional[str] = None,
        older_than_ms: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PruneSelection:
        """Filter ``worktrees`` down to the ones safe to remove.

        Merge mode (``base_branch``) keeps branches merged or squash-merged
        into base. Age mode (``older_than_ms``) keeps worktrees created at or
        before ``now - older_than_ms``; unknown creation times never qualify.
        Input order is preserved.

        Raises:
            ValidationError: If both or neither mode is requested.
        """
        if older_than_ms is not None and base_branch:
            raise ValidationError(
                "--base and --older-than cannot be used together "
                "(--base is ignored when --older-than is specified)"
            )
        if older_than_ms is None and not base_branch:
            raise ValidationError("A base branch is required to check for merged worktrees")

        selection = PruneSelection()
        if older_than_ms is not None:
            cutoff = (now or datetime.now(timezone.utc)) - timedelta(milliseconds=older_than_ms)
            for wt in worktrees:
                if self.is_protected(wt):
                    continue
                if wt.has_known_creation_time and wt.created_at <= cutoff:
                    selection.candidates.append(wt)
            return selection

        for wt in worktrees:
            if self.is_protected(wt, base_branch):
                continue
            try:
                if self.merge_detector.is_branch_merged(wt.branch, base_branch):
                    selection.candidates.append(wt)
            except GitOperationError as e:
                warning = f"Could not check merge status for branch '{wt.branch}': {e}"
                logger.warning(warning)
                selection.warnings.append(warning)

        logger.debug(self.merge_detector.get_merge_stats())
        return selection

    def remove_worktrees(self, worktrees: Iterable[Worktree], force: bool = True) -> RemovalSummary:
        """Remove each worktree, continuing past individual failures."""
        summary = RemovalSummary()
        for wt in worktrees:
            try:
                self.git_ops.remove_worktree(wt.path, force=force)
                summary.removed.append(wt.path)
            except GitOperationError as e:
                logger.error(f"Failed to remove worktree at {wt.path}: {e}")
                summary.failed.append((wt.path, str(e)))
        return summary


def count_dirty(worktrees: List[Worktree]) -> int:
    return sum(1 for wt in worktrees if wt.is_dirty)
