"""Git-related services for grove."""

from .operations import GitOperations, clone_bare_repository, is_bare_repository
from .worktrees import WorktreeService, parse_worktree_lines, complete_worktree
from .merge_detector import MergeDetector

__all__ = [
    "GitOperations",
    "clone_bare_repository",
    "is_bare_repository",
    "WorktreeService",
    "parse_worktree_lines",
    "complete_worktree",
    "MergeDetector",
]
