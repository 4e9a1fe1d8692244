"""Data models for grove."""

from .repository import RepositoryHandle
from .worktree import PartialWorktree, Worktree
from .bootstrap import BootstrapCommand, BootstrapSummary
from .prune import PruneSelection, RemovalSummary

__all__ = [
    "RepositoryHandle",
    "PartialWorktree",
    "Worktree",
    "BootstrapCommand",
    "BootstrapSummary",
    "PruneSelection",
    "RemovalSummary",
]
