"""Core orchestration for grove commands."""

from .worktree_keeper import WorktreeKeeper

__all__ = ["WorktreeKeeper"]
