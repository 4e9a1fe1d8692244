"""Formatting utilities for grove.

This package provides formatting functions for console output:
- date: Relative and absolute creation times
- worktree: Worktree rows, statuses, prune candidates and bootstrap summaries
"""

from .date import format_created_time, format_date
from .worktree import (
    format_worktree_status,
    format_worktree_row,
    format_prune_candidates,
    format_bootstrap_summary,
)

__all__ = [
    "format_created_time",
    "format_date",
    "format_worktree_status",
    "format_worktree_row",
    "format_prune_candidates",
    "format_bootstrap_summary",
]
