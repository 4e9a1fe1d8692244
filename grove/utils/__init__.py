"""Utility functions for grove.

This package provides utility modules:
- duration: Human-friendly and ISO 8601 duration parsing
- paths: Worktree path validation and display helpers
- urls: Git URL validation and repository naming
- threading: Worker sizing for parallel git calls
"""

from .duration import normalize_duration, parse_duration
from .paths import resolve_worktree_path, format_path_with_tilde, trim_trailing_branch_slashes
from .urls import is_valid_git_url, extract_repo_name
from .threading import get_optimal_worker_count, get_threading_info

__all__ = [
    # Durations
    "normalize_duration",
    "parse_duration",
    # Paths
    "resolve_worktree_path",
    "format_path_with_tilde",
    "trim_trailing_branch_slashes",
    # URLs
    "is_valid_git_url",
    "extract_repo_name",
    # Threading
    "get_optimal_worker_count",
    "get_threading_info",
]
