"""Threading utilities for sizing the worktree listing fan-out."""

import os
import sys
from typing import Dict, Any, Optional


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with free-threading enabled.

    Returns:
        True if running on Python 3.13+ with the GIL disabled
    """
    is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
    return is_gil_enabled is not None and not is_gil_enabled()


def get_python_threading_mode() -> str:
    """Describe the interpreter's threading mode for debug output."""
    is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
    if is_gil_enabled is None:
        return "GIL-enabled (Python < 3.13)"
    return "GIL-enabled" if is_gil_enabled() else "free-threading"


def get_optimal_worker_count(user_specified: Optional[int] = None, task_count: Optional[int] = None) -> int:
    """Calculate the worker count for per-worktree git calls.

    Args:
        user_specified: User-specified worker count, if provided
        task_count: Number of worktrees to process; caps the result

    Returns:
        Number of workers to use (at least 1)
    """
    if user_specified is not None and user_specified > 0:
        workers = user_specified
    else:
        cpu_count = os.cpu_count() or 1
        if is_free_threading_enabled():
            workers = min(64, cpu_count * 2)
        else:
            # Subprocess-bound work: CPU_count + 4, capped at 32
            workers = min(32, cpu_count + 4)

    if task_count is not None:
        workers = min(workers, task_count)
    return max(1, workers)


def get_threading_info() -> Dict[str, Any]:
    """Get information about Python threading configuration."""
    return {
        "mode": get_python_threading_mode(),
        "free_threading": is_free_threading_enabled(),
        "cpu_count": os.cpu_count() or 1,
        "optimal_workers": get_optimal_worker_count(),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }
