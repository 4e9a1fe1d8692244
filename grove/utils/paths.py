"""Filesystem path helpers for worktree directories."""

import os
from pathlib import Path
from typing import Union

from grove.constants import RESERVED_PATH_CHARACTERS
from grove.exceptions import PathValidationError
from grove.logging_config import get_logger

logger = get_logger(__name__)


def _canonicalize(path: Path) -> Path:
    """Resolve symlinks, raising OSError when the path does not exist."""
    return path.resolve(strict=True)


def resolve_worktree_path(name: str, project_root: Union[str, os.PathLike]) -> Path:
    """Turn a branch or worktree name into a directory inside ``project_root``.

    Unsafe names are rejected rather than cleaned up, so two different
    branch names can never end up sharing one directory.

    Raises:
        PathValidationError: If the name is blank, contains ``..``, is
            absolute, contains a reserved character, or resolves outside
            the project root.
    """
    if not name or not name.strip():
        raise PathValidationError("Invalid branch name: name cannot be empty")

    if ".." in name or os.path.isabs(name) or name.startswith(("/", "\\")):
        raise PathValidationError("Invalid branch name: contains path traversal characters")

    reserved = sorted({char for char in name if char in RESERVED_PATH_CHARACTERS})
    if reserved:
        raise PathValidationError(
            f"Invalid branch name: contains reserved characters {' '.join(reserved)}"
        )

    root = Path(project_root)
    joined = root / name

    try:
        resolved_root = _canonicalize(root)
    except (OSError, RuntimeError):
        resolved_root = Path(os.path.abspath(root)).resolve()

    try:
        resolved_path = _canonicalize(joined)
    except (OSError, RuntimeError):
        # Target usually does not exist yet; symlinks in its existing prefix still resolve
        resolved_path = Path(os.path.abspath(joined)).resolve()

    if resolved_path != resolved_root and resolved_root not in resolved_path.parents:
        raise PathValidationError("Invalid branch name: would create worktree outside project")

    logger.debug(f"Resolved worktree path for {name}: {resolved_path}")
    return resolved_path


def format_path_with_tilde(file_path: str) -> str:
    """Abbreviate the user's home directory as ``~``."""
    home = str(Path.home())
    if file_path == home or file_path.startswith(home + os.sep):
        return "~" + file_path[len(home):]
    return file_path


def trim_trailing_branch_slashes(name: str) -> str:
    """Drop trailing slashes that shell completion adds to directory names."""
    return name.strip().rstrip("/")
