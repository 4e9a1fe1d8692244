"""Discovery of the grove-managed bare clone for the current directory."""

import os
import re
from pathlib import Path
from typing import Optional, Tuple, Union

from grove.constants import BARE_CLONE_SUFFIX
from grove.exceptions import DiscoveryError
from grove.logging_config import get_logger
from grove.models.repository import RepositoryHandle
from grove.services.git.operations import is_bare_repository

logger = get_logger(__name__)

NOT_IN_REPO_MESSAGE = "Not in a grove repository.\nRun `grove init <git-url>` to create one."
REGULAR_REPO_MESSAGE = (
    "This is a git repository but not a grove-managed worktree setup.\n"
    "Grove requires a bare clone with worktrees. Run `grove init <git-url>` "
    "in a different directory to create a new grove setup."
)

_GITDIR_RE = re.compile(r"^gitdir:\s*(.+)$")

PathLike = Union[str, os.PathLike]


def parse_git_file(git_file_path: Path) -> str:
    """Read the ``gitdir:`` pointer from a worktree's ``.git`` file.

    Raises:
        ValueError: If the file is unreadable or has no gitdir line.
    """
    try:
        content = git_file_path.read_text().strip()
    except OSError as e:
        raise ValueError(f"Failed to read .git file: {e}") from e

    match = _GITDIR_RE.match(content)
    if not match:
        raise ValueError(f"Invalid .git file format at {git_file_path}")
    return match.group(1).strip()


def extract_bare_clone_from_gitdir(gitdir_path: str) -> str:
    """Strip ``worktrees/<name>`` from a worktree gitdir to get the bare clone.

    Cuts at the first ``.git/worktrees/`` so branch names that themselves
    contain ``worktrees`` are handled.

    Raises:
        ValueError: If the path has no worktrees segment.
    """
    marker = ".git/worktrees/"
    index = gitdir_path.find(marker)
    if index != -1:
        return gitdir_path[: index + len(".git")]

    index = gitdir_path.find("/worktrees/")
    if index != -1:
        return gitdir_path[:index]

    raise ValueError(f"Invalid worktree gitdir path: {gitdir_path}")


def is_bare_repo_by_structure(repo_path: Path) -> bool:
    """Check the on-disk layout of a bare repository without running git."""
    if os.path.lexists(repo_path / ".git"):
        return False
    return (
        (repo_path / "HEAD").is_file()
        and (repo_path / "refs").is_dir()
        and (repo_path / "objects").is_dir()
    )


def check_git_indicator(dir_path: Path) -> Tuple[bool, bool, Optional[Path]]:
    """Classify ``dir_path/.git``.

    Returns:
        (is_worktree, is_regular_repo, git_path): a ``.git`` file marks a
        worktree, a ``.git`` directory marks a normal repository.
    """
    git_path = dir_path / ".git"
    if git_path.is_file():
        return True, False, git_path
    if git_path.is_dir():
        return False, True, git_path
    return False, False, None


def _canonical_start(start_path: Optional[PathLike]) -> Path:
    start = Path(start_path) if start_path is not None else Path.cwd()
    try:
        return start.resolve(strict=True)
    except (OSError, RuntimeError):
        return Path(os.path.abspath(start))


def _find_bare_clone_in_children(directory: Path) -> Optional[Path]:
    try:
        children = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.debug(f"Cannot scan {directory}: {e}")
        return None

    for child in children:
        # ".git" itself is the metadata directory of a regular checkout
        if child.name == ".git" or not child.name.endswith(BARE_CLONE_SUFFIX):
            continue
        if child.is_dir() and is_bare_repo_by_structure(child):
            return child
    return None


def _bare_clone_from_worktree(directory: Path, git_file: Path) -> Optional[Path]:
    try:
        gitdir = parse_git_file(git_file)
    except ValueError as e:
        logger.debug(str(e))
        return None

    gitdir_path = Path(gitdir)
    if not gitdir_path.is_absolute():
        gitdir_path = directory / gitdir_path
    resolved = os.path.normpath(str(gitdir_path)).replace(os.sep, "/")

    try:
        bare_clone = Path(extract_bare_clone_from_gitdir(resolved))
    except ValueError as e:
        logger.debug(str(e))
        return None

    if is_bare_repository(bare_clone):
        return bare_clone
    logger.debug(f"{bare_clone} (from {git_file}) is not a bare repository")
    return None


def discover_bare_clone(
    start_path: Optional[PathLike] = None, cached_path: Optional[PathLike] = None
) -> Path:
    """Locate the bare clone that anchors the grove project.

    Args:
        start_path: Directory to start from (defaults to the cwd)
        cached_path: Previously discovered bare clone, trusted if it is the top of a bare repository

    Raises:
        DiscoveryError: If no bare clone can be found.
    """
    if cached_path:
        cached = Path(cached_path)
        # git also reports core.bare for subdirectories of a bare repo
        if is_bare_repo_by_structure(cached) and is_bare_repository(cached):
            logger.debug(f"Using cached repository {cached}")
            return cached
        logger.debug(f"Ignoring stale cached repository {cached}")

    current = _canonical_start(start_path)

    if is_bare_repo_by_structure(current):
        return current

    child = _find_bare_clone_in_children(current)
    if child is not None:
        return child

    found_regular_repo = False
    search = current
    while True:
        is_worktree, is_regular_repo, git_path = check_git_indicator(search)
        if is_worktree and git_path is not None:
            bare_clone = _bare_clone_from_worktree(search, git_path)
            if bare_clone is not None:
                return bare_clone
        elif is_regular_repo:
            found_regular_repo = True

        parent = search.parent
        if parent == search:
            break
        search = parent

    if found_regular_repo:
        raise DiscoveryError(REGULAR_REPO_MESSAGE, is_regular_git_repo=True)
    raise DiscoveryError(NOT_IN_REPO_MESSAGE, is_regular_git_repo=False)


def discover_repository(
    start_path: Optional[PathLike] = None, cached_path: Optional[PathLike] = None
) -> RepositoryHandle:
    """Discover the grove repository and return a handle to it.

    Raises:
        DiscoveryError: If the directory is not inside a grove project.
    """
    bare_clone = discover_bare_clone(start_path, cached_path)
    handle = RepositoryHandle.from_bare_clone(bare_clone)
    logger.debug(f"Discovered repository {handle.repo_path} (project root {handle.project_root})")
    return handle


def find_grove_repo(start_path: Optional[PathLike] = None) -> Optional[Path]:
    """Return the enclosing bare clone, or None outside a grove project."""
    try:
        return discover_bare_clone(start_path)
    except DiscoveryError:
        return None
