"""Worktree listing service for grove."""

import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

import git

from grove.constants import DETACHED_HEAD, EPOCH, MAIN_BRANCHES
from grove.logging_config import get_logger
from grove.models.worktree import PartialWorktree, Worktree
from grove.services.git.operations import GitOperations
from grove.utils.paths import trim_trailing_branch_slashes
from grove.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)


def parse_worktree_lines(output: str) -> List[PartialWorktree]:
    """Parse ``git worktree list --porcelain`` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or "detached")
        locked / prunable / bare        (optional flags)
        (blank line between worktrees)

    Records are delimited by ``worktree`` headers, so blank lines are not
    needed. Bare entries are the bare clone itself and are dropped.
    """
    worktrees: List[PartialWorktree] = []
    current = PartialWorktree()

    def flush(record: PartialWorktree) -> None:
        if record.path is not None and not record.is_bare:
            worktrees.append(record)

    for line in output.strip().splitlines():
        if line.startswith("worktree "):
            flush(current)
            current = PartialWorktree(path=line[len("worktree "):])
        elif line.startswith("HEAD "):
            current.head = line[len("HEAD "):]
        elif line.startswith("branch "):
            ref = line[len("branch "):]
            current.branch = ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref
        elif line == "detached":
            current.branch = DETACHED_HEAD
        elif line == "locked" or line.startswith("locked "):
            current.is_locked = True
        elif line == "prunable" or line.startswith("prunable "):
            current.is_prunable = True
        elif line == "bare":
            current.is_bare = True

    flush(current)
    return worktrees


def is_worktree_dirty(worktree_path: str) -> bool:
    """True if ``git status --porcelain`` reports anything in the worktree.

    Any failure counts as clean so one unreadable worktree cannot break a listing.
    """
    try:
        status = git.Git(worktree_path).status("--porcelain")
    except (git.exc.GitError, OSError) as e:
        logger.debug(f"Could not check status of {worktree_path}, treating as clean: {e}")
        return False
    return bool(status.strip())


def get_creation_time(path: str) -> datetime:
    """Best-effort creation time of ``path``.

    Uses the birth time where the platform exposes it, then the inode
    change time on POSIX, then the modification time. Returns ``EPOCH``
    when nothing usable is available.
    """
    try:
        stat_result = os.stat(path)
    except OSError:
        return EPOCH

    candidates = [getattr(stat_result, "st_birthtime", None)]
    if os.name == "posix":
        candidates.append(stat_result.st_ctime)
    candidates.append(stat_result.st_mtime)

    for timestamp in candidates:
        if timestamp is not None and timestamp > 0:
            return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    return EPOCH


def complete_worktree(partial: PartialWorktree, main_branches: Iterable[str] = MAIN_BRANCHES) -> Worktree:
    """Finalize a parsed record into a Worktree with derived state."""
    path = partial.path or ""
    branch = partial.branch or ""

    return Worktree(
        path=path,
        branch=branch,
        head=partial.head or "",
        created_at=get_creation_time(path),
        is_dirty=is_worktree_dirty(path),
        is_locked=partial.is_locked,
        is_prunable=partial.is_prunable,
        is_main=branch in tuple(main_branches),
    )


def match_worktree_by_name(worktrees: List[Worktree], name: str) -> Optional[Worktree]:
    """Find a worktree by branch name, directory name, or branch suffix."""
    normalized = trim_trailing_branch_slashes(name)
    if not normalized:
        return None

    for wt in worktrees:
        if wt.branch == normalized:
            return wt

    for wt in worktrees:
        if Path(wt.path).name == normalized:
            return wt

    for wt in worktrees:
        if wt.branch.endswith(f"/{normalized}"):
            return wt

    return None


class WorktreeService:
    """Service for listing grove worktrees.

    Listings are recomputed on every call; git's on-disk state is the only
    source of truth.
    """

    def __init__(
        self,
        git_ops: GitOperations,
        main_branches: Iterable[str] = MAIN_BRANCHES,
        workers: Optional[int] = None,
    ):
        """Initialize the worktree service.

        Args:
            git_ops: Git operations bound to the bare clone
            main_branches: Branch names flagged as main worktrees
            workers: Worker count for status checks (None = auto, 1 = sequential)
        """
        self.git_ops = git_ops
        self.main_branches = tuple(main_branches)
        self.workers = workers

    def _complete(self, partial: PartialWorktree) -> Worktree:
        return complete_worktree(partial, self.main_branches)

    def list_worktrees(self) -> List[Worktree]:
        """List all worktrees in the order git reports them.

        Raises:
            GitOperationError: If ``git worktree list`` fails.
        """
        partials = parse_worktree_lines(self.git_ops.list_worktrees_porcelain())
        if not partials:
            return []

        workers = get_optimal_worker_count(self.workers, task_count=len(partials))
        if workers == 1:
            worktrees = [self._complete(partial) for partial in partials]
        else:
            # map() yields results in submission order
            with ThreadPoolExecutor(max_workers=workers) as executor:
                worktrees = list(executor.map(self._complete, partials))

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def find_worktree_by_name(self, name: str) -> Optional[Worktree]:
        """Look up one worktree by branch or directory name."""
        return match_worktree_by_name(self.list_worktrees(), name)

    def is_branch_checked_out(self, branch: str) -> bool:
        return any(wt.branch == branch for wt in self.list_worktrees())
