"""Git operations service"""

import os
from pathlib import Path
from typing import List, Optional, Tuple, Union

import git

from grove.constants import DEFAULT_FETCH_REFSPEC
from grove.exceptions import GitOperationError
from grove.logging_config import get_logger
from grove.models.repository import RepositoryHandle

logger = get_logger(__name__)


def git_error_message(error: Exception) -> str:
    """Extract the trimmed stderr text from a GitPython error."""
    stderr = getattr(error, "stderr", None)
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    stderr = (stderr or "").strip()

    # GitPython wraps stderr as "stderr: '<text>'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip()
        if len(stderr) >= 2 and stderr[0] == stderr[-1] == "'":
            stderr = stderr[1:-1]
        stderr = stderr.strip()

    if stderr:
        return stderr
    status = getattr(error, "status", None)
    if status is not None:
        return f"git exited with code {status}"
    return str(error)


def is_bare_repository(repo_path: Union[str, Path]) -> bool:
    """Ask git whether ``repo_path`` is a bare repository."""
    try:
        return git.Git(str(repo_path)).config("--get", "core.bare").strip() == "true"
    except (git.exc.GitError, OSError) as e:
        logger.debug(f"{repo_path} is not a bare repository: {e}")
        return False


def parse_remote_tracking_reference(reference: str) -> Optional[Tuple[str, str]]:
    """Split ``origin/feature`` or ``refs/remotes/origin/feature`` into (remote, branch).

    Returns None for other ``refs/`` namespaces and for names without a branch part.
    """
    if reference.startswith("refs/remotes/"):
        normalized = reference[len("refs/remotes/"):]
    elif reference.startswith("refs/"):
        return None
    else:
        normalized = reference

    remote, sep, branch = normalized.partition("/")
    if not sep or not remote or not branch:
        return None
    return remote, branch


def build_add_worktree_args(
    worktree_path: str, branch_name: str, create_branch: bool, track: Optional[str] = None
) -> List[str]:
    """Arguments for ``git worktree ...``; ``track`` only applies to new branches."""
    args = ["add"]
    if create_branch:
        args.extend(["-b", branch_name])
        if track:
            args.append("--track")
        args.append(worktree_path)
        if track:
            args.append(track)
    else:
        args.extend([worktree_path, branch_name])
    return args


def clone_bare_repository(git_url: str, target_dir: Union[str, Path]) -> None:
    """Clone ``git_url`` as a bare repository and configure its fetch refspec.

    Raises:
        GitOperationError: If cloning or configuring fails.
    """
    target_dir = str(target_dir)
    try:
        git.Git().clone("--bare", git_url, target_dir)
        logger.info(f"Cloned {git_url} into {target_dir}")
    except (git.exc.GitCommandError, git.exc.GitCommandNotFound) as e:
        raise GitOperationError("clone repository", git_error_message(e)) from e

    try:
        git.Git(target_dir).config("remote.origin.fetch", DEFAULT_FETCH_REFSPEC)
    except (git.exc.GitCommandError, git.exc.GitCommandNotFound) as e:
        raise GitOperationError("configure repository", git_error_message(e)) from e


class GitOperations:
    """Service for Git operations run against a grove bare clone."""

    def __init__(self, handle: RepositoryHandle):
        """Initialize the service.

        Args:
            handle: Location of the bare clone
        """
        self.handle = handle
        self.repo_path = str(handle.repo_path)

    def _get_repo(self):
        """Get a fresh git.Repo instance for the bare clone.

        Returns:
            git.Repo: A fresh repository instance
        """
        return git.Repo(self.repo_path)

    def run(self, *args: str, operation: Optional[str] = None) -> str:
        """Run ``git <args>`` inside the bare clone and return stdout.

        Raises:
            GitOperationError: With the trimmed stderr text when git fails.
        """
        logger.debug(f"git {' '.join(args)}")
        try:
            return self._get_repo().git.execute(["git", *args])
        except (git.exc.GitCommandError, git.exc.GitCommandNotFound) as e:
            raise GitOperationError(operation or f"run git {args[0]}", git_error_message(e)) from e

    def reference_exists(self, reference: str) -> bool:
        try:
            self.run("rev-parse", "--verify", reference)
            return True
        except GitOperationError:
            return False

    def branch_exists(self, branch: str) -> bool:
        return self.reference_exists(f"refs/heads/{branch}")

    def list_worktrees_porcelain(self) -> str:
        return self.run("worktree", "list", "--porcelain", operation="list worktrees")

    def add_worktree(
        self,
        worktree_path: Union[str, Path],
        branch_name: str,
        create_branch: bool = False,
        track: Optional[str] = None,
    ) -> None:
        """Create a worktree for ``branch_name`` at ``worktree_path``.

        Raises:
            GitOperationError: If the tracking ref is unavailable or git fails.
        """
        if create_branch and track:
            self.ensure_tracking_reference(track)

        args = build_add_worktree_args(str(worktree_path), branch_name, create_branch, track)
        self.run("worktree", *args, operation="add worktree")
        logger.info(f"Added worktree for {branch_name} at {worktree_path}")

    def ensure_tracking_reference(self, track_ref: str) -> None:
        """Make sure ``track_ref`` resolves, fetching it from its remote if needed."""
        if self.reference_exists(track_ref):
            return

        parsed = parse_remote_tracking_reference(track_ref)
        if parsed is None:
            raise GitOperationError(
                "resolve tracking reference",
                f"Tracking reference '{track_ref}' does not exist. "
                "Use a valid remote-tracking branch like 'origin/main'.",
            )

        remote, branch = parsed
        canonical_ref = f"refs/remotes/{remote}/{branch}"
        if self.reference_exists(canonical_ref):
            return

        try:
            self.run("fetch", remote, f"{branch}:{canonical_ref}")
        except GitOperationError as e:
            raise GitOperationError(
                "fetch tracking branch", f"'{track_ref}': {e.message}"
            ) from e

        if not (self.reference_exists(track_ref) or self.reference_exists(canonical_ref)):
            raise GitOperationError(
                "resolve tracking reference",
                f"Tracking reference '{track_ref}' is still unavailable after fetching from remote '{remote}'.",
            )

    def remove_worktree(self, worktree_path: Union[str, Path], force: bool = False) -> None:
        """Remove the worktree at ``worktree_path``.

        Raises:
            GitOperationError: With git's stderr when removal fails.
        """
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(str(worktree_path))
        self.run(*args, operation="remove worktree")
        logger.info(f"Removed worktree at {worktree_path}")

    def get_default_branch(self) -> str:
        """Resolve the remote's default branch, falling back to main/master."""
        try:
            ref = self.run("symbolic-ref", "refs/remotes/origin/HEAD").strip()
            return ref.replace("refs/remotes/origin/", "", 1)
        except GitOperationError as e:
            logger.debug(f"origin/HEAD is not set: {e}")

        for candidate in ("main", "master"):
            if self.branch_exists(candidate):
                return candidate

        raise GitOperationError(
            "determine default branch", "Please specify the branch explicitly with --branch."
        )

    def sync_branch(self, branch: str) -> None:
        """Fast-forward a local branch from origin without checking it out."""
        self.run("fetch", "origin", f"{branch}:{branch}", operation=f"sync branch '{branch}'")
        logger.info(f"Synced {branch} from origin")

    def fetch_pull_request(self, pr_number: int) -> str:
        """Fetch ``pull/<n>/head`` into a local ``pr-<n>`` branch and return its name."""
        local_branch = f"pr-{pr_number}"
        self.run(
            "fetch", "origin", f"pull/{pr_number}/head:{local_branch}",
            operation=f"fetch PR #{pr_number}",
        )
        return local_branch

    def __repr__(self) -> str:
        return f"GitOperations({os.fspath(self.handle.repo_path)!r})"
