"""Merge detection service for grove."""

from typing import List

from grove.logging_config import get_logger
from grove.services.git.operations import GitOperations

logger = get_logger(__name__)


def parse_merged_branches(output: str) -> List[str]:
    """Branch names from ``git branch --merged`` output.

    Strips the ``*`` (current) and ``+`` (checked out in another worktree) markers.
    """
    branches = []
    for line in output.splitlines():
        name = line.strip()
        if name.startswith(("* ", "+ ")):
            name = name[2:].strip()
        if name:
            branches.append(name)
    return branches


class MergeDetector:
    """Service for detecting if branches have been merged into a base branch."""

    def __init__(self, git_ops: GitOperations):
        """Initialize the merge detector.

        Args:
            git_ops: Git operations bound to the bare clone
        """
        self.git_ops = git_ops
        self.merge_detection_stats = {
            "ancestry": 0,  # Listed by git branch --merged
            "squash": 0,  # Changes already present on base
        }

    def is_branch_merged(self, branch_name: str, base_branch: str) -> bool:
        """Check if ``branch_name`` is merged into ``base_branch``.

        Raises:
            GitOperationError: If git cannot answer for this branch.
        """
        output = self.git_ops.run(
            "branch", "--merged", base_branch,
            operation=f"check if branch {branch_name} is merged",
        )
        if branch_name in parse_merged_branches(output):
            logger.debug(f"Branch {branch_name} is merged into {base_branch} (ancestry)")
            self.merge_detection_stats["ancestry"] += 1
            return True

        return self.is_squash_merged(branch_name, base_branch)

    def is_squash_merged(self, branch_name: str, base_branch: str) -> bool:
        """Check whether the branch's changes are already present on base.

        Lists the files the branch changed since the merge base, then diffs
        base against branch for just those files. An empty diff means the
        work landed on base (typically through a squash merge). A branch
        that changed no files has nothing to lose and counts as merged.
        """
        # -z keeps non-ASCII names unquoted so they work as pathspecs
        changed = self.git_ops.run(
            "diff", "--name-only", "-z", f"{base_branch}...{branch_name}",
            operation=f"list files changed on {branch_name}",
        )
        files = [f for f in changed.split("\0") if f]

        if not files:
            logger.debug(f"Branch {branch_name} changes no files relative to {base_branch}")
            self.merge_detection_stats["squash"] += 1
            return True

        remaining = self.git_ops.run(
            "--literal-pathspecs", "diff", "--name-only", base_branch, branch_name, "--", *files,
            operation=f"compare {branch_name} with {base_branch}",
        )
        if remaining.strip():
            return False

        logger.debug(f"Branch {branch_name} is squash-merged into {base_branch}")
        self.merge_detection_stats["squash"] += 1
        return True

    def get_merge_stats(self) -> str:
        """Get a summary of which methods detected merges."""
        if not any(self.merge_detection_stats.values()):
            return "No merges detected"

        method_names = {"ancestry": "Ancestry", "squash": "Squash merge"}
        stats = [
            f"{method_names[method]}: {count}"
            for method, count in self.merge_detection_stats.items()
            if count > 0
        ]
        return f"Merges detected by: {', '.join(stats)}"
