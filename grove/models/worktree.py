"""Worktree data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from grove.constants import DETACHED_HEAD, EPOCH


@dataclass
class PartialWorktree:
    """Fields collected for one `worktree` block of porcelain output.

    ``None`` means the field has not been seen yet in the block.
    """

    path: Optional[str] = None
    head: Optional[str] = None
    branch: Optional[str] = None
    is_locked: bool = False
    is_prunable: bool = False
    is_bare: bool = False


@dataclass(frozen=True)
class Worktree:
    """Information about a git worktree."""

    path: str
    branch: str
    head: str
    created_at: datetime = field(default=EPOCH)
    is_dirty: bool = False
    is_locked: bool = False
    is_prunable: bool = False
    is_main: bool = False

    @property
    def is_detached(self) -> bool:
        return self.branch == DETACHED_HEAD

    @property
    def has_known_creation_time(self) -> bool:
        """False when the filesystem gave no usable timestamp."""
        return self.created_at != EPOCH

    def to_dict(self) -> dict:
        """JSON-friendly representation used by `grove list --json`."""
        return {
            "path": self.path,
            "branch": self.branch,
            "head": self.head,
            "createdAt": self.created_at.isoformat(),
            "isDirty": self.is_dirty,
            "isLocked": self.is_locked,
            "isPrunable": self.is_prunable,
            "isMain": self.is_main,
        }

    def __str__(self) -> str:
        status = "dirty" if self.is_dirty else "clean"
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch} @ {self.path}{main_marker} [{status}]"
