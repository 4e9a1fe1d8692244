"""Prune and removal result models."""

from dataclasses import dataclass, field
from typing import List, Tuple

from grove.models.worktree import Worktree


@dataclass
class PruneSelection:
    """Worktrees chosen for pruning, plus per-branch warnings."""

    candidates: List[Worktree] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class RemovalSummary:
    """Tally of a batch worktree removal."""

    removed: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (path, error)
