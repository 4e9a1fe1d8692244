"""Bootstrap command models."""

import shlex
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class BootstrapCommand:
    """A setup command run inside every newly created worktree."""

    program: str
    args: Tuple[str, ...] = ()

    @property
    def display(self) -> str:
        """Shell-like rendering for progress and summary output."""
        return shlex.join([self.program, *self.args]) if self.program.strip() else "<empty>"

    def argv(self) -> List[str]:
        return [self.program, *self.args]


@dataclass
class BootstrapSummary:
    """Outcome of running all bootstrap commands for one worktree."""

    total: int = 0
    succeeded: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (display, reason)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
