"""Runs post-creation setup commands inside a new worktree."""

import subprocess
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from grove.logging_config import get_logger
from grove.models.bootstrap import BootstrapCommand, BootstrapSummary

logger = get_logger(__name__)

# Called before each command with (index, total, command)
ProgressCallback = Callable[[int, int, BootstrapCommand], None]


class BootstrapRunner:
    """Executes bootstrap commands one after another, never stopping early."""

    def __init__(self, on_command_start: Optional[ProgressCallback] = None):
        self.on_command_start = on_command_start

    def run(
        self, worktree_dir: Union[str, Path], commands: Iterable[BootstrapCommand]
    ) -> BootstrapSummary:
        """Run every command in ``worktree_dir`` and summarize the outcome.

        Commands inherit stdout/stderr so their output streams live to the user.
        """
        commands = list(commands)
        summary = BootstrapSummary(total=len(commands))

        for index, command in enumerate(commands, start=1):
            if self.on_command_start is not None:
                self.on_command_start(index, summary.total, command)

            reason = self._run_one(worktree_dir, command)
            if reason is None:
                summary.succeeded += 1
                logger.debug(f"Bootstrap command succeeded: {command.display}")
            else:
                summary.failed.append((command.display, reason))
                logger.warning(f"Bootstrap command failed: {command.display} ({reason})")

        return summary

    @staticmethod
    def _run_one(worktree_dir: Union[str, Path], command: BootstrapCommand) -> Optional[str]:
        """Run a single command; returns a failure reason, or None on success."""
        if not command.program or not command.program.strip():
            return "empty command"

        try:
            result = subprocess.run(command.argv(), cwd=str(worktree_dir), check=False)
        except OSError as e:
            return f"failed to start: {e}"

        if result.returncode == 0:
            return None
        if result.returncode < 0:
            # POSIX reports death-by-signal as a negative return code
            return f"terminated by signal {-result.returncode}"
        return f"exited with code {result.returncode}"
