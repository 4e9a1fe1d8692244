"""Worktree formatting utilities."""

from typing import List

from rich.text import Text

from grove.constants import SYMBOL_LOCKED, SYMBOL_PRUNABLE
from grove.formatters.date import format_created_time, format_date
from grove.models.bootstrap import BootstrapSummary
from grove.models.worktree import Worktree
from grove.utils.paths import format_path_with_tilde


def format_worktree_status(worktree: Worktree) -> str:
    """
    Summarize a worktree's state.

    Returns:
        "clean", or a comma-separated list of "dirty" and "prunable"
    """
    statuses = []
    if worktree.is_dirty:
        statuses.append("dirty")
    if worktree.is_prunable:
        statuses.append("prunable")
    return ", ".join(statuses) if statuses else "clean"


def format_worktree_symbols(worktree: Worktree) -> str:
    symbols = ""
    if worktree.is_locked:
        symbols += f" {SYMBOL_LOCKED}"
    if worktree.is_prunable:
        symbols += f" {SYMBOL_PRUNABLE}"
    return symbols


def truncate_path(path: str, width: int) -> str:
    """Keep the tail of long paths, prefixed with an ellipsis."""
    if len(path) <= width or width <= 3:
        return path
    return "..." + path[-(width - 3):]


def format_worktree_row(worktree: Worktree, terminal_width: int = 80, details: bool = False) -> Text:
    """
    Build one line of `grove list` output.

    Branches are green when clean and yellow when dirty.
    """
    path_width = max(20, terminal_width // 2)
    branch_width = max(15, terminal_width * 3 // 10)

    display_path = truncate_path(format_path_with_tilde(worktree.path), path_width)
    branch_text = f"[{worktree.branch}]{format_worktree_symbols(worktree)}"

    row = Text(display_path.ljust(path_width) + "  ")
    row.append(branch_text.ljust(branch_width), style="yellow" if worktree.is_dirty else "green")
    row.append("  ")
    row.append(format_created_time(worktree.created_at), style="dim")

    if details:
        row.append(f"\n  → {worktree.head[:8]}", style="dim")
    return row


def format_prune_candidates(worktrees: List[Worktree]) -> str:
    """Rich markup describing each prune candidate."""
    lines = []
    for wt in worktrees:
        lines.append(f"  [bold]{wt.path}[/bold]")
        lines.append(f"    [dim]Branch: {wt.branch}[/dim]")
        lines.append(f"    [dim]Status: {format_worktree_status(wt)}[/dim]")
        if wt.has_known_creation_time:
            lines.append(f"    [dim]Created: {format_date(wt.created_at)}[/dim]")
        lines.append("")
    return "\n".join(lines)


def format_bootstrap_summary(summary: BootstrapSummary) -> str:
    """Rich markup for the result of running bootstrap commands."""
    if summary.all_succeeded:
        return f"[green]✓ Bootstrap complete: {summary.succeeded}/{summary.total} command(s) succeeded[/green]"

    lines = [
        f"[yellow]⚠ Bootstrap finished with failures: "
        f"{summary.succeeded}/{summary.total} command(s) succeeded[/yellow]"
    ]
    for display, reason in summary.failed:
        lines.append(f"[red]  • {display}: {reason}[/red]")
    return "\n".join(lines)
