"""Shared constants for grove."""

from datetime import datetime, timezone

# Branch names treated as the repository's main line
MAIN_BRANCHES = ("main", "master")

# Branch value reported for worktrees checked out at a bare commit
DETACHED_HEAD = "detached HEAD"

# Environment variable carrying a previously discovered bare clone path
REPO_ENV_VAR = "GROVE_REPO"

# Environment variable exported to shells spawned inside a worktree
WORKTREE_ENV_VAR = "GROVE_WORKTREE"

# Directory-name suffix of bare clones created by `grove init`
BARE_CLONE_SUFFIX = ".git"

# Characters that are not allowed in worktree directory names
RESERVED_PATH_CHARACTERS = ("<", ">", ":", '"', "|", "?", "*")

# Sentinel for an unknown worktree creation time
EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

# Project-level configuration file, relative to the project root
PROJECT_CONFIG_FILENAME = ".grove.json"

# Fetch refspec configured on fresh bare clones
DEFAULT_FETCH_REFSPEC = "+refs/heads/*:refs/remotes/origin/*"


# Symbol constants
SYMBOL_LOCKED = "🔒"
SYMBOL_PRUNABLE = "⚠"

# Legend text for `grove list`
LEGEND_TEXT = "[dim]Legend:[/dim] [green]green[/green] = clean, [yellow]yellow[/yellow] = dirty"
DETAILS_LEGEND_TEXT = f"[dim]Symbols: {SYMBOL_LOCKED} = locked, {SYMBOL_PRUNABLE} = prunable[/dim]"
