"""Core functionality for grove"""

import json
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from rich.console import Console

from grove.config import Config, ProjectConfig, UserPreferences
from grove.constants import (
    DETAILS_LEGEND_TEXT,
    LEGEND_TEXT,
    REPO_ENV_VAR,
    WORKTREE_ENV_VAR,
)
from grove.exceptions import GitOperationError, GroveError, InvalidGitUrlError, ValidationError
from grove.formatters import (
    format_bootstrap_summary,
    format_prune_candidates,
    format_worktree_row,
)
from grove.logging_config import get_logger
from grove.models.bootstrap import BootstrapCommand, BootstrapSummary
from grove.models.repository import RepositoryHandle
from grove.models.worktree import Worktree
from grove.services.bootstrap_service import BootstrapRunner
from grove.services.discovery import discover_repository, find_grove_repo
from grove.services.git.operations import GitOperations, clone_bare_repository
from grove.services.git.worktrees import WorktreeService, match_worktree_by_name
from grove.services.prune_service import PruneService, count_dirty
from grove.utils.duration import parse_duration
from grove.utils.paths import resolve_worktree_path
from grove.utils.urls import extract_repo_name, is_valid_git_url

console = Console()
logger = get_logger(__name__)

_PR_BRANCH_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")


def clean_pr_branch_name(branch_name: str) -> str:
    """Reduce a PR head branch to characters safe for a directory name."""
    cleaned = _PR_BRANCH_UNSAFE_RE.sub("-", branch_name)
    cleaned = re.sub(r"-{2,}", "-", cleaned)
    return cleaned.strip("-")


def get_shell() -> str:
    """Shell to spawn for `grove go`."""
    if os.name == "nt":
        return os.environ.get("COMSPEC", "cmd.exe")
    return os.environ.get("SHELL") or "/bin/sh"


class WorktreeKeeper:
    """Runs grove commands against the repository found from ``start_path``."""

    def __init__(
        self,
        config: Union[Config, dict],
        start_path: Optional[Union[str, Path]] = None,
        cached_repo: Optional[str] = None,
    ):
        """Initialize WorktreeKeeper.

        Args:
            config: Configuration dict or Config object
            start_path: Directory to discover the repository from (defaults to the cwd)
            cached_repo: Previously discovered bare clone, e.g. from $GROVE_REPO
        """
        if isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config
        self.start_path = Path(start_path) if start_path is not None else Path.cwd()
        self.cached_repo = cached_repo

        # Discovered once per keeper, on first use
        self._handle: Optional[RepositoryHandle] = None
        self._git_ops: Optional[GitOperations] = None

    def _console_print(self, *args, **kwargs):
        console.print(*args, **kwargs)

    def _confirm(self, message: str) -> bool:
        response = console.input(f"\n{message} [y/N] ")
        return response.strip().lower() == "y"

    @property
    def handle(self) -> RepositoryHandle:
        """The discovered repository.

        Raises:
            DiscoveryError: If the start path is not inside a grove project.
        """
        if self._handle is None:
            self._handle = discover_repository(self.start_path, self.cached_repo)
        return self._handle

    @property
    def git_ops(self) -> GitOperations:
        if self._git_ops is None:
            self._git_ops = GitOperations(self.handle)
        return self._git_ops

    @property
    def worktree_service(self) -> WorktreeService:
        return WorktreeService(
            self.git_ops,
            main_branches=self.config.main_branches,
            workers=self.config.effective_workers,
        )

    def list_worktrees(self) -> List[Worktree]:
        return self.worktree_service.list_worktrees()

    def find_worktree(self, name: str) -> Worktree:
        """Look up a worktree by name.

        Raises:
            ValidationError: If no worktree matches.
        """
        worktree = match_worktree_by_name(self.list_worktrees(), name)
        if worktree is None:
            raise ValidationError(
                f"Worktree '{name}' not found. Use 'grove list' to see available worktrees."
            )
        return worktree

    def init(self, git_url: str) -> Path:
        """Clone ``git_url`` as ``<name>/<name>.git`` under the start path.

        Returns:
            Path to the new bare clone
        """
        existing = find_grove_repo(self.start_path)
        if existing is not None:
            raise ValidationError(
                "Cannot initialize grove inside an existing grove repository.\n"
                f"Detected grove repository at: {existing}\n\n"
                "To create a new grove setup, run 'grove init' from outside this directory hierarchy."
            )

        if not is_valid_git_url(git_url):
            raise InvalidGitUrlError(
                "Invalid git URL format. Supported formats:\n"
                "  - HTTPS: https://github.com/user/repo.git\n"
                "  - SSH: git@github.com:user/repo.git\n"
                "  - SSH: ssh://git@github.com/user/repo.git"
            )

        repo_name = extract_repo_name(git_url)
        project_dir = self.start_path / repo_name
        bare_repo_dir = project_dir / f"{repo_name}.git"

        created_dir = False
        if not project_dir.exists():
            try:
                project_dir.mkdir(parents=True)
            except OSError as e:
                raise GroveError(f"Failed to create directory: {e}") from e
            created_dir = True

        if bare_repo_dir.exists():
            raise ValidationError(f"Directory {bare_repo_dir} already exists")

        try:
            clone_bare_repository(git_url, bare_repo_dir)
        except GitOperationError:
            if created_dir:
                shutil.rmtree(project_dir, ignore_errors=True)
            raise

        self._console_print(f"[green]✓ Initialized worktree setup:[/green] [bold]{repo_name}[/bold]")
        self._console_print(f"  [dim]Bare repository:[/dim] {bare_repo_dir}")
        self._console_print()
        self._console_print("[bold]Next steps:[/bold]")
        self._console_print(f"  [dim]cd[/dim] {bare_repo_dir}")
        self._console_print("  [dim]grove add[/dim] <branch-name>")
        return bare_repo_dir

    def add(self, name: str, track: Optional[str] = None) -> Worktree:
        """Create a worktree for ``name``, creating the branch when it does not exist.

        Raises:
            PathValidationError: If ``name`` would escape the project root.
            GitOperationError: If git refuses both as an existing and as a new branch.
        """
        worktree_path = resolve_worktree_path(name, self.handle.project_root)

        is_new_branch = False
        try:
            self.git_ops.add_worktree(worktree_path, name, create_branch=False, track=track)
        except GitOperationError as existing_err:
            logger.debug(f"Could not add '{name}' as an existing branch: {existing_err}")
            try:
                self.git_ops.add_worktree(worktree_path, name, create_branch=True, track=track)
            except GitOperationError as new_err:
                raise GitOperationError(
                    f"create worktree for '{name}'",
                    f"\n  As existing branch: {existing_err.message or existing_err}"
                    f"\n  As new branch: {new_err.message or new_err}",
                ) from new_err
            is_new_branch = True

        if is_new_branch:
            self._console_print(f"[green]✓ Created new branch and worktree:[/green] [bold]{name}[/bold]")
        else:
            self._console_print(f"[green]✓ Created worktree:[/green] [bold]{name}[/bold]")
        self._console_print(f"  [dim]Path: {worktree_path}[/dim]")

        self.run_bootstrap(worktree_path)
        return self._worktree_at(worktree_path)

    def _worktree_at(self, worktree_path: Path) -> Worktree:
        target = os.path.realpath(worktree_path)
        for wt in self.list_worktrees():
            if os.path.realpath(wt.path) == target:
                return wt
        raise GitOperationError("find new worktree", f"{worktree_path} is not registered with git")

    def run_bootstrap(self, worktree_path: Union[str, Path]) -> Optional[BootstrapSummary]:
        """Run the project's bootstrap commands in a freshly created worktree."""
        project_config = ProjectConfig.load(self.handle.project_root)
        if not project_config.bootstrap_commands:
            return None

        def announce(index: int, total: int, command: BootstrapCommand) -> None:
            self._console_print(f"[blue]Running bootstrap ({index}/{total}):[/blue] {command.display}")

        self._console_print()
        summary = BootstrapRunner(on_command_start=announce).run(
            worktree_path, project_config.bootstrap_commands
        )
        self._console_print(format_bootstrap_summary(summary))
        return summary

    def list(
        self,
        details: bool = False,
        dirty: bool = False,
        locked: bool = False,
        as_json: bool = False,
    ) -> List[Worktree]:
        """Print worktrees, optionally only the dirty and/or locked ones."""
        worktrees = self.list_worktrees()
        shown = [
            wt for wt in worktrees
            if (not dirty or wt.is_dirty) and (not locked or wt.is_locked)
        ]

        if as_json:
            console.print_json(json.dumps([wt.to_dict() for wt in shown]))
            return shown

        if not worktrees:
            self._console_print("[yellow]No worktrees found.[/yellow]")
            return shown

        self._console_print(LEGEND_TEXT)
        if details:
            self._console_print(DETAILS_LEGEND_TEXT)
        self._console_print()

        if not shown:
            self._console_print("[yellow]No worktrees found matching the criteria.[/yellow]")
            return shown

        for wt in shown:
            self._console_print(format_worktree_row(wt, terminal_width=console.width, details=details))
        return shown

    def remove(self, name: str, force: bool = False, yes: bool = False) -> bool:
        """Remove one worktree.

        Returns:
            True if removed, False if the user cancelled

        Raises:
            ValidationError: For main, locked, or dirty (without ``force``) worktrees.
        """
        worktree = self.find_worktree(name)

        if worktree.is_main:
            raise ValidationError(
                f"Cannot remove the main worktree ({worktree.branch}). This is the primary worktree."
            )
        if worktree.is_locked:
            raise ValidationError(
                f"Worktree '{worktree.branch}' is locked. Unlock it first with 'git worktree unlock'."
            )
        if worktree.is_dirty and not force:
            raise ValidationError(
                "This worktree has uncommitted changes.\n"
                "Use --force to remove it anyway, or commit/stash your changes first."
            )

        if not yes:
            message = f"Are you sure you want to remove the worktree for '{worktree.branch}'?"
            if worktree.is_dirty:
                message += " Uncommitted changes will be lost!"
            if not self._confirm(message):
                self._console_print("[blue]Operation cancelled.[/blue]")
                return False

        self.git_ops.remove_worktree(worktree.path, force=force)
        self._console_print(f"[green]✓ Removed worktree:[/green] [bold]{worktree.branch}[/bold]")
        return True

    def prune(
        self,
        dry_run: bool = False,
        force: bool = False,
        base: Optional[str] = None,
        older_than: Optional[str] = None,
    ) -> List[Worktree]:
        """Remove worktrees whose branches are merged, or that are older than a duration.

        Returns:
            The candidate worktrees (removed unless dry-run or cancelled)
        """
        if older_than is not None and base:
            raise ValidationError(
                "--base and --older-than cannot be used together "
                "(--base is ignored when --older-than is specified)"
            )

        older_than_ms = parse_duration(older_than) if older_than is not None else None
        base_branch = None
        if older_than_ms is None:
            base_branch = base or self.git_ops.get_default_branch()
            logger.info(f"Checking worktrees merged into {base_branch}")

        prune_service = PruneService(self.git_ops)
        selection = prune_service.find_candidates(
            self.list_worktrees(), base_branch=base_branch, older_than_ms=older_than_ms
        )

        if not dry_run:
            for warning in selection.warnings:
                self._console_print(f"[yellow]Warning:[/yellow] {warning}")

        candidates = selection.candidates
        if not candidates:
            if older_than is not None:
                self._console_print("[yellow]No worktrees found older than the specified duration.[/yellow]")
            else:
                self._console_print("[yellow]No worktrees found with merged branches.[/yellow]")
            return candidates

        if older_than is not None:
            self._console_print(f"[green]Found {len(candidates)} worktree(s) older than {older_than}:[/green]")
        else:
            self._console_print(f"[green]Found {len(candidates)} worktree(s) with merged branches:[/green]")
        self._console_print()
        self._console_print(format_prune_candidates(candidates))

        if dry_run:
            self._console_print(
                "[blue]This was a dry run. Remove --dry-run flag to actually remove the worktrees.[/blue]"
            )
            return candidates

        if not force:
            dirty_count = count_dirty(candidates)
            message = f"Remove {len(candidates)} worktree(s)?"
            if dirty_count:
                verb = "has" if dirty_count == 1 else "have"
                message += f" {dirty_count} {verb} uncommitted changes that will be lost."
            if not self._confirm(message):
                self._console_print("[blue]Operation cancelled.[/blue]")
                return candidates

        self._console_print("\n[blue]Removing worktrees...[/blue]")
        summary = prune_service.remove_worktrees(candidates, force=True)

        for path in summary.removed:
            self._console_print(f"[green]✓ Removed worktree: {path}[/green]")
        for path, error in summary.failed:
            self._console_print(f"[red]✗ Failed to remove {path}: {error}[/red]")

        if summary.removed:
            self._console_print(
                f"\n[green]Prune operation completed. Removed {len(summary.removed)} worktree(s).[/green]"
            )
        if summary.failed:
            self._console_print(f"\n[yellow]Failed to remove {len(summary.failed)} worktree(s).[/yellow]")
        return candidates

    def sync(self, branch: Optional[str] = None) -> str:
        """Fast-forward ``branch`` (default: the remote's default branch) from origin.

        Raises:
            ValidationError: If the branch is checked out in a worktree.
        """
        target_branch = branch or self.git_ops.get_default_branch()

        if self.worktree_service.is_branch_checked_out(target_branch):
            raise ValidationError(
                f"Branch '{target_branch}' is checked out in a worktree. Git won't sync against a "
                "checked-out branch (a limitation of git worktrees).\n"
                f"Run 'git fetch origin', then merge or rebase from 'origin/{target_branch}'."
            )

        self.git_ops.sync_branch(target_branch)
        self._console_print(f"[green]✓ Synced[/green] [bold]{target_branch}[/bold] [dim]from origin[/dim]")
        return target_branch

    def go(self, name: str, path_only: bool = False) -> int:
        """Print a worktree's path, or open a shell inside it.

        Returns:
            Exit status of the spawned shell (0 for ``path_only``)
        """
        worktree = self.find_worktree(name)

        if path_only:
            # Plain print so the output can feed `cd "$(grove go -p name)"`
            print(worktree.path)
            return 0

        shell = get_shell()
        self._console_print(f"[green]✓ Entering worktree:[/green] [bold]{worktree.branch}[/bold]")
        self._console_print(f"  [dim]Path:[/dim] {worktree.path}")

        preferences = UserPreferences.load()
        if preferences.should_show_shell_tip():
            self._console_print(
                "\n[bold]Tip:[/bold] to change directory without a subshell, run:\n\n"
                f"  [cyan]cd \"$(grove go -p {worktree.branch})\"[/cyan]"
            )
            preferences.mark_shell_tip_shown()
        self._console_print()

        env = dict(os.environ)
        env[WORKTREE_ENV_VAR] = worktree.branch
        env[REPO_ENV_VAR] = str(self.handle.repo_path)

        logger.debug(f"Spawning {shell} in {worktree.path}")
        try:
            result = subprocess.run([shell], cwd=worktree.path, env=env, check=False)
        except OSError as e:
            raise GroveError(f"Failed to spawn shell: {e}") from e

        self._console_print("[dim]Exited worktree shell.[/dim]")
        return result.returncode

    def pr(self, pr_number: str) -> Optional[Worktree]:
        """Check out a GitHub pull request into its own worktree.

        Returns:
            The new worktree, or None if it already existed
        """
        pr_num = parse_pr_number(pr_number)

        if shutil.which("gh") is None:
            raise GroveError("gh CLI is not installed. Please install it from https://cli.github.com/")

        self._console_print(f"[dim]Fetching PR #{pr_num} information...[/dim]")
        branch_name = self._get_pr_head_branch(pr_num)

        cleaned = clean_pr_branch_name(branch_name)
        worktree_name = f"pr-{pr_num}-{cleaned}" if cleaned else f"pr-{pr_num}"
        worktree_path = resolve_worktree_path(worktree_name, self.handle.project_root)

        if match_worktree_by_name(self.list_worktrees(), worktree_name) is not None:
            self._console_print(f"[yellow]⚠ Worktree already exists:[/yellow] [bold]{worktree_path}[/bold]")
            return None

        self._console_print(f"[dim]Fetching PR branch: {branch_name}...[/dim]")
        local_branch = self.git_ops.fetch_pull_request(pr_num)

        self._console_print(f"[dim]Creating worktree: {worktree_name}...[/dim]")
        self.git_ops.add_worktree(worktree_path, local_branch)

        self._console_print(f"[green]✓ Created worktree for PR[/green] [bold]#{pr_num}[/bold]")
        self._console_print(f"  [dim]Branch:[/dim] [bold]{branch_name}[/bold]")
        self._console_print(f"  [dim]Path:[/dim] [bold]{worktree_path}[/bold]")

        self.run_bootstrap(worktree_path)

        self._console_print()
        self._console_print("[dim]To switch to this worktree, run:[/dim]")
        self._console_print(f"  [cyan]grove go {worktree_name}[/cyan]")
        return self._worktree_at(worktree_path)

    def _get_pr_head_branch(self, pr_num: int) -> str:
        """Ask `gh` for the head branch of a pull request."""
        try:
            result = subprocess.run(
                ["gh", "pr", "view", str(pr_num), "--json", "headRefName,headRepository"],
                cwd=str(self.handle.repo_path),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise GroveError(f"Failed to run gh: {e}") from e

        if result.returncode != 0:
            logger.debug(f"gh pr view failed: {result.stderr.strip()}")
            raise GroveError(
                f"Failed to fetch PR #{pr_num}. Make sure the PR exists and you have access to the repository."
            )

        try:
            pr_info = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise GroveError(f"Failed to parse PR #{pr_num} info.") from e

        branch_name = pr_info.get("headRefName") if isinstance(pr_info, dict) else None
        if not isinstance(branch_name, str) or not branch_name:
            raise GroveError(f"Could not determine branch name for PR #{pr_num}")
        return branch_name


def parse_pr_number(pr_number: str) -> int:
    """Parse a positive pull request number.

    Raises:
        ValidationError: For anything that is not a positive integer.
    """
    text = str(pr_number).strip()
    if not text.isdigit() or int(text) <= 0:
        raise ValidationError(f"Invalid PR number: {pr_number}")
    return int(text)
