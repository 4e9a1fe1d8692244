"""Command-line argument parsing for grove."""

import argparse

from grove.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with one subparser per command."""
    parser = argparse.ArgumentParser(
        prog="grove",
        description="Manage a bare clone and its worktrees, one directory per branch",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--version", action="version", version=f"grove {__version__}")
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Number of parallel workers for worktree status checks (default: auto-detect)",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Force sequential processing (disable parallelism)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    init_parser = subparsers.add_parser("init", help="Clone a repository as a grove setup")
    init_parser.add_argument("git_url", help="URL of the repository to clone")

    add_parser = subparsers.add_parser("add", help="Create a worktree for a branch")
    add_parser.add_argument("name", help="Branch name (created if it does not exist)")
    add_parser.add_argument(
        "--track", metavar="REF", help="Remote-tracking branch for a new branch, e.g. origin/main"
    )

    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List worktrees")
    list_parser.add_argument("--details", action="store_true", help="Show commit and status symbols")
    list_parser.add_argument("--dirty", action="store_true", help="Only worktrees with uncommitted changes")
    list_parser.add_argument("--locked", action="store_true", help="Only locked worktrees")
    list_parser.add_argument("--json", action="store_true", dest="as_json", help="Output JSON")

    remove_parser = subparsers.add_parser("remove", aliases=["rm"], help="Remove a worktree")
    remove_parser.add_argument("name", help="Branch or directory name of the worktree")
    remove_parser.add_argument(
        "--force", action="store_true", help="Remove even with uncommitted changes"
    )
    remove_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    prune_parser = subparsers.add_parser(
        "prune", help="Remove worktrees with merged branches or older than a duration"
    )
    prune_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview mode - show what would be removed without removing anything",
    )
    prune_parser.add_argument("--force", action="store_true", help="Skip confirmation")
    prune_parser.add_argument(
        "--base", metavar="BRANCH", help="Base branch for merge checks (default: remote default branch)"
    )
    prune_parser.add_argument(
        "--older-than",
        metavar="DURATION",
        help="Prune by age instead of merge status, e.g. 30d, 2w, 6M, 1y or P1M",
    )

    sync_parser = subparsers.add_parser("sync", help="Fast-forward a branch from origin")
    sync_parser.add_argument(
        "-b", "--branch", help="Branch to sync (default: remote default branch)"
    )

    go_parser = subparsers.add_parser("go", help="Open a shell in a worktree")
    go_parser.add_argument("name", help="Branch or directory name of the worktree")
    go_parser.add_argument(
        "-p", "--path-only", action="store_true", help="Print the worktree path and exit"
    )

    pr_parser = subparsers.add_parser("pr", help="Check out a GitHub pull request in a worktree")
    pr_parser.add_argument("pr_number", help="Pull request number")

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
