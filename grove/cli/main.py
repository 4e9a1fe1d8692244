"""Command-line entry point for grove"""

import os
import sys

from rich.console import Console

from grove.cli.args import parse_args
from grove.config import Config
from grove.constants import REPO_ENV_VAR
from grove.core.worktree_keeper import WorktreeKeeper
from grove.exceptions import GroveError
from grove.logging_config import setup_logging
from grove.utils.threading import get_threading_info

console = Console(stderr=True)


def _print_debug_info(config: Config) -> None:
    console.print("[yellow]Debug mode enabled[/yellow]")

    threading_info = get_threading_info()
    console.print("[yellow]Threading Information:[/yellow]")
    console.print(f"  Python version: {threading_info['python_version']}")
    console.print(f"  Threading mode: {threading_info['mode']}")
    console.print(f"  CPU count: {threading_info['cpu_count']}")
    console.print(f"  Optimal workers: {threading_info['optimal_workers']}")
    console.print(f"  Free-threading enabled: {threading_info['free_threading']}")

    console.print("[yellow]Configuration:[/yellow]")
    for key, value in config.to_dict().items():
        console.print(f"  {key}: {value}")


def run_command(keeper: WorktreeKeeper, args) -> int:
    """Dispatch parsed arguments to the matching keeper command."""
    command = args.command
    if command == "init":
        keeper.init(args.git_url)
    elif command == "add":
        keeper.add(args.name, track=args.track)
    elif command in ("list", "ls"):
        keeper.list(
            details=args.details, dirty=args.dirty, locked=args.locked, as_json=args.as_json
        )
    elif command in ("remove", "rm"):
        keeper.remove(args.name, force=args.force, yes=args.yes)
    elif command == "prune":
        keeper.prune(
            dry_run=args.dry_run, force=args.force, base=args.base, older_than=args.older_than
        )
    elif command == "sync":
        keeper.sync(args.branch)
    elif command == "go":
        return keeper.go(args.name, path_only=args.path_only)
    elif command == "pr":
        keeper.pr(args.pr_number)
    else:
        raise GroveError(f"Unknown command: {command}")
    return 0


def main(argv=None) -> int:
    """Main entry point for the application."""
    args = None
    try:
        args = parse_args(argv)

        # Setup logging before discovering the repository
        setup_logging(verbose=args.verbose, debug=args.debug)

        config = Config(
            verbose=args.verbose,
            debug=args.debug,
            sequential=args.sequential,
            workers=args.workers,
        )

        if args.debug:
            _print_debug_info(config)

        keeper = WorktreeKeeper(config, cached_repo=os.environ.get(REPO_ENV_VAR))
        return run_command(keeper, args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except (GroveError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if args is not None and args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
