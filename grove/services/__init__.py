"""Services for grove."""

from .discovery import discover_repository, find_grove_repo
from .bootstrap_service import BootstrapRunner
from .prune_service import PruneService

__all__ = [
    "discover_repository",
    "find_grove_repo",
    "BootstrapRunner",
    "PruneService",
]
