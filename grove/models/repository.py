"""Repository handle model."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class RepositoryHandle:
    """Location of a grove-managed bare clone and the project it anchors."""

    repo_path: Path  # The bare clone, e.g. /src/project/project.git
    project_root: Path  # Always the bare clone's parent directory

    @classmethod
    def from_bare_clone(cls, bare_clone_path: Union[str, os.PathLike]) -> "RepositoryHandle":
        """Build a handle from a bare clone path without any discovery."""
        repo_path = Path(os.path.abspath(bare_clone_path))
        return cls(repo_path=repo_path, project_root=get_project_root(repo_path))

    def __str__(self) -> str:
        return str(self.repo_path)


def get_project_root(bare_clone_path: Path) -> Path:
    """Return the directory that holds the bare clone and its worktrees."""
    return Path(bare_clone_path).parent
