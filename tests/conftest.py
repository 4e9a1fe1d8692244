"""Pytest fixtures for grove tests"""
import tempfile
from pathlib import Path
from types import SimpleNamespace

import git
import pytest

from grove.models.repository import RepositoryHandle
from grove.services.git.operations import GitOperations, clone_bare_repository


def _configure_user(repo):
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # Resolve so paths match what git reports (macOS /tmp is a symlink)
        yield Path(tmpdir).resolve()


@pytest.fixture
def mock_config():
    """Create a configuration dictionary."""
    return {
        "verbose": False,
        "debug": False,
        "sequential": True,
        "workers": None,
        "main_branches": ["main", "master"],
    }


@pytest.fixture
def origin_repo(temp_dir):
    """Create a regular repository that plays the role of the remote."""
    repo_path = temp_dir / "origin"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)
    _configure_user(repo)

    readme = repo_path / "README.md"
    readme.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch("-M", "main")

    yield repo

    repo.close()


@pytest.fixture
def grove_project(temp_dir, origin_repo):
    """Create a grove layout: project/project.git plus a main worktree at project/main."""
    project_root = temp_dir / "project"
    project_root.mkdir()
    bare_path = project_root / "project.git"

    clone_bare_repository(origin_repo.working_dir, bare_path)
    bare_repo = git.Repo(bare_path)
    _configure_user(bare_repo)
    # Populate refs/remotes/origin/* so tracking refs exist like after a real fetch
    bare_repo.git.fetch("origin")

    main_path = project_root / "main"
    bare_repo.git.worktree("add", str(main_path), "main")

    handle = RepositoryHandle.from_bare_clone(bare_path)
    yield SimpleNamespace(
        root=project_root,
        bare_path=bare_path,
        bare_repo=bare_repo,
        main_path=main_path,
        handle=handle,
        git_ops=GitOperations(handle),
        origin=origin_repo,
    )

    bare_repo.close()


@pytest.fixture
def make_commit():
    """Return a helper that writes a file in a worktree and commits it."""

    def _make_commit(worktree_path, filename, content, message=None):
        (Path(worktree_path) / filename).write_text(content)
        cmd = git.Git(str(worktree_path))
        cmd.add(filename)
        cmd.commit("-m", message or f"Update {filename}")
        return cmd.rev_parse("HEAD").strip()

    return _make_commit


@pytest.fixture
def add_worktree(grove_project):
    """Return a helper that creates a new branch worktree under the project root."""

    def _add_worktree(branch, start_point="main", dirname=None):
        path = grove_project.root / (dirname or branch)
        grove_project.bare_repo.git.worktree("add", "-b", branch, str(path), start_point)
        return path

    return _add_worktree
