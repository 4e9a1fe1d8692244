"""Tests for WorktreeKeeper commands"""
import json
import os
import sys
from unittest.mock import Mock, patch

import pytest

from grove.constants import REPO_ENV_VAR, WORKTREE_ENV_VAR
from grove.core.worktree_keeper import WorktreeKeeper, clean_pr_branch_name, parse_pr_number
from grove.exceptions import (
    DiscoveryError,
    GitOperationError,
    GroveError,
    InvalidGitUrlError,
    PathValidationError,
    ValidationError,
)


@pytest.fixture
def mock_console():
    """Patch the keeper's rich console."""
    with patch("grove.core.worktree_keeper.console") as console:
        console.width = 100
        console.input.return_value = "y"
        yield console


@pytest.fixture
def keeper(grove_project, mock_config, mock_console):
    """Create a WorktreeKeeper started from the main worktree."""
    return WorktreeKeeper(mock_config, start_path=grove_project.main_path)


def _printed(console):
    return "\n".join(str(call.args[0]) for call in console.print.call_args_list if call.args)


class TestKeeperDiscovery:
    """Test repository discovery from the keeper."""

    def test_handle_is_cached(self, keeper, grove_project):
        """Test discovery runs once per keeper."""
        with patch(
            "grove.core.worktree_keeper.discover_repository", return_value=grove_project.handle
        ) as discover:
            keeper.handle
            keeper.handle
        discover.assert_called_once()

    def test_outside_project(self, temp_dir, mock_config, mock_console):
        """Test commands fail outside a grove project."""
        keeper = WorktreeKeeper(mock_config, start_path=temp_dir)
        with pytest.raises(DiscoveryError):
            keeper.list()


class TestAdd:
    """Test creating worktrees."""

    def test_new_branch(self, keeper, grove_project, mock_console):
        """Test a missing branch is created."""
        worktree = keeper.add("feature/new")
        assert worktree.branch == "feature/new"
        assert (grove_project.root / "feature" / "new" / ".git").is_file()
        assert "Created new branch and worktree" in _printed(mock_console)

    def test_existing_branch(self, keeper, grove_project, mock_console):
        """Test an existing branch is checked out without -b."""
        grove_project.bare_repo.git.branch("existing", "main")
        worktree = keeper.add("existing")
        assert worktree.branch == "existing"
        assert "Created worktree:" in _printed(mock_console)

    def test_traversal_rejected_before_git(self, keeper, grove_project):
        """Test unsafe names never reach git."""
        with patch.object(keeper.git_ops, "add_worktree") as add_worktree:
            with pytest.raises(PathValidationError):
                keeper.add("../outside")
        add_worktree.assert_not_called()
        assert not (grove_project.root.parent / "outside").exists()

    def test_both_attempts_fail(self, keeper):
        """Test both git errors are reported."""
        with patch.object(
            keeper.git_ops, "add_worktree", side_effect=GitOperationError("add worktree", "boom")
        ):
            with pytest.raises(GitOperationError) as exc_info:
                keeper.add("feature")
        assert "As existing branch" in str(exc_info.value)
        assert "As new branch" in str(exc_info.value)

    def test_runs_bootstrap(self, keeper, grove_project, mock_console):
        """Test bootstrap commands run inside the new worktree."""
        (grove_project.root / ".grove.json").write_text(json.dumps({
            "bootstrap": [
                {"program": sys.executable, "args": ["-c", "open('bootstrapped', 'w').close()"]},
                {"program": sys.executable, "args": ["-c", "import sys; sys.exit(1)"]},
            ]
        }))
        keeper.add("feature/boot")

        assert (grove_project.root / "feature" / "boot" / "bootstrapped").exists()
        assert "1/2" in _printed(mock_console)


class TestList:
    """Test listing worktrees."""

    def test_json(self, keeper, mock_console):
        """Test JSON output contains every worktree."""
        keeper.list(as_json=True)
        data = json.loads(mock_console.print_json.call_args.args[0])
        assert [wt["branch"] for wt in data] == ["main"]
        assert data[0]["isMain"] is True

    def test_filters(self, keeper, grove_project, add_worktree, mock_console):
        """Test dirty and locked filters."""
        dirty = add_worktree("feature/dirty")
        (dirty / "wip.txt").write_text("wip\n")
        locked = add_worktree("feature/locked")
        grove_project.bare_repo.git.worktree("lock", str(locked))

        assert [wt.branch for wt in keeper.list(dirty=True)] == ["feature/dirty"]
        assert [wt.branch for wt in keeper.list(locked=True)] == ["feature/locked"]
        assert keeper.list(dirty=True, locked=True) == []
        assert "No worktrees found matching the criteria." in _printed(mock_console)


class TestRemove:
    """Test removing a single worktree."""

    def test_refuses_main(self, keeper):
        """Test the main worktree is protected."""
        with pytest.raises(ValidationError, match="Cannot remove the main worktree"):
            keeper.remove("main", yes=True)

    def test_refuses_locked(self, keeper, grove_project, add_worktree):
        """Test locked worktrees are protected."""
        path = add_worktree("feature/locked")
        grove_project.bare_repo.git.worktree("lock", str(path))
        with pytest.raises(ValidationError, match="is locked"):
            keeper.remove("feature/locked", yes=True)

    def test_refuses_dirty_without_force(self, keeper, add_worktree):
        """Test dirty worktrees need --force."""
        path = add_worktree("feature/dirty")
        (path / "wip.txt").write_text("wip\n")
        with pytest.raises(ValidationError, match="uncommitted changes"):
            keeper.remove("feature/dirty", yes=True)

        assert keeper.remove("feature/dirty", force=True, yes=True) is True
        assert not path.exists()

    def test_cancelled(self, keeper, add_worktree, mock_console):
        """Test declining the confirmation keeps the worktree."""
        path = add_worktree("feature/keep")
        mock_console.input.return_value = "n"
        assert keeper.remove("feature/keep") is False
        assert path.exists()

    def test_confirmed(self, keeper, add_worktree, mock_console):
        """Test accepting the confirmation removes the worktree."""
        path = add_worktree("feature/gone")
        assert keeper.remove("gone") is True
        assert not path.exists()
        mock_console.input.assert_called_once()

    def test_unknown(self, keeper):
        """Test unknown names are reported."""
        with pytest.raises(ValidationError, match="not found"):
            keeper.remove("missing", yes=True)


class TestPrune:
    """Test pruning merged and old worktrees."""

    def test_dry_run(self, keeper, grove_project, add_worktree, mock_console):
        """Test dry-run lists candidates without removing them."""
        path = add_worktree("feature/merged")
        candidates = keeper.prune(dry_run=True)
        assert [wt.branch for wt in candidates] == ["feature/merged"]
        assert path.exists()
        assert "This was a dry run" in _printed(mock_console)
        mock_console.input.assert_not_called()

    def test_force_removes(self, keeper, add_worktree, make_commit, mock_console):
        """Test forced prune removes merged worktrees only."""
        merged = add_worktree("feature/merged")
        open_path = add_worktree("feature/open")
        make_commit(open_path, "open.txt", "open\n")

        keeper.prune(force=True)
        assert not merged.exists()
        assert open_path.exists()
        assert "Removed 1 worktree(s)" in _printed(mock_console)

    def test_confirmation_mentions_dirty(self, keeper, add_worktree, mock_console):
        """Test the prompt counts dirty candidates."""
        path = add_worktree("feature/merged")
        (path / "wip.txt").write_text("wip\n")
        mock_console.input.return_value = "n"

        keeper.prune()
        prompt = mock_console.input.call_args.args[0]
        assert "Remove 1 worktree(s)? 1 has uncommitted changes" in prompt
        assert path.exists()

    def test_base_and_older_than_exclusive(self, keeper):
        """Test the two modes cannot be combined."""
        with pytest.raises(ValidationError, match="cannot be used together"):
            keeper.prune(base="main", older_than="30d")

    def test_invalid_duration(self, keeper):
        """Test bad durations are rejected before listing."""
        with pytest.raises(ValidationError, match="Invalid duration format"):
            keeper.prune(older_than="soon")

    def test_older_than_none_qualify(self, keeper, add_worktree, mock_console):
        """Test freshly created worktrees are not old."""
        add_worktree("feature/fresh")
        assert keeper.prune(older_than="30d", force=True) == []
        assert "No worktrees found older than the specified duration." in _printed(mock_console)


class TestSync:
    """Test syncing branches."""

    def test_refuses_checked_out_branch(self, keeper):
        """Test a branch checked out in a worktree is not synced."""
        with pytest.raises(ValidationError, match="checked out in a worktree"):
            keeper.sync("main")

    def test_sync_branch(self, keeper, grove_project):
        """Test a branch without a worktree is fast-forwarded."""
        grove_project.origin.git.branch("release")
        grove_project.bare_repo.git.branch("release", "main")
        assert keeper.sync("release") == "release"


class TestGo:
    """Test entering worktrees."""

    def test_path_only(self, keeper, grove_project, capsys):
        """Test -p prints just the path."""
        assert keeper.go("main", path_only=True) == 0
        assert os.path.realpath(capsys.readouterr().out.strip()) == str(grove_project.main_path)

    def test_spawns_shell(self, keeper, grove_project, temp_dir, mock_console):
        """Test the shell runs in the worktree with grove variables set."""
        prefs_path = temp_dir / "prefs.json"
        with patch("grove.config.get_config_path", return_value=prefs_path), \
                patch("grove.core.worktree_keeper.subprocess.run", return_value=Mock(returncode=0)) as run:
            assert keeper.go("main") == 0

        kwargs = run.call_args.kwargs
        assert os.path.realpath(kwargs["cwd"]) == str(grove_project.main_path)
        assert kwargs["env"][WORKTREE_ENV_VAR] == "main"
        assert kwargs["env"][REPO_ENV_VAR] == str(grove_project.bare_path)
        assert json.loads(prefs_path.read_text()) == {"shellTipShown": True}
        assert "Tip:" in _printed(mock_console)


class TestPullRequests:
    """Test checking out pull requests."""

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "1.5", ""])
    def test_invalid_number(self, value):
        """Test non-positive and non-numeric PR numbers."""
        with pytest.raises(ValidationError, match="Invalid PR number"):
            parse_pr_number(value)

    def test_clean_branch_name(self):
        """Test branch names are reduced to safe characters."""
        assert clean_pr_branch_name("feature/add login!") == "feature-add-login"
        assert clean_pr_branch_name("--fix//this--") == "fix-this"

    def test_gh_missing(self, keeper):
        """Test a missing gh CLI is reported."""
        with patch("grove.core.worktree_keeper.shutil.which", return_value=None):
            with pytest.raises(GroveError, match="gh CLI is not installed"):
                keeper.pr("7")

    def test_checkout(self, keeper, grove_project, make_commit, mock_console):
        """Test a PR head is fetched into pr-<n> and checked out."""
        origin = grove_project.origin
        origin.git.checkout("-b", "feature/login")
        sha = make_commit(origin.working_dir, "login.txt", "login\n")
        origin.git.update_ref("refs/pull/7/head", sha)
        origin.git.checkout("main")

        gh_output = Mock(returncode=0, stdout=json.dumps({"headRefName": "feature/login"}), stderr="")
        with patch("grove.core.worktree_keeper.shutil.which", return_value="/usr/bin/gh"), \
                patch("grove.core.worktree_keeper.subprocess.run", return_value=gh_output) as run:
            worktree = keeper.pr("7")

        assert run.call_args.args[0] == ["gh", "pr", "view", "7", "--json", "headRefName,headRepository"]
        assert worktree.branch == "pr-7"
        assert (grove_project.root / "pr-7-feature-login" / "login.txt").exists()

    def test_gh_failure(self, keeper):
        """Test a failing gh call is reported."""
        failed = Mock(returncode=1, stdout="", stderr="not found")
        with patch("grove.core.worktree_keeper.shutil.which", return_value="/usr/bin/gh"), \
                patch("grove.core.worktree_keeper.subprocess.run", return_value=failed):
            with pytest.raises(GroveError, match="Failed to fetch PR #7"):
                keeper.pr("7")


class TestInit:
    """Test creating a grove setup."""

    def test_init(self, temp_dir, mock_config, mock_console):
        """Test the bare clone lands in <name>/<name>.git."""
        keeper = WorktreeKeeper(mock_config, start_path=temp_dir)
        with patch("grove.core.worktree_keeper.clone_bare_repository") as clone:
            bare = keeper.init("https://github.com/user/repo.git")
        assert bare == temp_dir / "repo" / "repo.git"
        clone.assert_called_once_with("https://github.com/user/repo.git", bare)

    def test_invalid_url(self, temp_dir, mock_config, mock_console):
        """Test unsupported URLs are rejected."""
        keeper = WorktreeKeeper(mock_config, start_path=temp_dir)
        with pytest.raises(InvalidGitUrlError):
            keeper.init("not-a-url")

    def test_inside_existing_project(self, grove_project, mock_config, mock_console):
        """Test init refuses to nest grove setups."""
        keeper = WorktreeKeeper(mock_config, start_path=grove_project.main_path)
        with pytest.raises(ValidationError, match="existing grove repository"):
            keeper.init("https://github.com/user/repo.git")

    def test_clone_failure_cleans_up(self, temp_dir, mock_config, mock_console):
        """Test a failed clone removes the directory it created."""
        keeper = WorktreeKeeper(mock_config, start_path=temp_dir)
        with patch(
            "grove.core.worktree_keeper.clone_bare_repository",
            side_effect=GitOperationError("clone repository", "denied"),
        ):
            with pytest.raises(GitOperationError):
                keeper.init("https://github.com/user/repo.git")
        assert not (temp_dir / "repo").exists()
