"""Tests for PruneService"""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from grove.constants import DETACHED_HEAD, EPOCH
from grove.exceptions import GitOperationError, ValidationError
from grove.models.worktree import Worktree
from grove.services.prune_service import PruneService, count_dirty
from grove.utils.duration import MS_PER_DAY

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _worktree(branch, created_at=EPOCH, **kwargs):
    return Worktree(path=f"/p/{branch}", branch=branch, head="abc", created_at=created_at, **kwargs)


@pytest.fixture
def merge_detector():
    detector = Mock()
    detector.get_merge_stats.return_value = "No merges detected"
    return detector


class TestFindCandidatesByMerge:
    """Test merge-based selection."""

    def test_protected_worktrees_skipped(self, merge_detector):
        """Test main, locked, detached and base worktrees are never candidates."""
        merge_detector.is_branch_merged.return_value = True
        worktrees = [
            _worktree("main", is_main=True),
            _worktree("locked", is_locked=True),
            _worktree(DETACHED_HEAD),
            _worktree("develop"),
            _worktree("feature/a"),
        ]
        selection = PruneService(Mock(), merge_detector).find_candidates(worktrees, base_branch="develop")
        assert [wt.branch for wt in selection.candidates] == ["feature/a"]
        merge_detector.is_branch_merged.assert_called_once_with("feature/a", "develop")

    def test_order_preserved(self, merge_detector):
        """Test candidates keep the input order."""
        merge_detector.is_branch_merged.side_effect = lambda branch, base: branch != "b"
        worktrees = [_worktree("c"), _worktree("b"), _worktree("a")]
        selection = PruneService(Mock(), merge_detector).find_candidates(worktrees, base_branch="main")
        assert [wt.branch for wt in selection.candidates] == ["c", "a"]

    def test_merge_check_failure_is_warning(self, merge_detector):
        """Test a failing check skips that worktree and records a warning."""

        def is_merged(branch, base):
            if branch == "broken":
                raise GitOperationError("list files changed on broken", "bad revision")
            return True

        merge_detector.is_branch_merged.side_effect = is_merged
        worktrees = [_worktree("broken"), _worktree("ok")]
        selection = PruneService(Mock(), merge_detector).find_candidates(worktrees, base_branch="main")

        assert [wt.branch for wt in selection.candidates] == ["ok"]
        assert len(selection.warnings) == 1
        assert "Could not check merge status for branch 'broken'" in selection.warnings[0]

    def test_requires_a_mode(self, merge_detector):
        """Test calling without base or age is rejected."""
        with pytest.raises(ValidationError):
            PruneService(Mock(), merge_detector).find_candidates([])

    def test_modes_are_exclusive(self, merge_detector):
        """Test base and age together are rejected."""
        with pytest.raises(ValidationError, match="cannot be used together"):
            PruneService(Mock(), merge_detector).find_candidates(
                [], base_branch="main", older_than_ms=MS_PER_DAY
            )


class TestFindCandidatesByAge:
    """Test age-based selection."""

    def test_older_worktrees_selected(self, merge_detector):
        """Test only worktrees created before the cutoff qualify."""
        worktrees = [
            _worktree("old", created_at=NOW - timedelta(days=40)),
            _worktree("new", created_at=NOW - timedelta(days=5)),
        ]
        selection = PruneService(Mock(), merge_detector).find_candidates(
            worktrees, older_than_ms=30 * MS_PER_DAY, now=NOW
        )
        assert [wt.branch for wt in selection.candidates] == ["old"]
        merge_detector.is_branch_merged.assert_not_called()

    def test_cutoff_is_inclusive(self, merge_detector):
        """Test a worktree exactly at the cutoff qualifies."""
        worktrees = [_worktree("edge", created_at=NOW - timedelta(days=30))]
        selection = PruneService(Mock(), merge_detector).find_candidates(
            worktrees, older_than_ms=30 * MS_PER_DAY, now=NOW
        )
        assert len(selection.candidates) == 1

    def test_unknown_creation_time_never_qualifies(self, merge_detector):
        """Test the EPOCH sentinel is never treated as old."""
        selection = PruneService(Mock(), merge_detector).find_candidates(
            [_worktree("unknown", created_at=EPOCH)], older_than_ms=MS_PER_DAY, now=NOW
        )
        assert selection.candidates == []

    def test_protected_skipped_by_age(self, merge_detector):
        """Test protection applies in age mode too."""
        old = NOW - timedelta(days=400)
        worktrees = [
            _worktree("main", created_at=old, is_main=True),
            _worktree("locked", created_at=old, is_locked=True),
            _worktree(DETACHED_HEAD, created_at=old),
        ]
        selection = PruneService(Mock(), merge_detector).find_candidates(
            worktrees, older_than_ms=MS_PER_DAY, now=NOW
        )
        assert selection.candidates == []


class TestRemoveWorktrees:
    """Test batch removal."""

    def test_continues_after_failure(self, merge_detector):
        """Test one failure does not stop the batch."""
        git_ops = Mock()

        def remove(path, force=False):
            if path == "/p/b":
                raise GitOperationError("remove worktree", "is locked")

        git_ops.remove_worktree.side_effect = remove
        summary = PruneService(git_ops, merge_detector).remove_worktrees(
            [_worktree("a"), _worktree("b"), _worktree("c")]
        )

        assert summary.removed == ["/p/a", "/p/c"]
        assert summary.failed == [("/p/b", "Failed to remove worktree: is locked")]
        git_ops.remove_worktree.assert_any_call("/p/a", force=True)

    def test_count_dirty(self):
        """Test dirty candidates are counted."""
        assert count_dirty([_worktree("a", is_dirty=True), _worktree("b")]) == 1


class TestPruneWithRepo:
    """Test selection and removal against a real bare clone."""

    def test_prunes_merged_worktree(self, grove_project, add_worktree, make_commit):
        """Test a merged worktree is selected and removed."""
        from grove.services.git.worktrees import WorktreeService

        merged = add_worktree("feature/done")
        make_commit(merged, "done.txt", "done\n")
        make_commit(grove_project.main_path, "done.txt", "done\n")
        open_path = add_worktree("feature/open")
        make_commit(open_path, "open.txt", "open\n")

        service = PruneService(grove_project.git_ops)
        worktrees = WorktreeService(grove_project.git_ops, workers=1).list_worktrees()
        selection = service.find_candidates(worktrees, base_branch="main")
        assert [wt.branch for wt in selection.candidates] == ["feature/done"]

        summary = service.remove_worktrees(selection.candidates)
        assert summary.failed == []
        assert not merged.exists()
        assert open_path.exists()
