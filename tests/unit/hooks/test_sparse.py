"""Unit tests for assignment-based sparse checkout."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

from protectsync.core.errors import GitCommandError
from protectsync.git.repository import GitRepository
from protectsync.hooks.sparse import SparseCheckoutManager
from protectsync.protect.patterns import PatternSet

ASSIGNMENTS = PatternSet(["^assignments/[^/]+$"])


def _repo(branch: str) -> MagicMock:
    repo = MagicMock()
    repo.current_branch.return_value = branch
    repo.tree_directories.return_value = [
        "assignments",
        "assignments/hw1",
        "assignments/hw1/tests",
        "assignments/hw2",
        "tutorials",
    ]
    return repo


class TestSelect:
    """Tests for SparseCheckoutManager.select."""

    def test_by_last_segment(self) -> None:
        """A branch named like the assignment selects it."""
        assert SparseCheckoutManager(_repo("hw2")).select(ASSIGNMENTS, "hw2") == "assignments/hw2"

    def test_by_full_path(self) -> None:
        """A branch named with the full path selects it."""
        manager = SparseCheckoutManager(_repo("assignments/hw1"))

        assert manager.select(ASSIGNMENTS, "assignments/hw1") == "assignments/hw1"

    def test_non_assignment_branch(self) -> None:
        """Branches that name no assignment select nothing."""
        assert SparseCheckoutManager(_repo("main")).select(ASSIGNMENTS, "main") is None

    def test_only_pattern_matches_count(self) -> None:
        """Directories outside the patterns are not candidates."""
        assert SparseCheckoutManager(_repo("tests")).select(ASSIGNMENTS, "tests") is None


class TestConfigure:
    """Tests for SparseCheckoutManager.configure."""

    def test_sets_cone(self) -> None:
        """An assignment branch restricts the tree to that assignment."""
        repo = _repo("hw1")

        assert SparseCheckoutManager(repo).configure(ASSIGNMENTS) == "assignments/hw1"
        repo.sparse_checkout_set.assert_called_once_with(["assignments/hw1"])
        repo.sparse_checkout_disable.assert_not_called()

    def test_disables_elsewhere(self) -> None:
        """Other branches get the full tree back."""
        repo = _repo("main")

        assert SparseCheckoutManager(repo).configure(ASSIGNMENTS) is None
        repo.sparse_checkout_disable.assert_called_once_with()
        repo.sparse_checkout_set.assert_not_called()

    def test_failure_is_logged(self) -> None:
        """Git failures never escape."""
        repo = _repo("hw1")
        repo.sparse_checkout_set.side_effect = GitCommandError(["git"], 1, "boom")

        assert SparseCheckoutManager(repo).configure(ASSIGNMENTS) is None

    def test_bad_pattern_is_logged(self) -> None:
        """An invalid assignment regex never escapes."""
        assert SparseCheckoutManager(_repo("hw1")).configure(PatternSet(["("])) is None

    def test_real_repository(self, course_repo: Path, git: Callable[..., str]) -> None:
        """On branch hw1 only the assignment (plus top-level files) is present."""
        git(course_repo, "checkout", "-q", "-b", "hw1")
        repo = GitRepository.discover(course_repo)

        selected = SparseCheckoutManager(repo).configure(ASSIGNMENTS)

        assert selected == "assignments/hw1"
        assert (course_repo / "assignments" / "hw1" / "main.py").exists()
        assert (course_repo / "README.md").exists()
        assert not (course_repo / "tutorials").exists()
