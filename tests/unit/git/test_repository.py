"""Unit tests for the git command wrapper."""

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from protectsync.core.errors import GitCommandError
from protectsync.git.repository import GitRepository
from protectsync.utils.shell import CommandResult


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


class TestDiscover:
    """Tests for GitRepository.discover."""

    def test_uses_show_toplevel(self, recording_runner: Callable) -> None:
        """The root is whatever git reports as the top level."""
        runner = recording_runner({"rev-parse": _ok("/workspaces/course\n")})

        repo = GitRepository.discover(Path("/workspaces/course/sub"), runner)

        assert repo.root == Path("/workspaces/course")
        assert runner.argv == [["git", "rev-parse", "--show-toplevel"]]
        assert runner.calls[0]["cwd"] == "/workspaces/course/sub"

    def test_outside_repository(self, recording_runner: Callable) -> None:
        """A non-zero exit raises GitCommandError with stderr."""
        runner = recording_runner(
            {"rev-parse": CommandResult("", "fatal: not a git repository", 128)}
        )

        with pytest.raises(GitCommandError, match="not a git repository") as exc_info:
            GitRepository.discover(Path("/tmp"), runner)
        assert exc_info.value.returncode == 128


class TestPlumbing:
    """Tests for individual plumbing wrappers."""

    def test_runs_in_root_without_timeout(self, recording_runner: Callable) -> None:
        """Every command runs in the root with no per-step timeout."""
        runner = recording_runner({"rev-parse": _ok("main\n")})
        repo = GitRepository(Path("/w/c"), runner)

        assert repo.current_branch() == "main"
        assert runner.calls[0]["cwd"] == "/w/c"
        assert runner.calls[0]["timeout"] is None
        assert runner.calls[0]["env"] is None

    def test_index_file_sets_environment(self, recording_runner: Callable) -> None:
        """An alternate index is passed through GIT_INDEX_FILE."""
        runner = recording_runner()
        repo = GitRepository(Path("/w/c"), runner)

        repo.read_tree("HEAD", Path("/tmp/idx/index"))

        call = runner.calls[0]
        assert call["args"] == ["git", "read-tree", "HEAD"]
        assert call["env"]["GIT_INDEX_FILE"] == "/tmp/idx/index"

    def test_ls_files_parses_nul_separated(self, recording_runner: Callable) -> None:
        """ls-files output is split on NUL, keeping spaces in names."""
        runner = recording_runner({"ls-files": _ok("tutorials/a b.md\0tutorials/c.md\0")})
        repo = GitRepository(Path("/w/c"), runner)

        files = repo.ls_files(["tutorials"])

        assert files == ["tutorials/a b.md", "tutorials/c.md"]
        assert runner.argv[0] == ["git", "ls-files", "-z", "--", "tutorials"]
        assert runner.calls[0]["env"]["GIT_LITERAL_PATHSPECS"] == "1"

    def test_ls_files_empty_paths_skips_git(self, recording_runner: Callable) -> None:
        """No pathspecs means no files and no git call."""
        runner = recording_runner()

        assert GitRepository(Path("/w/c"), runner).ls_files([]) == []
        assert runner.calls == []

    def test_unmerged_paths(self, recording_runner: Callable) -> None:
        """Unmerged stages collapse to sorted unique paths."""
        output = (
            "100644 aaa 1\ttutorials/b.md\0"
            "100644 bbb 2\ttutorials/b.md\0"
            "100644 ccc 3\ttutorials/a.md\0"
        )
        runner = recording_runner({"ls-files": _ok(output)})

        paths = GitRepository(Path("/w/c"), runner).unmerged_paths(["tutorials"])

        assert paths == ["tutorials/a.md", "tutorials/b.md"]
        assert runner.argv[0] == ["git", "ls-files", "-u", "-z", "--", "tutorials"]
        assert runner.calls[0]["env"]["GIT_LITERAL_PATHSPECS"] == "1"

    def test_checkout_index_args(self, recording_runner: Callable) -> None:
        """Files are fed on stdin with the skip-worktree override."""
        runner = recording_runner()
        repo = GitRepository(Path("/w/c"), runner)

        repo.checkout_index(["a", "b c"], "/tmp/stage/", Path("/tmp/i"))

        call = runner.calls[0]
        assert call["args"] == [
            "git",
            "checkout-index",
            "--ignore-skip-worktree-bits",
            "--force",
            "--prefix=/tmp/stage/",
            "-z",
            "--stdin",
        ]
        assert call["input_text"] == "a\0b c\0"

    def test_checkout_index_without_override(self, recording_runner: Callable) -> None:
        """The skip-worktree override can be turned off."""
        runner = recording_runner()

        GitRepository(Path("/w/c"), runner).checkout_index(
            ["a"], "/s/", ignore_skip_worktree=False
        )

        assert "--ignore-skip-worktree-bits" not in runner.argv[0]

    def test_set_skip_worktree(self, recording_runner: Callable) -> None:
        """Files are flagged through update-index on stdin."""
        runner = recording_runner()

        GitRepository(Path("/w/c"), runner).set_skip_worktree(["t/a.md", "t/b.md"])

        assert runner.argv[0] == ["git", "update-index", "--skip-worktree", "-z", "--stdin"]
        assert runner.calls[0]["input_text"] == "t/a.md\0t/b.md\0"

    def test_set_skip_worktree_nothing(self, recording_runner: Callable) -> None:
        """An empty file list does not run git."""
        runner = recording_runner()

        GitRepository(Path("/w/c"), runner).set_skip_worktree([])

        assert runner.calls == []

    def test_failure_raises(self, recording_runner: Callable) -> None:
        """A failing subcommand raises GitCommandError naming it."""
        runner = recording_runner({"update-index": CommandResult("", "locked", 128)})

        with pytest.raises(GitCommandError) as exc_info:
            GitRepository(Path("/w/c"), runner).set_skip_worktree(["a"])
        assert exc_info.value.args_list[:2] == ["git", "update-index"]
        assert exc_info.value.stderr == "locked"

    def test_sparse_checkout(self, recording_runner: Callable) -> None:
        """Sparse checkout set uses cone mode; disable restores the tree."""
        runner = recording_runner()
        repo = GitRepository(Path("/w/c"), runner)

        repo.sparse_checkout_set(["assignments/hw1"])
        repo.sparse_checkout_disable()

        assert runner.argv == [
            ["git", "sparse-checkout", "set", "--cone", "assignments/hw1"],
            ["git", "sparse-checkout", "disable"],
        ]


class TestGitDir:
    """Tests for git_dir against real directories."""

    def test_relative_git_dir_is_absolutized(
        self, tmp_path: Path, recording_runner: Callable
    ) -> None:
        """A relative answer is resolved against the root."""
        git_dir = tmp_path / ".git"
        for entry in ("refs", "objects"):
            (git_dir / entry).mkdir(parents=True)
        (git_dir / "HEAD").write_text("ref: refs/heads/main\n")
        runner = recording_runner({"rev-parse": _ok(".git\n")})

        assert GitRepository(tmp_path, runner).git_dir() == git_dir

    def test_missing_components(self, tmp_path: Path, recording_runner: Callable) -> None:
        """A directory without HEAD/refs/objects is rejected."""
        (tmp_path / ".git").mkdir()
        runner = recording_runner({"rev-parse": _ok(".git\n")})

        with pytest.raises(GitCommandError, match="missing essential git component"):
            GitRepository(tmp_path, runner).git_dir()


class TestAgainstRealGit:
    """Tests that drive the git binary."""

    def test_tree_directories(self, course_repo: Path) -> None:
        """Every directory recorded in HEAD is listed."""
        repo = GitRepository.discover(course_repo)

        dirs = repo.tree_directories()

        assert "tutorials" in dirs
        assert "assignments/hw1" in dirs
        assert "assignments/hw1/tests" in dirs

    def test_git_dir_and_branch(self, course_repo: Path) -> None:
        """git_dir points at .git and the branch is main."""
        repo = GitRepository.discover(course_repo)

        assert repo.git_dir() == repo.root / ".git"
        assert repo.current_branch() == "main"

    def test_ls_files_does_not_glob(self, course_repo: Path, git: Callable[..., str]) -> None:
        """Brackets in a real file name are not a character class."""
        (course_repo / "notes[12].md").write_text("mine\n")
        (course_repo / "notes1.md").write_text("also mine\n")
        git(course_repo, "add", "-A")
        git(course_repo, "commit", "-q", "-m", "notes")
        repo = GitRepository.discover(course_repo)

        assert repo.ls_files(["notes[12].md"]) == ["notes[12].md"]
        assert repo.ls_files(["notes*"]) == []

    def test_ls_files_undecodable_name(self, course_repo: Path, git: Callable[..., str]) -> None:
        """A latin-1 file name is listed and can be passed back to git."""
        raw = os.fsencode(course_repo / "tutorials") + b"/caf\xe9.md"
        with open(raw, "wb") as f:
            f.write(b"menu\n")
        git(course_repo, "add", "-A")
        git(course_repo, "commit", "-q", "-m", "latin-1")
        repo = GitRepository.discover(course_repo)
        name = "tutorials/" + b"caf\xe9.md".decode("utf-8", "surrogateescape")

        assert name in repo.ls_files(["tutorials"])
        assert repo.ls_files([name]) == [name]
