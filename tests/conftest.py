"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest
from protectsync.utils.shell import CommandResult

GIT_IDENTITY = ["-c", "user.name=Instructor", "-c", "user.email=instructor@example.com"]


class RecordingRunner:
    """Fake command runner that records calls and replays canned results.

    Results are looked up by the first argument that is not ``git`` (the
    subcommand), falling back to a successful empty result.
    """

    def __init__(self, results: dict[str, CommandResult] | None = None) -> None:
        self.results = results or {}
        self.calls: list[dict[str, object]] = []

    def __call__(self, args: list[str], **kwargs: object) -> CommandResult:
        self.calls.append({"args": list(args), **kwargs})
        key = args[1] if args and args[0] == "git" and len(args) > 1 else args[0]
        return self.results.get(key, CommandResult(stdout="", stderr="", returncode=0))

    @property
    def argv(self) -> list[list[str]]:
        """Argument lists of every recorded call."""
        return [call["args"] for call in self.calls]  # type: ignore[misc]


@pytest.fixture
def recording_runner() -> Callable[..., RecordingRunner]:
    """Factory for RecordingRunner instances."""
    return RecordingRunner


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git() -> Callable[..., str]:
    """Run a git command in a repository and return its stdout."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    return _git


@pytest.fixture
def course_repo(tmp_path: Path, git: Callable[..., str]) -> Path:
    """A committed repository with protected and unprotected content.

    Layout::

        tutorials/intro.md        "v1"
        tutorials/run.sh          executable
        assignments/hw1/main.py   student file
        assignments/hw1/tests/test_main.py
        README.md
    """
    repo = tmp_path / "course"
    repo.mkdir()
    git(repo, "init", "-q", "-b", "main")

    (repo / "tutorials").mkdir()
    (repo / "tutorials" / "intro.md").write_text("v1\n")
    run_sh = repo / "tutorials" / "run.sh"
    run_sh.write_text("#!/bin/sh\necho hi\n")
    run_sh.chmod(0o755)
    (repo / "assignments" / "hw1" / "tests").mkdir(parents=True)
    (repo / "assignments" / "hw1" / "main.py").write_text("print('todo')\n")
    (repo / "assignments" / "hw1" / "tests" / "test_main.py").write_text("def test(): pass\n")
    (repo / "README.md").write_text("# course\n")

    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", "initial")
    return repo
