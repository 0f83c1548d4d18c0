"""Thin wrapper over the git command-line plumbing protectsync needs.

Every call runs ``git`` with an argument list inside the repository root,
optionally against an alternate index file, and raises
:class:`~protectsync.core.errors.GitCommandError` on a non-zero exit.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from protectsync.core.errors import GitCommandError
from protectsync.utils.shell import CommandResult, CommandRunner, run_command

logger = logging.getLogger(__name__)

# Entries every real git directory has
_ESSENTIAL_GIT_ENTRIES: tuple[str, ...] = ("HEAD", "refs", "objects")


def _split_nul(output: str) -> list[str]:
    return [item for item in output.split("\0") if item]


class GitRepository:
    """Git operations scoped to one working tree.

    Args:
        root: Top-level directory of the working tree.
        runner: Command runner used to spawn git.
    """

    def __init__(self, root: Path, runner: CommandRunner = run_command) -> None:
        self._root = root
        self._runner = runner

    @property
    def root(self) -> Path:
        """Top-level directory of the working tree."""
        return self._root

    @classmethod
    def discover(cls, path: Path, runner: CommandRunner = run_command) -> GitRepository:
        """Find the repository containing ``path``.

        Git hooks may run from any subdirectory, so the top level is asked
        of git rather than assumed to be the working directory.

        Args:
            path: Any directory inside the working tree.
            runner: Command runner used to spawn git.

        Returns:
            GitRepository rooted at the working tree top level.

        Raises:
            GitCommandError: If ``path`` is not inside a working tree.
        """
        args = ["git", "rev-parse", "--show-toplevel"]
        result = runner(args, timeout=None, cwd=str(path))
        if not result.success:
            raise GitCommandError(args, result.returncode, result.stderr)
        return cls(Path(result.stdout.strip()), runner)

    def _git(
        self,
        *args: str,
        index_file: Path | None = None,
        input_text: str | None = None,
        literal_pathspecs: bool = False,
    ) -> CommandResult:
        """Run a git subcommand in the repository root.

        ``literal_pathspecs`` turns off pathspec magic for paths that are
        real file names, so ``notes[12].md`` matches only itself.

        Raises:
            GitCommandError: If git exits non-zero.
        """
        argv = ["git", *args]
        overrides: dict[str, str] = {}
        if index_file is not None:
            overrides["GIT_INDEX_FILE"] = str(index_file)
        if literal_pathspecs:
            overrides["GIT_LITERAL_PATHSPECS"] = "1"
        env = {**os.environ, **overrides} if overrides else None

        logger.debug("Running %s in %s", " ".join(argv), self._root)
        result = self._runner(
            argv,
            timeout=None,
            cwd=str(self._root),
            env=env,
            input_text=input_text,
        )
        if not result.success:
            raise GitCommandError(argv, result.returncode, result.stderr)
        return result

    def git_dir(self) -> Path:
        """Locate the repository's git directory.

        Handles worktrees and submodules, where ``.git`` is a file pointing
        elsewhere, by asking ``git rev-parse --git-dir``.

        Returns:
            Absolute path to the git directory.

        Raises:
            GitCommandError: If git cannot resolve the directory, or the
                result lacks the entries of a real git directory.
        """
        raw = self._git("rev-parse", "--git-dir").stdout.strip()
        git_dir = Path(raw)
        if not git_dir.is_absolute():
            git_dir = self._root / git_dir
        git_dir = Path(os.path.normpath(git_dir))

        for entry in _ESSENTIAL_GIT_ENTRIES:
            if not (git_dir / entry).exists():
                raise GitCommandError(
                    ["git", "rev-parse", "--git-dir"],
                    0,
                    f"missing essential git component '{entry}' in {git_dir}",
                )
        return git_dir

    def current_branch(self) -> str:
        """Name of the checked-out branch (``HEAD`` when detached)."""
        return self._git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def unmerged_paths(self, paths: list[str]) -> list[str]:
        """List paths with unmerged index entries under ``paths``.

        Args:
            paths: Repository-relative paths, matched literally.

        Returns:
            Sorted, deduplicated list of conflicting file paths.
        """
        if not paths:
            return []
        output = self._git(
            "ls-files", "-u", "-z", "--", *paths, literal_pathspecs=True
        ).stdout
        conflicted: set[str] = set()
        for record in _split_nul(output):
            # "<mode> <object> <stage>\t<path>"
            _, _, path = record.partition("\t")
            if path:
                conflicted.add(path)
        return sorted(conflicted)

    def read_tree(self, treeish: str, index_file: Path) -> None:
        """Populate ``index_file`` from ``treeish`` without touching the work tree."""
        self._git("read-tree", treeish, index_file=index_file)

    def ls_files(self, paths: list[str], index_file: Path | None = None) -> list[str]:
        """List tracked files under ``paths``.

        Args:
            paths: Repository-relative paths, matched literally. Empty means
                no files.
            index_file: Alternate index to read instead of the real one.

        Returns:
            File paths relative to the repository root.
        """
        if not paths:
            return []
        output = self._git(
            "ls-files", "-z", "--", *paths, index_file=index_file, literal_pathspecs=True
        ).stdout
        return _split_nul(output)

    def checkout_index(
        self,
        files: list[str],
        prefix: str,
        index_file: Path | None = None,
        *,
        ignore_skip_worktree: bool = True,
    ) -> None:
        """Write index entries for ``files`` below ``prefix``.

        Args:
            files: Exact file paths present in the index.
            prefix: Output prefix; must end with a separator to act as a directory.
            index_file: Alternate index to read instead of the real one.
            ignore_skip_worktree: Also extract entries flagged skip-worktree.
        """
        if not files:
            return
        args = ["checkout-index", "--force", f"--prefix={prefix}", "-z", "--stdin"]
        if ignore_skip_worktree:
            args.insert(1, "--ignore-skip-worktree-bits")
        self._git(*args, index_file=index_file, input_text="\0".join(files) + "\0")

    def set_skip_worktree(self, files: list[str]) -> None:
        """Set the skip-worktree bit on each file in the real index."""
        if not files:
            return
        self._git(
            "update-index",
            "--skip-worktree",
            "-z",
            "--stdin",
            input_text="\0".join(files) + "\0",
        )

    def tree_directories(self, treeish: str = "HEAD") -> list[str]:
        """List every directory recorded in ``treeish``."""
        output = self._git("ls-tree", "-r", "-d", "-z", "--name-only", treeish).stdout
        return _split_nul(output)

    def sparse_checkout_set(self, paths: list[str]) -> None:
        """Restrict the working tree to ``paths`` using cone mode."""
        self._git("sparse-checkout", "set", "--cone", *paths)

    def sparse_checkout_disable(self) -> None:
        """Materialize the full working tree again."""
        self._git("sparse-checkout", "disable")
