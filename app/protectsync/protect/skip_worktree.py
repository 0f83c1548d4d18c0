"""Skip-worktree flagging for protected files.

Runs as the checkout owner after the privileged sync: the bit is an
annotation in the user's own index, not a filesystem permission.
"""

import logging

from protectsync.core.errors import GitCommandError, SkipWorktreeError
from protectsync.git.repository import GitRepository

logger = logging.getLogger(__name__)


class SkipWorktreeApplier:
    """Marks tracked files under protected paths as skip-worktree.

    Args:
        repository: Repository whose index is updated.
    """

    def __init__(self, repository: GitRepository) -> None:
        self._repository = repository

    def apply(self, relative_paths: list[str]) -> list[str]:
        """Flag every tracked file below ``relative_paths``.

        Args:
            relative_paths: Repository-relative protected paths.

        Returns:
            The files that were flagged.

        Raises:
            SkipWorktreeError: If listing or flagging fails.
        """
        try:
            files = self._repository.ls_files(relative_paths)
            self._repository.set_skip_worktree(files)
        except GitCommandError as e:
            raise SkipWorktreeError(f"Failed to apply skip-worktree flags: {e}") from e

        logger.debug("Set skip-worktree on %d file(s)", len(files))
        return files
