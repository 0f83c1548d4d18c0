"""Assignment-based sparse checkout.

On an assignment branch only that assignment's directory is materialized;
on any other branch the full tree is restored.
"""

import logging

from protectsync.core.errors import ProtectSyncError
from protectsync.git.repository import GitRepository
from protectsync.protect.patterns import PatternSet

logger = logging.getLogger(__name__)


class SparseCheckoutManager:
    """Configures sparse checkout from assignment patterns.

    Args:
        repository: Repository to configure.
    """

    def __init__(self, repository: GitRepository) -> None:
        self._repository = repository

    def select(self, pattern_set: PatternSet, branch: str) -> str | None:
        """Pick the assignment directory for ``branch``.

        Candidates are HEAD directories matching ``pattern_set``; the branch
        selects one by full path or by last path segment.

        Returns:
            The directory, or None when the branch names no assignment.
        """
        candidates = {d for d in self._repository.tree_directories() if pattern_set.matches(d)}
        if branch in candidates:
            return branch
        by_name = sorted(d for d in candidates if d.rsplit("/", 1)[-1] == branch)
        if len(by_name) > 1:
            logger.warning("Branch %s names several assignments: %s", branch, ", ".join(by_name))
        return by_name[0] if by_name else None

    def configure(self, pattern_set: PatternSet) -> str | None:
        """Apply sparse checkout for the current branch.

        Failures are logged and swallowed so the hook never fails.

        Returns:
            The selected directory, or None when sparse checkout was disabled
            or configuration failed.
        """
        try:
            branch = self._repository.current_branch()
            selected = self.select(pattern_set, branch)
            if selected is None:
                logger.info("Branch %s is not an assignment, disabling sparse checkout", branch)
                self._repository.sparse_checkout_disable()
                return None
            logger.info("Restricting working tree to %s", selected)
            self._repository.sparse_checkout_set([selected])
            return selected
        except ProtectSyncError as e:
            logger.error("Failed to configure sparse checkout: %s", e)
            return None
