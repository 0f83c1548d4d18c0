"""HEAD snapshot extraction into an isolated staging directory.

Uses a temporary index file: ``read-tree HEAD`` fills it, ``ls-files``
narrows it to the protected paths and ``checkout-index --prefix`` writes
those entries into the staging directory. The real index and the working
tree are never touched, and files and directories are handled the same
way.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from protectsync.core.errors import GitCommandError, SnapshotError
from protectsync.core.paths import STAGE_PREFIX, STAGE_ROOT
from protectsync.git.repository import GitRepository

logger = logging.getLogger(__name__)

_INDEX_PREFIX = "protectsync-index-"


class SnapshotBuilder:
    """Builds staging directories holding HEAD content for protected paths.

    Args:
        repository: Repository to read HEAD from.
        stage_root: Directory that receives staging directories.
        treeish: Tree to extract, HEAD unless testing.
    """

    def __init__(
        self,
        repository: GitRepository,
        stage_root: Path = STAGE_ROOT,
        treeish: str = "HEAD",
    ) -> None:
        self._repository = repository
        self._stage_root = stage_root
        self._treeish = treeish

    def build(self, relative_paths: list[str]) -> Path:
        """Extract HEAD content for ``relative_paths`` into a new staging directory.

        Paths absent from HEAD are simply absent from the result. The caller
        owns the returned directory and must remove it with :func:`discard`.

        Args:
            relative_paths: Repository-relative protected paths.

        Returns:
            The staging directory.

        Raises:
            SnapshotError: If the directory cannot be created or a git
                command fails. The partial staging directory is removed.
        """
        try:
            stage_dir = Path(tempfile.mkdtemp(prefix=STAGE_PREFIX, dir=self._stage_root))
        except OSError as e:
            raise SnapshotError(f"Failed to create staging directory: {e}") from e

        if not relative_paths:
            return stage_dir

        try:
            self._extract(relative_paths, stage_dir)
        except (GitCommandError, OSError) as e:
            discard(stage_dir)
            raise SnapshotError(f"Failed to build snapshot from {self._treeish}: {e}") from e

        return stage_dir

    def _extract(self, relative_paths: list[str], stage_dir: Path) -> None:
        # Kept outside the staging directory so it is never synced; the
        # TemporaryDirectory removes it on success and failure alike.
        with tempfile.TemporaryDirectory(prefix=_INDEX_PREFIX) as index_dir:
            index_file = Path(index_dir) / "index"
            self._repository.read_tree(self._treeish, index_file)

            files = self._repository.ls_files(relative_paths, index_file=index_file)
            if not files:
                logger.debug("No protected paths present in %s", self._treeish)
                return

            self._repository.checkout_index(
                files,
                prefix=f"{stage_dir}/",
                index_file=index_file,
                ignore_skip_worktree=True,
            )
            logger.debug("Extracted %d file(s) into %s", len(files), stage_dir)


def discard(stage_dir: Path) -> None:
    """Remove a staging directory, logging instead of raising on failure."""
    try:
        shutil.rmtree(stage_dir)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Could not remove staging directory %s: %s", stage_dir, e)
