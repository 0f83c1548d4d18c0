"""Protection run sequencing.

One run walks ``Idle -> Locked -> Matched -> ConflictChecked -> Snapshotted
-> Synced -> Flagged`` and always ends with the lock released. A failure at
any step is logged with the state reached and returned, never raised, so
the git operation that fired the hook is unaffected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from protectsync.core.config import LockSettings
from protectsync.core.errors import ProtectSyncError, UnmergedConflictError
from protectsync.core.identity import IdentityResolver
from protectsync.git.repository import GitRepository
from protectsync.protect.gateway import PrivilegeGateway, SyncValidator
from protectsync.protect.lock import LockManager
from protectsync.protect.patterns import (
    MatchedPath,
    PatternSet,
    covering_roots,
    find_matching_paths,
)
from protectsync.protect.skip_worktree import SkipWorktreeApplier
from protectsync.protect.snapshot import SnapshotBuilder, discard

logger = logging.getLogger(__name__)


class ProtectionState(str, Enum):
    """Progress of a protection run.

    Attributes:
        IDLE: Nothing done yet.
        LOCKED: Repository lock held.
        MATCHED: Protected paths located.
        CONFLICT_CHECKED: No unmerged entries under protected paths.
        SNAPSHOTTED: HEAD content extracted to a staging directory.
        SYNCED: Working tree updated across the privilege boundary.
        FLAGGED: Skip-worktree bits applied.
    """

    IDLE = "idle"
    LOCKED = "locked"
    MATCHED = "matched"
    CONFLICT_CHECKED = "conflict_checked"
    SNAPSHOTTED = "snapshotted"
    SYNCED = "synced"
    FLAGGED = "flagged"


@dataclass(frozen=True, slots=True)
class ProtectionResult:
    """Outcome of one protection run.

    Attributes:
        state: Last state reached before the lock was released.
        matched: Paths that matched the protection patterns.
        error: The failure that ended the run, None on success.
    """

    state: ProtectionState
    matched: tuple[MatchedPath, ...] = ()
    error: Exception | None = None

    @property
    def success(self) -> bool:
        """Check if the run finished without error."""
        return self.error is None


class ProtectionOrchestrator:
    """Sequences lock, match, conflict gate, snapshot, sync and flagging.

    Args:
        repository: Repository to protect.
        lock_manager: Provides the per-repository lock.
        gateway: Crosses the privilege boundary.
        snapshot_builder: Extracts HEAD content. Defaults to one for
            ``repository``.
        skip_worktree: Applies skip-worktree flags. Defaults to one for
            ``repository``.
    """

    def __init__(
        self,
        repository: GitRepository,
        lock_manager: LockManager,
        gateway: PrivilegeGateway,
        snapshot_builder: SnapshotBuilder | None = None,
        skip_worktree: SkipWorktreeApplier | None = None,
    ) -> None:
        self._repository = repository
        self._lock_manager = lock_manager
        self._gateway = gateway
        self._snapshots = snapshot_builder or SnapshotBuilder(repository)
        self._skip_worktree = skip_worktree or SkipWorktreeApplier(repository)

    @classmethod
    def for_repository(
        cls,
        repository: GitRepository,
        lock_settings: LockSettings | None = None,
        identity: IdentityResolver | None = None,
    ) -> ProtectionOrchestrator:
        """Wire an orchestrator with production collaborators.

        Raises:
            IdentityError: If the invoking user is root or unknown.
        """
        settings = lock_settings or LockSettings()
        user = (identity or IdentityResolver()).validated_real_user()
        return cls(
            repository,
            LockManager(settings.timeout_seconds, settings.poll_interval_seconds),
            PrivilegeGateway(SyncValidator(user)),
        )

    def run(self, pattern_set: PatternSet) -> ProtectionResult:
        """Execute one protection run.

        Args:
            pattern_set: Protected-path patterns.

        Returns:
            ProtectionResult with the last state reached and any error.
        """
        state = ProtectionState.IDLE
        matched: tuple[MatchedPath, ...] = ()
        paths: list[str] = []

        try:
            with self._lock_manager.hold(self._repository):
                state = ProtectionState.LOCKED

                if pattern_set:
                    matched = find_matching_paths(self._repository.root, pattern_set)
                state = ProtectionState.MATCHED

                if not matched:
                    logger.info("No paths match protected patterns")
                    return ProtectionResult(state, matched)

                paths = covering_roots(matched)
                logger.info("Processing %d protected path(s)...", len(paths))

                self._check_conflicts(paths)
                state = ProtectionState.CONFLICT_CHECKED

                stage_dir = self._snapshots.build(paths)
                state = ProtectionState.SNAPSHOTTED
                try:
                    self._gateway.sync(stage_dir, self._repository.root, paths)
                    state = ProtectionState.SYNCED
                finally:
                    discard(stage_dir)

                self._skip_worktree.apply(paths)
                state = ProtectionState.FLAGGED
        except (ProtectSyncError, OSError) as e:
            logger.error(
                "Path protection failed after state '%s': %s",
                state.value,
                e,
            )
            return ProtectionResult(state, matched, e)

        logger.info("Path protection completed for %d path(s)", len(paths))
        return ProtectionResult(state, matched)

    def _check_conflicts(self, paths: list[str]) -> None:
        """Abort when any protected path has unmerged index entries.

        Raises:
            UnmergedConflictError: If conflicts exist.
            GitCommandError: If git cannot report unmerged entries.
        """
        conflicted = self._repository.unmerged_paths(paths)
        if conflicted:
            raise UnmergedConflictError(conflicted)
