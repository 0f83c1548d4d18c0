"""Protected-path synchronization engine.

This module exports the components of a protection run: the pattern
matcher, repository lock, snapshot builder, privilege gateway,
skip-worktree applier and the orchestrator that sequences them.
"""

from protectsync.protect.gateway import (
    PrivilegedSync,
    PrivilegeGateway,
    SyncOperation,
    SyncValidator,
)
from protectsync.protect.lock import Lock, LockManager, is_process_alive
from protectsync.protect.orchestrator import (
    ProtectionOrchestrator,
    ProtectionResult,
    ProtectionState,
)
from protectsync.protect.patterns import (
    MatchedPath,
    PatternSet,
    compile_patterns,
    covering_roots,
    find_matching_paths,
)
from protectsync.protect.skip_worktree import SkipWorktreeApplier
from protectsync.protect.snapshot import SnapshotBuilder, discard

__all__ = [
    "Lock",
    "LockManager",
    "MatchedPath",
    "PatternSet",
    "PrivilegeGateway",
    "PrivilegedSync",
    "ProtectionOrchestrator",
    "ProtectionResult",
    "ProtectionState",
    "SkipWorktreeApplier",
    "SnapshotBuilder",
    "SyncOperation",
    "SyncValidator",
    "compile_patterns",
    "covering_roots",
    "discard",
    "find_matching_paths",
    "is_process_alive",
]
