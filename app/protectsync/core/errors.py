"""Exception hierarchy for protectsync.

Every failure a protection run can hit is a :class:`ProtectSyncError`, so
the orchestrator boundary can catch one type, log it and keep the git
operation that fired the hook unaffected.
"""


class ProtectSyncError(Exception):
    """Base exception for all protectsync errors."""


class ConfigError(ProtectSyncError):
    """Raised when repository configuration cannot be read or validated."""


class PatternSyntaxError(ProtectSyncError):
    """Raised when a configured regular expression does not compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid regex pattern '{pattern}': {reason}")


class GitCommandError(ProtectSyncError):
    """Raised when a git plumbing command exits non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str) -> None:
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(f"'{' '.join(args)}' failed with exit code {returncode}: {detail}")


class LockTimeoutError(ProtectSyncError):
    """Raised when the repository lock is not acquired within the timeout."""


class LockReleaseError(ProtectSyncError):
    """Raised when the lock file cannot be removed."""


class UnmergedConflictError(ProtectSyncError):
    """Raised when a protected path has unresolved merge conflicts."""

    def __init__(self, paths: list[str]) -> None:
        self.paths = paths
        super().__init__(
            "Conflicts under protected paths, resolve first: " + ", ".join(paths)
        )


class SnapshotError(ProtectSyncError):
    """Raised when HEAD content cannot be extracted into a staging directory."""


class ValidationError(ProtectSyncError):
    """Raised when a sync source, destination or path fails validation.

    Always raised before any privileged action takes place.
    """


class IdentityError(ValidationError):
    """Raised when the original user is unknown or is the superuser."""


class SyncExecutionError(ProtectSyncError):
    """Raised when the privileged sync fails after validation passed.

    The destination may be partially updated.
    """


class SkipWorktreeError(ProtectSyncError):
    """Raised when skip-worktree flags cannot be applied."""
