"""Git hook dispatch.

Decides, per hook name and arguments, whether the sparse checkout and the
path protection run, then runs them. Nothing here raises: a hook that
fails must never fail the git operation that fired it, so even unexpected
errors are logged and returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from protectsync.core.config import load_config
from protectsync.core.errors import ProtectSyncError
from protectsync.git.repository import GitRepository
from protectsync.hooks.sparse import SparseCheckoutManager
from protectsync.protect.orchestrator import ProtectionOrchestrator, ProtectionResult
from protectsync.protect.patterns import PatternSet
from protectsync.utils.shell import CommandRunner, run_command

logger = logging.getLogger(__name__)

# Hooks fired after git changed the working tree
PROTECTION_HOOKS: frozenset[str] = frozenset(
    {
        "post-checkout",
        "post-merge",
        "post-rewrite",
        "post-applypatch",
        "post-commit",
        "post-reset",
    }
)


@dataclass(frozen=True, slots=True)
class HookInvocation:
    """A git hook firing.

    Attributes:
        name: Hook name, e.g. ``post-checkout``.
        args: Arguments git passed to the hook.
    """

    name: str
    args: tuple[str, ...] = ()

    @property
    def is_branch_checkout(self) -> bool:
        """Whether this is ``post-checkout`` for a branch switch (flag ``1``)."""
        return self.name == "post-checkout" and len(self.args) >= 3 and self.args[2] == "1"


def should_sparse_checkout(invocation: HookInvocation) -> bool:
    """Sparse checkout runs only on branch checkouts."""
    return invocation.is_branch_checkout


def should_protect(invocation: HookInvocation) -> bool:
    """Protection runs after every hook that can modify the working tree."""
    return invocation.name in PROTECTION_HOOKS


@dataclass(frozen=True, slots=True)
class HookOutcome:
    """What a hook firing did.

    Attributes:
        sparse_checkout: Directory selected for sparse checkout, if any.
        protection: Result of the protection run, None when it did not run.
        error: Setup failure that prevented either action, if any.
    """

    sparse_checkout: str | None = None
    protection: ProtectionResult | None = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        """Check if nothing failed."""
        if self.error is not None:
            return False
        return self.protection is None or self.protection.success


def run_hook(
    invocation: HookInvocation,
    cwd: Path,
    runner: CommandRunner = run_command,
) -> HookOutcome:
    """Run the actions ``invocation`` calls for.

    Args:
        invocation: Hook name and arguments.
        cwd: Directory git ran the hook from.
        runner: Command runner used to spawn git.

    Returns:
        HookOutcome describing what ran. Errors are logged and returned.
    """
    try:
        return _dispatch(invocation, cwd, runner)
    except Exception as e:
        logger.exception("Hook %s failed unexpectedly", invocation.name)
        return HookOutcome(error=e)


def _dispatch(invocation: HookInvocation, cwd: Path, runner: CommandRunner) -> HookOutcome:
    if not should_sparse_checkout(invocation) and not should_protect(invocation):
        logger.debug("Nothing to do for hook %s", invocation.name)
        return HookOutcome()

    try:
        repository = GitRepository.discover(cwd, runner)
        config = load_config(repository.root)
    except ProtectSyncError as e:
        logger.error("Hook %s: %s", invocation.name, e)
        return HookOutcome(error=e)

    selected: str | None = None
    if should_sparse_checkout(invocation) and config.assignment_patterns:
        selected = SparseCheckoutManager(repository).configure(
            PatternSet(list(config.assignment_patterns))
        )

    if not should_protect(invocation) or not config.protected_patterns:
        return HookOutcome(sparse_checkout=selected)

    try:
        orchestrator = ProtectionOrchestrator.for_repository(repository, config.lock)
    except ProtectSyncError as e:
        logger.error("Hook %s: %s", invocation.name, e)
        return HookOutcome(sparse_checkout=selected, error=e)

    result = orchestrator.run(PatternSet(list(config.protected_patterns)))
    return HookOutcome(sparse_checkout=selected, protection=result)
