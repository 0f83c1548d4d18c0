"""Git hook integration: dispatch table, hook runner and sparse checkout."""

from protectsync.hooks.dispatch import (
    PROTECTION_HOOKS,
    HookInvocation,
    HookOutcome,
    run_hook,
    should_protect,
    should_sparse_checkout,
)
from protectsync.hooks.sparse import SparseCheckoutManager

__all__ = [
    "PROTECTION_HOOKS",
    "HookInvocation",
    "HookOutcome",
    "SparseCheckoutManager",
    "run_hook",
    "should_protect",
    "should_sparse_checkout",
]
