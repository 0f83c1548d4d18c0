"""Hook command implementation.

Entry point for the git hook scripts: ``protectsync hook <name> "$@"``.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from protectsync.hooks.dispatch import HookInvocation, run_hook

logger = logging.getLogger(__name__)


def hook(
    name: Annotated[
        str,
        typer.Argument(help="Name of the git hook that fired, e.g. post-checkout."),
    ],
    args: Annotated[
        list[str] | None,
        typer.Argument(help="Arguments git passed to the hook."),
    ] = None,
) -> None:
    """Run the actions for a git hook.

    Always exits 0 so the git operation that fired the hook is never
    reported as failed. Problems are logged to stderr.
    """
    invocation = HookInvocation(name=name, args=tuple(args or ()))
    outcome = run_hook(invocation, Path.cwd())
    if not outcome.success:
        logger.warning("Hook %s finished with errors", name)
