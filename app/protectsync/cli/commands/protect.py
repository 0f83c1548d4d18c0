"""Protect command implementation.

Runs one protection pass by hand, outside any git hook.
"""

from pathlib import Path
from typing import Annotated

import typer

from protectsync.core.config import load_config
from protectsync.core.errors import ProtectSyncError
from protectsync.git.repository import GitRepository
from protectsync.protect.orchestrator import ProtectionOrchestrator
from protectsync.protect.patterns import PatternSet
from protectsync.utils.formatting import print_error, print_info, print_success


def protect(
    repo: Annotated[
        Path,
        typer.Option(
            "--repo",
            "-r",
            help="Any directory inside the working tree.",
            file_okay=False,
        ),
    ] = Path("."),
    pattern: Annotated[
        list[str] | None,
        typer.Option(
            "--pattern",
            "-p",
            help="Protected-path regex (repeatable). Overrides the config file.",
        ),
    ] = None,
) -> None:
    """Restore protected paths to HEAD and flag them skip-worktree."""
    try:
        repository = GitRepository.discover(repo)
        config = load_config(repository.root)
        patterns = list(pattern) if pattern else list(config.protected_patterns)
        if not patterns:
            print_info("No protected-path patterns configured, nothing to do.")
            return
        orchestrator = ProtectionOrchestrator.for_repository(repository, config.lock)
    except ProtectSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    result = orchestrator.run(PatternSet(patterns))
    if not result.success:
        print_error(f"Protection failed after state '{result.state.value}': {result.error}")
        raise typer.Exit(code=1)

    if result.matched:
        print_success(f"Protected {len(result.matched)} matched path(s).")
    else:
        print_info("No paths match the protected patterns.")
