"""Config commands.

Shows the effective repository configuration and writes a starter file.
"""

from pathlib import Path
from typing import Annotated

import typer

from protectsync.core.config import ProtectConfig, load_config, save_config
from protectsync.core.errors import ProtectSyncError
from protectsync.core.paths import get_repo_config_path
from protectsync.git.repository import GitRepository
from protectsync.utils.formatting import console, print_error, print_success, print_warning

app = typer.Typer(
    help="Show or create the repository configuration.",
    no_args_is_help=True,
)

# Starter patterns for a course repository
DEFAULT_ASSIGNMENT_PATTERNS = [r"^assignments/[^/]+$"]
DEFAULT_PROTECTED_PATTERNS = [r"^tutorials$", r"^assignments/[^/]+/tests$"]

RepoOption = Annotated[
    Path,
    typer.Option(
        "--repo",
        "-r",
        help="Any directory inside the working tree.",
        file_okay=False,
    ),
]


@app.command()
def show(repo: RepoOption = Path(".")) -> None:
    """Print the effective configuration."""
    try:
        repository = GitRepository.discover(repo)
        config_path = get_repo_config_path(repository.root)
        config = load_config(repository.root)
    except ProtectSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    source = str(config_path) if config_path.exists() else "defaults (no config file)"
    console.print(f"[bold_header]Configuration:[/] {source}")
    console.print("\n[bold_header]Assignment patterns[/]")
    for pattern in config.assignment_patterns or ["(none)"]:
        console.print(f"  {pattern}", markup=False)
    console.print("\n[bold_header]Protected patterns[/]")
    for pattern in config.protected_patterns or ["(none)"]:
        console.print(f"  {pattern}", markup=False)
    console.print("\n[bold_header]Lock[/]")
    console.print(f"  timeout-seconds = {config.lock.timeout_seconds}")
    console.print(f"  poll-interval-seconds = {config.lock.poll_interval_seconds}")


@app.command()
def init(
    repo: RepoOption = Path("."),
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a starter configuration file."""
    try:
        repository = GitRepository.discover(repo)
    except ProtectSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    config_path = get_repo_config_path(repository.root)
    if config_path.exists() and not force:
        print_warning(f"{config_path} already exists. Use --force to overwrite.")
        raise typer.Exit(code=1)

    config = ProtectConfig(
        assignment_patterns=DEFAULT_ASSIGNMENT_PATTERNS,
        protected_patterns=DEFAULT_PROTECTED_PATTERNS,
    )
    try:
        save_config(config, config_path)
    except ProtectSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Wrote {config_path}")
