"""Paths command implementation.

Shows which working tree entries the protected patterns select.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from protectsync.core.config import load_config
from protectsync.core.errors import ProtectSyncError
from protectsync.git.repository import GitRepository
from protectsync.protect.patterns import PatternSet, covering_roots, find_matching_paths
from protectsync.utils.formatting import (
    console,
    create_paths_table,
    print_error,
    print_info,
    print_success,
    print_warning,
)


def paths(
    repo: Annotated[
        Path,
        typer.Option(
            "--repo",
            "-r",
            help="Any directory inside the working tree.",
            file_okay=False,
        ),
    ] = Path("."),
    files: Annotated[
        bool,
        typer.Option("--files/--no-files", help="Include regular files."),
    ] = True,
    dirs: Annotated[
        bool,
        typer.Option("--dirs/--no-dirs", help="Include directories."),
    ] = True,
    check: Annotated[
        str | None,
        typer.Option(
            "--check",
            "-c",
            help="Only test whether this relative path is protected (exit 1 if not).",
        ),
    ] = None,
) -> None:
    """List paths matching the protected patterns."""
    try:
        repository = GitRepository.discover(repo)
        config = load_config(repository.root)
        pattern_set = PatternSet(list(config.protected_patterns))

        if check is not None:
            if pattern_set.matches(check):
                print_success(f"{check} is protected.")
                return
            print_warning(f"{check} is not protected.")
            raise typer.Exit(code=1)

        if not pattern_set:
            print_info("No protected-path patterns configured.")
            return

        matched = find_matching_paths(
            repository.root,
            pattern_set,
            include_files=files,
            include_dirs=dirs,
        )
    except ProtectSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not matched:
        print_info("No paths match the protected patterns.")
        return

    table = create_paths_table()
    for entry in matched:
        table.add_row(
            "dir" if entry.is_dir else "file",
            escape(entry.relative_path),
            escape(str(entry.path)),
        )
    console.print(table)

    roots = covering_roots(matched)
    console.print(
        f"\n[dim]{len(matched)} matched path(s), {len(roots)} synced as a unit[/dim]"
    )
