"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer

from protectsync import __version__
from protectsync.cli.commands import config, hook, paths, protect
from protectsync.utils.formatting import setup_logging

# Create main Typer app
app = typer.Typer(
    name="protectsync",
    help="Keep instructor-owned paths of a git checkout in sync with HEAD.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"protectsync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log warnings and errors.",
        ),
    ] = False,
) -> None:
    """protectsync - protected-path synchronization for git hooks.

    After every git operation that changes the working tree, paths matching
    the protected patterns are restored to their HEAD content and handed to
    a dedicated account so local edits cannot stick.
    """
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    setup_logging(level)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.command(
    name="hook",
    context_settings={"ignore_unknown_options": True},
)(hook.hook)
app.command(name="protect")(protect.protect)
app.command(name="paths")(paths.paths)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
