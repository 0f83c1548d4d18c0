"""Privileged sync helper.

Installed root-owned at a fixed path and reachable through a sudoers rule
for the checkout owner. It accepts exactly one operation shape::

    sudo -n protectsync-helper -- <stage>/ <worktree>/ <path> [<path> ...]

Every argument is validated again here against built-in constants before
anything is written.
"""

import logging
import os
from typing import Annotated

import typer

from protectsync.core.errors import ProtectSyncError
from protectsync.core.identity import IdentityResolver
from protectsync.protect.gateway import PrivilegedSync, SyncValidator
from protectsync.utils.formatting import print_error, print_success, setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="protectsync-helper",
    help="Mirror a staging directory into a working tree as the protection account.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.command()
def sync(
    source: Annotated[str, typer.Argument(help="Staging directory.")],
    destination: Annotated[str, typer.Argument(help="Working tree root.")],
    paths: Annotated[
        list[str],
        typer.Argument(help="Protected paths relative to both directories."),
    ],
) -> None:
    """Validate the request and run the rsync steps as root."""
    setup_logging(logging.WARNING)

    if os.geteuid() != 0:
        print_error("protectsync-helper must run as root")
        raise typer.Exit(code=1)

    try:
        user = IdentityResolver().require_sudo_user()
        operation = SyncValidator(user).validate(source, destination, paths)
        PrivilegedSync().execute(operation)
    except ProtectSyncError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success("Sync completed successfully")


if __name__ == "__main__":
    app()
