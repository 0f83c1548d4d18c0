"""CLI package for protectsync.

This package contains the Typer applications: the user-facing ``protectsync``
command and the privileged ``protectsync-helper``.
"""

from protectsync.cli.main import app

__all__ = ["app"]
