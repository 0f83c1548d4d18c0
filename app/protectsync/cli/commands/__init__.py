"""CLI commands for protectsync.

This package contains all subcommand implementations.
"""

from protectsync.cli.commands import config, hook, paths, protect

__all__ = ["config", "hook", "paths", "protect"]
