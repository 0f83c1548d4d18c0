"""Utility modules for protectsync.

This module exports commonly used utility functions.
"""

from protectsync.utils.formatting import (
    console,
    create_paths_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
    setup_logging,
)
from protectsync.utils.shell import CommandResult, CommandRunner, run_command

__all__ = [
    "CommandResult",
    "CommandRunner",
    "console",
    "create_paths_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
    "setup_logging",
]
