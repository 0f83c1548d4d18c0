"""Rich console formatting utilities.

Provides consistent formatting for CLI output and log records using Rich.
Everything except explicit listings goes to stderr so git hook output
never mixes with data a caller might parse.
"""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "info": "#0ec1c8",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "bold #f53263",
        "muted": "#b2bec3",
        "path": "#69B9A1",
        "bold_header": "bold #69B9A1",
        "border": "#29526d",
    }
)


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances
console = Console(theme=_THEME, color_system=_detect_color_system())
err_console = Console(theme=_THEME, stderr=True, color_system=_detect_color_system())


def setup_logging(level: int = logging.INFO) -> None:
    """Route the ``protectsync`` logger hierarchy through Rich on stderr.

    Safe to call repeatedly; the handler is installed once.

    Args:
        level: Minimum level for emitted records.
    """
    root = logging.getLogger("protectsync")
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(
            console=err_console,
            show_path=False,
            show_time=False,
            markup=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.propagate = False


def create_paths_table(title: str = "Protected Paths") -> Table:
    """Create a pre-configured table for listing matched paths.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for path display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Type", width=4, justify="center")
    table.add_column("Path", style="path", no_wrap=True)
    table.add_column("Absolute", style="muted", overflow="ellipsis")
    return table


def print_info(message: str) -> None:
    """Print an info message."""
    err_console.print(f"[info]{escape(message)}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    err_console.print(f"[success]{escape(message)}[/]")
