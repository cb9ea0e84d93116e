"""Console output and logging configuration.

Provides Rich-based console output and logging setup:
    - console: Main Rich console for stdout
    - stderr_console: Rich console for stderr
    - setup_logging(): Configure logging with Rich handler
    - log_status(): Colored status line on stderr, chosen by Severity
    - ansi(): Render a string with ANSI escapes for fzf rows
"""

from __future__ import annotations

import logging
from enum import Enum

from rich.color import ColorSystem
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.style import Style

console = Console()
stderr_console = Console(stderr=True)


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def color(self) -> str:
        return SEVERITY_COLORS[self]


SEVERITY_COLORS: dict[Severity, str] = {
    Severity.INFO: "blue",
    Severity.SUCCESS: "green",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
}


def _normalize_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def setup_logging(level: str | int = logging.INFO, verbose: bool = False) -> logging.Logger:
    """Configure logging with a Rich handler and return the app logger."""
    numeric_level = logging.DEBUG if verbose else _normalize_level(level)

    handler = RichHandler(
        console=stderr_console,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(numeric_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    logger = logging.getLogger("fzgit")
    logger.handlers.clear()
    logger.setLevel(numeric_level)
    logger.addHandler(handler)

    return logger


def log_status(message: str, severity: Severity = Severity.INFO, newline: bool = True) -> None:
    """Print a status line to stderr in the color of its severity.

    With ``newline=False`` the cursor stays on the line, so a later call can
    finish it (``log_status("Pushing... ", newline=False)`` then ``success("done")``).
    """
    color = severity.color
    stderr_console.print(
        f"[{color}]{escape(message)}[/{color}]",
        end="\n" if newline else "",
        highlight=False,
        soft_wrap=True,
    )


def info(message: str, newline: bool = True) -> None:
    log_status(message, Severity.INFO, newline)


def success(message: str, newline: bool = True) -> None:
    log_status(message, Severity.SUCCESS, newline)


def warning(message: str, newline: bool = True) -> None:
    log_status(message, Severity.WARNING, newline)


def error(message: str, newline: bool = True) -> None:
    log_status(message, Severity.ERROR, newline)


def ansi(text: str, style: str | Severity) -> str:
    """Wrap text in ANSI escapes for tools (fzf) that read raw color codes."""
    style_name = style.color if isinstance(style, Severity) else style
    return Style.parse(style_name).render(text, color_system=ColorSystem.STANDARD)
