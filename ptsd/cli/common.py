"""Common utilities and global state for the CLI.

Contains project directory management, output mode, store construction
and error rendering. This module should NOT import from the command
modules to avoid circular imports.
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ptsd.config import find_project_root, load_config
from ptsd.errors import PtsdError
from ptsd.logger import PtsdLogger
from ptsd.store import ProjectStore

# ============================================================================
# Global State
# ============================================================================

# Global project directory override (set via --project flag)
_project_dir: Optional[str] = None

# Terse machine-readable output (set via --agent flag)
_agent_mode: bool = False

# Console singletons
_console: Optional[Console] = None
_err_console: Optional[Console] = None


def get_project_dir() -> Optional[str]:
    """Get the project directory override if set."""
    return _project_dir


def set_project_dir(path: Optional[str]) -> None:
    """Set the project directory override."""
    global _project_dir
    _project_dir = path


def is_agent_mode() -> bool:
    return _agent_mode


def set_agent_mode(enabled: bool) -> None:
    global _agent_mode
    _agent_mode = enabled


def get_console() -> Console:
    """Get or create the console singleton."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_err_console() -> Console:
    """Get or create the stderr console singleton."""
    global _err_console
    if _err_console is None:
        _err_console = Console(stderr=True)
    return _err_console


# ============================================================================
# Store Helpers
# ============================================================================


def working_dir() -> Path:
    """The --project directory, or the current directory."""
    return Path(get_project_dir() or Path.cwd())


def open_store(command: str) -> ProjectStore:
    """
    Resolve the project root and build a store with an event logger.

    Raises:
        ConfigError: No .ptsd directory found, or ptsd.yaml is malformed.
    """
    root = find_project_root(working_dir())
    config = load_config(root)
    return ProjectStore(config, PtsdLogger(config, command))


# ============================================================================
# Output Helpers
# ============================================================================


def emit(agent_text: str, human_text: Optional[str] = None) -> None:
    """
    Print one result line.

    Agent mode prints agent_text verbatim. Human mode prints human_text
    (Rich markup allowed) or, when absent, agent_text escaped.
    """
    if is_agent_mode():
        typer.echo(agent_text)
    elif human_text is None:
        get_console().print(escape(agent_text))
    else:
        get_console().print(human_text)


def fail(error: PtsdError) -> NoReturn:
    """Render a categorized error on stderr and exit with its code."""
    if is_agent_mode():
        typer.echo(error.render(), err=True)
    else:
        get_err_console().print(
            f"[red]Error[/red] [dim]({error.category.value})[/dim]: {escape(error.message)}"
        )
    raise typer.Exit(error.exit_code)


@contextmanager
def cli_errors() -> Iterator[None]:
    """Turn a PtsdError raised by a command body into rendered output and exit code."""
    try:
        yield
    except PtsdError as e:
        fail(e)
