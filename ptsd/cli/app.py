"""Main Typer app definition and routing.

This is the canonical entry point for the CLI. The app, callback, and
sub-app registrations are all defined here.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ptsd import __version__
from ptsd.cli.common import get_console, set_agent_mode, set_project_dir

# Create Typer app
app = typer.Typer(
    name="ptsd",
    help="Pipeline integrity engine: PRD -> Seed -> BDD -> Tests -> Impl",
    add_completion=False,
)

# Rich console for output - use singleton from common module
console = get_console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"ptsd version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory to operate on (default: current directory)",
    ),
    agent: bool = typer.Option(
        False,
        "--agent",
        help="Terse, machine-readable output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    ptsd - keeps a feature's artifacts moving through the pipeline in order.

    Every feature goes PRD -> Seed -> BDD -> Tests -> Impl. Use
    --project/-p to operate on a different project directory.
    """
    set_agent_mode(agent)
    set_project_dir(None)
    if project:
        # Validate that the project directory exists
        project_path = Path(project)
        if not project_path.is_dir():
            typer.echo(f"err:user project directory not found: {project}", err=True)
            raise typer.Exit(2)
        set_project_dir(str(project_path.absolute()))

    # If no subcommand and no --help, show help
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


# =========================================================================
# Sub-App Registration
# =========================================================================

# Import and register project configuration and PRD commands
from ptsd.cli.project import config_app, prd_app

app.add_typer(config_app, name="config")
app.add_typer(prd_app, name="prd")

# Import and register feature commands
from ptsd.cli.feature import app as feature_app

app.add_typer(feature_app, name="feature")

# Import and register seed, BDD and test artifact commands
from ptsd.cli.artifacts import bdd_app, seed_app, test_app

app.add_typer(seed_app, name="seed")
app.add_typer(bdd_app, name="bdd")
app.add_typer(test_app, name="test")

# Import and register task queue commands
from ptsd.cli.task import app as task_app

app.add_typer(task_app, name="task")

# Import and register issue registry commands
from ptsd.cli.issues import app as issues_app

app.add_typer(issues_app, name="issues")

# Import and register hook commands
from ptsd.cli.hooks import app as hooks_app

app.add_typer(hooks_app, name="hooks")


# =========================================================================
# Top-Level Commands
# =========================================================================
# Import pipeline to register top-level commands like `ptsd validate`
# This must come AFTER app and sub-apps are defined
import ptsd.cli.pipeline  # noqa: F401, E402


def cli_main() -> None:
    """Entry point for the CLI."""
    app()


__all__ = ["app", "cli_main"]
