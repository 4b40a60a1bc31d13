"""Feature registry commands.

Commands for declaring features, inspecting their pipeline position and
moving them through statuses.
"""
from __future__ import annotations

from typing import Optional

import typer

from ptsd.cli.common import cli_errors, emit, get_console, is_agent_mode, open_store
from ptsd.cli.display import show_feature_detail, show_features
from ptsd.pipeline.features import FeatureRegistry

# Create feature command group
app = typer.Typer(
    name="feature",
    help="Declare and inspect features",
    no_args_is_help=True,
)

console = get_console()


@app.command("add")
def add(
    feature_id: str = typer.Argument(..., help="Feature identifier (letters, digits, - and _)."),
    title: str = typer.Argument("", help="Human-readable title (defaults to the ID)."),
) -> None:
    """Declare a new planned feature."""
    with cli_errors():
        feature = FeatureRegistry(open_store("feature add")).add(feature_id, title)
    emit(
        f"ok feature:{feature.id} status:{feature.status.value}",
        f"[green]Added[/green] feature [cyan]{feature.id}[/cyan] ({feature.status.value})",
    )


@app.command("list")
def list_features(
    status: Optional[str] = typer.Option(
        None,
        "--status",
        "-s",
        help="Only features with this status.",
    ),
) -> None:
    """List declared features."""
    with cli_errors():
        features = FeatureRegistry(open_store("feature list")).list(status)

    if not is_agent_mode():
        show_features(features, console)
        return
    for feature in features:
        typer.echo(f"{feature.id} [{feature.status.value}] {feature.title}")


@app.command("show")
def show(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
) -> None:
    """Show a feature's stage, PRD anchor, seed, scenarios and tests."""
    with cli_errors():
        detail = FeatureRegistry(open_store("feature show")).show(feature_id)

    if not is_agent_mode():
        show_feature_detail(detail, console)
        return
    typer.echo(
        f"{detail.id} [{detail.status}] stage:{detail.stage} PRD:{detail.prd_anchor or '-'} "
        f"SEED:{detail.seed} BDD:{detail.scenarios}scn TEST:{detail.tests} "
        f"STATUS:{detail.test_status or '-'}"
    )


@app.command("status")
def set_status(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
    status: str = typer.Argument(
        ...,
        help="planned, in-progress, implemented, deferred or done.",
    ),
) -> None:
    """Change a feature's status."""
    with cli_errors():
        feature = FeatureRegistry(open_store("feature status")).set_status(feature_id, status)
    emit(
        f"ok feature:{feature.id} status:{feature.status.value}",
        f"[cyan]{feature.id}[/cyan] is now [bold]{feature.status.value}[/bold]",
    )


@app.command("remove")
def remove(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
) -> None:
    """Remove a feature and its recorded state."""
    with cli_errors():
        FeatureRegistry(open_store("feature remove")).remove(feature_id)
    emit(f"ok removed:{feature_id}", f"[yellow]Removed[/yellow] feature [cyan]{feature_id}[/cyan]")
