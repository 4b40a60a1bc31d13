"""Project configuration and PRD commands."""
from __future__ import annotations

import typer

from ptsd.cli.common import cli_errors, emit, get_console, is_agent_mode, open_store
from ptsd.cli.display import show_violations
from ptsd.errors import PipelineError
from ptsd.pipeline.prd import extract_section
from ptsd.pipeline.validator import PipelineValidator
from ptsd.store import dump_yaml

config_app = typer.Typer(
    name="config",
    help="Project configuration",
    no_args_is_help=True,
)

prd_app = typer.Typer(
    name="prd",
    help="PRD anchor checks and sections",
    no_args_is_help=True,
)

console = get_console()


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration, defaults included."""
    with cli_errors():
        store = open_store("config show")
        typer.echo(dump_yaml(store.config.to_dict()), nl=False)


@prd_app.command("check")
def prd_check() -> None:
    """Check that every active feature has a PRD anchor and no anchor is orphaned."""
    with cli_errors():
        store = open_store("prd check")
        violations = PipelineValidator(store).check_prd()

    if not violations:
        emit("ok", "[green]ok[/green] PRD anchors are consistent")
        return
    if is_agent_mode():
        for violation in violations:
            typer.echo(f"err:{violation.render()}")
    else:
        show_violations(violations, console)
    raise typer.Exit(1)


@prd_app.command("section")
def prd_section(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
) -> None:
    """Print the PRD section anchored to a feature."""
    with cli_errors():
        store = open_store("prd section")
        section = extract_section(store.read_prd(), feature_id)
        if section is None:
            raise PipelineError(f"{feature_id} has no prd anchor")
        if not is_agent_mode():
            console.print(f"[dim]lines {section.start_line}-{section.end_line}[/dim]")
        typer.echo(section.content.rstrip("\n"))
