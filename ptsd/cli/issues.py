"""Known-issues registry commands."""
from __future__ import annotations

from typing import Optional

import typer

from ptsd.cli.common import cli_errors, emit, get_console, is_agent_mode, open_store
from ptsd.cli.display import show_issues
from ptsd.pipeline.issues import IssueRegistry

app = typer.Typer(
    name="issues",
    help="Known environment issues and their fixes",
    no_args_is_help=True,
)

console = get_console()


@app.command("add")
def add(
    issue_id: str = typer.Argument(..., help="Unique issue identifier."),
    category: str = typer.Argument(..., help="env, access, io, config, test or llm."),
    summary: str = typer.Argument(..., help="What goes wrong."),
    fix: str = typer.Argument(..., help="How to fix it."),
) -> None:
    """Record a known issue."""
    with cli_errors():
        issue = IssueRegistry(open_store("issues add")).add(issue_id, category, summary, fix)
    emit(f"ok {issue.id}", f"[green]Recorded[/green] issue [cyan]{issue.id}[/cyan]")


@app.command("list")
def list_issues(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only this category."),
) -> None:
    """List known issues."""
    with cli_errors():
        issues = IssueRegistry(open_store("issues list")).list(category)

    if not is_agent_mode():
        show_issues(issues, console)
        return
    for issue in issues:
        typer.echo(f"{issue.id} [{issue.category.value}] {issue.summary} -> {issue.fix}")


@app.command("remove")
def remove(
    issue_id: str = typer.Argument(..., help="Issue identifier."),
) -> None:
    """Remove a known issue."""
    with cli_errors():
        IssueRegistry(open_store("issues remove")).remove(issue_id)
    emit(f"ok removed:{issue_id}", f"[yellow]Removed[/yellow] issue [cyan]{issue_id}[/cyan]")
