"""Display helpers and formatters for the CLI.

Contains Rich tables for features, tasks, issues, context and status.
Agent mode never reaches these; it prints the plain render() lines instead.
This module should NOT import from the command modules to avoid circular imports.
"""
from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ptsd.models import Feature, Issue, PipelineViolation, Stage, Task, TaskStatus
from ptsd.pipeline.artifacts import CoverageEntry
from ptsd.pipeline.context import ContextResult, RegressionWarning, StatusReport
from ptsd.pipeline.features import FeatureDetail

# Stage display colors
STAGE_STYLES: dict[str, str] = {
    Stage.NONE.value: "dim",
    Stage.PRD.value: "blue",
    Stage.SEED.value: "blue",
    Stage.BDD.value: "yellow",
    Stage.TEST.value: "cyan",
    Stage.IMPL.value: "green",
}

STATUS_STYLES: dict[str, str] = {
    "planned": "dim",
    "in-progress": "cyan",
    "implemented": "green",
    "deferred": "magenta",
    "done": "green bold",
}

TASK_STYLES: dict[TaskStatus, str] = {
    TaskStatus.TODO: "yellow",
    TaskStatus.WIP: "cyan bold",
    TaskStatus.DONE: "green",
}

CONTEXT_STYLES: dict[str, str] = {
    "next": "cyan",
    "blocked": "red bold",
    "done": "green",
    "task": "yellow",
}


def format_stage(stage: str) -> Text:
    return Text(stage, style=STAGE_STYLES.get(stage, "white"))


def format_status(status: str) -> Text:
    return Text(status, style=STATUS_STYLES.get(status, "white"))


def show_features(features: list[Feature], console: Console) -> None:
    """Display table of features with their status."""
    if not features:
        console.print(
            Panel(
                "[dim]No features found.[/dim]\n\n"
                "Declare one with:\n"
                "  [cyan]ptsd feature add <id> <title>[/cyan]",
                title="Features",
                border_style="dim",
            )
        )
        return

    table = Table(title="Features", show_header=True, header_style="bold")
    table.add_column("Feature", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Title")
    for feature in features:
        table.add_row(feature.id, format_status(feature.status.value), feature.title)
    console.print(table)


def show_feature_detail(detail: FeatureDetail, console: Console) -> None:
    """Display one feature's pipeline position and artifacts."""
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Title", detail.title or "-")
    table.add_row("Status", format_status(detail.status))
    table.add_row("Stage", format_stage(detail.stage))
    table.add_row("PRD anchor", detail.prd_anchor or "[red]missing[/red]")
    table.add_row("Seed", detail.seed if detail.seed == "ok" else f"[red]{detail.seed}[/red]")
    table.add_row("Scenarios", str(detail.scenarios))
    table.add_row("Tests", str(detail.tests))
    table.add_row("Test status", detail.test_status or "-")
    console.print(Panel(table, title=f"[cyan]{detail.id}[/cyan]", border_style="cyan"))


def show_tasks(tasks: list[Task], console: Console, title: str = "Tasks") -> None:
    """Display table of tasks."""
    if not tasks:
        console.print("[dim]No tasks.[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Feature", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Pri", justify="center")
    table.add_column("Title")
    for task in tasks:
        table.add_row(
            task.id,
            task.feature,
            Text(task.status.value, style=TASK_STYLES[task.status]),
            task.priority.value,
            task.title,
        )
    console.print(table)


def show_issues(issues: list[Issue], console: Console) -> None:
    """Display the known-issues registry."""
    if not issues:
        console.print("[dim]No issues recorded.[/dim]")
        return

    table = Table(title="Issues", show_header=True, header_style="bold")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Category", no_wrap=True)
    table.add_column("Summary")
    table.add_column("Fix")
    for issue in issues:
        table.add_row(issue.id, issue.category.value, issue.summary, issue.fix)
    console.print(table)


def show_violations(violations: list[PipelineViolation], console: Console) -> None:
    table = Table(title="Pipeline violations", show_header=True, header_style="bold red")
    table.add_column("Category", no_wrap=True)
    table.add_column("Feature", style="cyan", no_wrap=True)
    table.add_column("Message")
    for violation in violations:
        table.add_row(violation.category, violation.feature_id or "-", violation.message)
    console.print(table)


def show_warnings(warnings: list[RegressionWarning], console: Console) -> None:
    for warning in warnings:
        style = "red" if warning.severity == "error" else "yellow"
        console.print(
            Text.assemble(
                (f"[{warning.severity}] ", style),
                (warning.feature, "cyan"),
                f": {warning.message}",
            )
        )


def show_context(result: ContextResult, console: Console) -> None:
    """Display next actions, blocks and queued tasks."""
    if not result.lines:
        console.print("[dim]Nothing to do: no active features or open tasks.[/dim]")
    for line in result.lines:
        console.print(
            Text.assemble((f"{line.kind:<8}", CONTEXT_STYLES.get(line.kind, "white")), line.render())
        )
    if result.warnings:
        console.print()
        show_warnings(result.warnings, console)


def show_coverage(entries: list[CoverageEntry], console: Console) -> None:
    if not entries:
        console.print("[dim]No BDD files.[/dim]")
        return

    styles = {"covered": "green", "partial": "yellow", "no-tests": "red"}
    table = Table(title="Test coverage", show_header=True, header_style="bold")
    table.add_column("Feature", style="cyan", no_wrap=True)
    table.add_column("BDD file")
    table.add_column("Scenarios", justify="right")
    table.add_column("Tests", justify="right")
    table.add_column("Status", no_wrap=True)
    for entry in entries:
        table.add_row(
            entry.feature,
            entry.bdd_file,
            str(entry.scenarios),
            str(entry.tests),
            Text(entry.status, style=styles[entry.status]),
        )
    console.print(table)


def show_status(report: StatusReport, console: Console) -> None:
    """Display project-wide counts."""
    table = Table(title="ptsd status", show_header=True, header_style="bold")
    table.add_column("Stage", no_wrap=True)
    table.add_column("Features", justify="right")
    for stage, count in report.by_stage.items():
        table.add_row(format_stage(stage), str(count))
    console.print(table)

    tasks = ", ".join(f"{status}={count}" for status, count in report.tasks.items())
    console.print(f"[dim]Features:[/dim] {report.features} ({report.active} active)")
    console.print(f"[dim]Tasks:[/dim] {tasks}")
    if report.violations:
        console.print(f"[red]Violations:[/red] {report.violations} (run: ptsd validate)")
    else:
        console.print("[green]Violations:[/green] 0")
    if report.warnings:
        show_warnings(report.warnings, console)


def status_lines(report: StatusReport) -> list[str]:
    """Plain count lines for agent mode; warnings are printed separately."""
    lines = [
        f"features: {report.features} active={report.active}",
        "stages: " + " ".join(f"{stage}={count}" for stage, count in report.by_stage.items()),
        "tasks: " + " ".join(f"{status}={count}" for status, count in report.tasks.items()),
        f"violations: {report.violations}",
    ]
    return lines
