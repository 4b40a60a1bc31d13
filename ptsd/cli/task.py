"""Task queue commands."""
from __future__ import annotations

from typing import Optional

import typer

from ptsd.cli.common import cli_errors, emit, get_console, is_agent_mode, open_store
from ptsd.cli.display import show_tasks
from ptsd.models import Task
from ptsd.pipeline.tasks import TaskQueue

app = typer.Typer(
    name="task",
    help="Prioritized work queue",
    no_args_is_help=True,
)

console = get_console()


def task_line(task: Task) -> str:
    return f"{task.id} [{task.status.value}] [{task.priority.value}] {task.feature}: {task.title}"


def _print_tasks(tasks: list[Task], title: str) -> None:
    if not is_agent_mode():
        show_tasks(tasks, console, title=title)
        return
    for task in tasks:
        typer.echo(task_line(task))


@app.command("add")
def add(
    feature_id: str = typer.Argument(..., help="Feature the task belongs to."),
    title: str = typer.Argument(..., help="What needs doing."),
    priority: str = typer.Option("B", "--priority", "-P", help="A (urgent), B or C."),
) -> None:
    """Queue a TODO task for a feature."""
    with cli_errors():
        task = TaskQueue(open_store("task add")).add(feature_id, title, priority)
    emit(f"ok {task.id}", f"[green]Added[/green] {task.id} [dim]({task.priority.value})[/dim]")


@app.command("list")
def list_tasks(
    feature: Optional[str] = typer.Option(None, "--feature", "-f", help="Only this feature's tasks."),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="TODO, WIP or DONE."),
) -> None:
    """List tasks in queue file order."""
    with cli_errors():
        tasks = TaskQueue(open_store("task list")).list(feature, status)
    _print_tasks(tasks, "Tasks")


@app.command("next")
def next_tasks(
    limit: int = typer.Option(1, "--limit", "-n", help="How many tasks (0 for all)."),
) -> None:
    """Show the most urgent TODO tasks."""
    with cli_errors():
        tasks = TaskQueue(open_store("task next")).next(limit)
    _print_tasks(tasks, "Next")


@app.command("update")
def update(
    task_id: str = typer.Argument(..., help="Task ID, e.g. T-3."),
    status: str = typer.Argument(..., help="TODO, WIP or DONE."),
) -> None:
    """Change a task's status."""
    with cli_errors():
        task = TaskQueue(open_store("task update")).update(task_id, status)
    emit(f"ok {task.id} [{task.status.value}]", f"{task.id} is now [bold]{task.status.value}[/bold]")
