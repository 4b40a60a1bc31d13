"""Top-level pipeline commands.

These commands are registered directly on the main app, e.g. `ptsd validate`
rather than `ptsd pipeline validate`.

Note: This module is imported by cli/app.py after the main app is defined.
"""
from __future__ import annotations

import typer
from rich.markup import escape

# Import app from cli.app - this works because cli/app.py imports us
# AFTER the app object is created
from ptsd.cli.app import app
from ptsd.cli.common import (
    cli_errors,
    emit,
    get_console,
    is_agent_mode,
    open_store,
    working_dir,
)
from ptsd.cli.display import (
    show_context,
    show_status,
    show_violations,
    status_lines,
)
from ptsd.cli.hooks import tracked_line
from ptsd.errors import PipelineError, UserError
from ptsd.models import PipelineViolation
from ptsd.pipeline.context import ContextBuilder, RegressionWarning
from ptsd.pipeline.hashing import StageHashTracker
from ptsd.pipeline.review import ReviewGate, parse_review_stage
from ptsd.pipeline.tracking import AutoTrack, GateCheck
from ptsd.pipeline.validator import PipelineValidator
from ptsd.project import adopt_project, initialize_project
from ptsd.utils.fs import relative_to_root

console = get_console()

REVIEW_USAGE = "usage: ptsd review <feature> <stage> <score> | ptsd review gate <feature> <stage>"


def _print_agent_warnings(warnings: list[RegressionWarning]) -> None:
    for warning in warnings:
        typer.echo(f"err:pipeline regression {warning.feature}: {warning.message}", err=True)


def _report_violations(violations: list[PipelineViolation]) -> None:
    if is_agent_mode():
        for violation in violations:
            typer.echo(f"err:{violation.render()}")
    else:
        show_violations(violations, console)
    raise typer.Exit(1)


@app.command()
def init(
    name: str = typer.Option("", "--name", "-n", help="Project name (default: directory name)."),
    runner: str = typer.Option("", "--runner", "-r", help="Test runner command for ptsd.yaml."),
) -> None:
    """Create .ptsd/ in the current git repository and install git hooks."""
    with cli_errors():
        root = working_dir()
        ptsd_dir = initialize_project(root, name=name, runner=runner)
    emit(
        f"ok initialized {relative_to_root(ptsd_dir, root)}",
        f"[green]Initialized[/green] {escape(str(ptsd_dir))}\n"
        "  Next: anchor a feature in [cyan].ptsd/docs/PRD.md[/cyan] and run "
        "[cyan]ptsd feature add <id>[/cyan]",
    )


@app.command()
def adopt(
    dry_run: bool = typer.Option(False, "--dry-run", help="Only report what would be imported."),
    name: str = typer.Option("", "--name", "-n", help="Project name (default: directory name)."),
    runner: str = typer.Option("", "--runner", "-r", help="Test runner command for ptsd.yaml."),
) -> None:
    """Bring an existing repository under ptsd, importing its .feature and test files."""
    with cli_errors():
        root = working_dir()
        report = adopt_project(root, dry_run=dry_run, name=name, runner=runner)

    features_rel = relative_to_root(report.features_file, root)
    if report.dry_run:
        emit(
            f"dry-run:ok bdd:{len(report.bdd_files)} tests:{len(report.test_files)} "
            f"features:{features_rel}",
            f"[bold]Dry run[/bold], would create {escape(features_rel)}\n"
            f"  BDD features found: {len(report.bdd_files)}\n"
            f"  Test files found: {len(report.test_files)}",
        )
    for feature_id, rel in report.bdd_files.items():
        tests = report.mappings.get(feature_id, [])
        emit(
            f"feature: {feature_id} bdd={rel} tests={len(tests)}",
            f"  [cyan]{escape(feature_id)}[/cyan] {escape(rel)} ({len(tests)} test files)",
        )
    for finding in report.findings:
        emit(f"warn: {finding}", f"  [yellow]![/yellow] {escape(finding)}")
    if not report.dry_run:
        emit(
            f"adopt:ok dir:{root}",
            f"[green]Adopted[/green] project in {escape(str(root))}",
        )


@app.command()
def validate() -> None:
    """Check pipeline order for every active feature. Exits 1 on violations."""
    with cli_errors():
        violations = PipelineValidator(open_store("validate")).validate()
    if violations:
        _report_violations(violations)
    emit("ok", "[green]ok[/green] pipeline is consistent")


@app.command()
def status() -> None:
    """Show feature, stage and task counts with regression warnings."""
    with cli_errors():
        report = ContextBuilder(open_store("status")).status()

    if not is_agent_mode():
        show_status(report, console)
        return
    _print_agent_warnings(report.warnings)
    for line in status_lines(report):
        typer.echo(line)


@app.command()
def context() -> None:
    """Show what to do next for each active feature, then queued tasks."""
    with cli_errors():
        result = ContextBuilder(open_store("context")).build()

    if not is_agent_mode():
        show_context(result, console)
        return
    _print_agent_warnings(result.warnings)
    for line in result.lines:
        typer.echo(line.render())


@app.command()
def sync() -> None:
    """Record current fingerprints for every stage of every feature."""
    with cli_errors():
        changes = StageHashTracker(open_store("sync")).sync()

    if not changes:
        emit("ok no changes", "[dim]No fingerprint changes.[/dim]")
        return
    for feature_id, stages in sorted(changes.items()):
        names = ",".join(stage.value for stage in stages)
        emit(f"synced: {feature_id} stages={names}", f"[cyan]{feature_id}[/cyan] recorded {names}")


@app.command()
def review(
    args: list[str] = typer.Argument(
        ...,
        help="<feature> <stage> <score>, or: gate <feature> <stage>",
        metavar="ARGS...",
    ),
) -> None:
    """Record a review score, or check a stage's review gate."""
    with cli_errors():
        if args[0] == "gate":
            _review_gate(args[1:])
        else:
            _review_record(args)


def _review_record(args: list[str]) -> None:
    if len(args) != 3:
        raise UserError(REVIEW_USAGE)
    feature_id, stage, score_text = args
    try:
        score = int(score_text)
    except ValueError:
        raise UserError(f"score must be an integer, got: {score_text}")

    outcome = ReviewGate(open_store("review")).record_review(feature_id, stage, score)
    verdict = outcome.verdict.value
    emit(
        f"score:{outcome.score} verdict:{verdict}",
        f"review recorded: feature=[cyan]{outcome.feature}[/cyan] stage={outcome.stage.value} "
        f"score={outcome.score} verdict=[{'green' if verdict == 'pass' else 'red'}]{verdict}[/]",
    )
    if outcome.redo_task:
        emit(f"task:{outcome.redo_task} created", f"[yellow]Queued[/yellow] {outcome.redo_task}")


def _review_gate(args: list[str]) -> None:
    if len(args) != 2:
        raise UserError("usage: ptsd review gate <feature> <stage>")
    feature_id, stage_text = args
    stage = parse_review_stage(stage_text)

    passed = ReviewGate(open_store("review gate")).check_gate(feature_id, stage)
    verdict = "pass" if passed else "fail"
    emit(
        f"gate:{verdict} feature:{feature_id} stage:{stage.value}",
        f"review gate {verdict}: feature={escape(feature_id)} stage={stage.value}",
    )
    if not passed:
        raise PipelineError(f"review gate failed for {feature_id} at {stage.value} stage")


@app.command("gate-check")
def gate_check(
    file: str = typer.Option(..., "--file", help="File about to be written."),
) -> None:
    """Check whether the pipeline allows writing a file. Exits 2 when blocked."""
    with cli_errors():
        result = GateCheck(open_store("gate-check")).check(file)
    if not result.allowed:
        typer.echo(result.reason, err=True)
        raise typer.Exit(2)
    emit("ok", "[green]Gate check passed[/green]")


@app.command("auto-track")
def auto_track(
    file: str = typer.Option(..., "--file", help="File that was just written."),
) -> None:
    """Advance the recorded stage for a written file's feature."""
    with cli_errors():
        result = AutoTrack(open_store("auto-track")).track(file)
    if result is None or not result.updated:
        emit("ok no-op", "[dim]Nothing to track.[/dim]")
        return
    emit(
        tracked_line(result),
        f"Updated [cyan]{result.feature}[/cyan]: stage={result.stage.value} tests={result.tests.value}",
    )
