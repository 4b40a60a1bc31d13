"""Seed, BDD and test commands.

Each group works on one artifact kind under .ptsd/ (seeds, bdd) or on
the test mappings and runner recorded in state.yaml.
"""
from __future__ import annotations

from typing import Optional

import typer
from rich.markup import escape

from ptsd.cli.common import cli_errors, emit, get_console, is_agent_mode, open_store
from ptsd.cli.display import show_coverage
from ptsd.pipeline.artifacts import BddManager, SeedManager, TestMapper
from ptsd.pipeline.testrunner import TestRunner
from ptsd.utils.fs import relative_to_root

seed_app = typer.Typer(name="seed", help="Feature seed data", no_args_is_help=True)
bdd_app = typer.Typer(name="bdd", help="BDD feature files", no_args_is_help=True)
test_app = typer.Typer(name="test", help="Test mappings, coverage and runs", no_args_is_help=True)

console = get_console()


# =============================================================================
# seed
# =============================================================================


@seed_app.command("init")
def seed_init(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
) -> None:
    """Create .ptsd/seeds/<feature>/seed.yaml."""
    with cli_errors():
        store = open_store("seed init")
        manifest = SeedManager(store).init(feature_id)
        rel = relative_to_root(manifest, store.root)
    emit(f"ok seed:{feature_id} {rel}", f"[green]Seed ready[/green] {escape(rel)}")


@seed_app.command("add")
def seed_add(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
    source: str = typer.Argument(..., help="File to copy into the seed."),
    file_type: str = typer.Option("data", "--type", "-t", help="Kind of seed file."),
) -> None:
    """Copy a file into a feature's seed and list it in the manifest."""
    with cli_errors():
        store = open_store("seed add")
        dst = SeedManager(store).add(feature_id, source, file_type)
        rel = relative_to_root(dst, store.root)
    emit(f"ok seed:{feature_id} {rel} type:{file_type}", f"[green]Added[/green] {escape(rel)} ({escape(file_type)})")


@seed_app.command("check")
def seed_check() -> None:
    """Fail when an active feature has no seed."""
    with cli_errors():
        SeedManager(open_store("seed check")).check()
    emit("ok", "[green]ok[/green] every active feature has a seed")


# =============================================================================
# bdd
# =============================================================================


@bdd_app.command("add")
def bdd_add(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
) -> None:
    """Create a tagged .feature skeleton (the feature needs a seed first)."""
    with cli_errors():
        store = open_store("bdd add")
        path = BddManager(store).add(feature_id)
        rel = relative_to_root(path, store.root)
    emit(f"ok bdd:{feature_id} {rel}", f"[green]BDD ready[/green] {escape(rel)}")


@bdd_app.command("check")
def bdd_check() -> None:
    """Fail on unknown @feature tags or active features without BDD."""
    with cli_errors():
        BddManager(open_store("bdd check")).check()
    emit("ok", "[green]ok[/green] every active feature has BDD scenarios")


@bdd_app.command("show")
def bdd_show(
    feature_id: str = typer.Argument(..., help="Feature identifier."),
) -> None:
    """List a feature's scenarios with their steps."""
    with cli_errors():
        lines = BddManager(open_store("bdd show")).show(feature_id)
    if not lines and not is_agent_mode():
        console.print(f"[dim]No scenarios for {escape(feature_id)}.[/dim]")
    for line in lines:
        typer.echo(line)


# =============================================================================
# test
# =============================================================================


@test_app.command("map")
def map_tests(
    bdd_file: str = typer.Argument(..., help="Tagged .feature file."),
    test_file: str = typer.Argument(..., help="Test file covering it."),
) -> None:
    """Record that a test file covers a BDD file."""
    with cli_errors():
        feature_id = TestMapper(open_store("test map")).map(bdd_file, test_file)
    emit(
        f"ok mapped:{feature_id} {bdd_file}::{test_file}",
        f"[green]Mapped[/green] {escape(bdd_file)} -> {escape(test_file)} ([cyan]{feature_id}[/cyan])",
    )


@test_app.command("coverage")
def coverage() -> None:
    """Show test coverage per BDD file."""
    with cli_errors():
        entries = TestMapper(open_store("test coverage")).coverage()

    if not is_agent_mode():
        show_coverage(entries, console)
        return
    for entry in entries:
        typer.echo(
            f"{entry.feature} {entry.bdd_file} scn:{entry.scenarios} "
            f"tests:{entry.tests} {entry.status}"
        )


@test_app.command("run")
def run_tests(
    feature_id: Optional[str] = typer.Option(
        None,
        "--feature",
        "-f",
        help="Record the result for this feature only.",
    ),
) -> None:
    """Run testing.runner and record the test status."""
    with cli_errors():
        results = TestRunner(open_store("test run")).run(feature_id)

        if is_agent_mode():
            line = f"pass:{results.passed} fail:{results.failed}"
            if results.failures:
                line += " fail:" + ",".join(results.failures)
            typer.echo(line)
        else:
            if results.output.strip():
                console.print(escape(results.output.rstrip()), highlight=False)
            style = "green" if results.ok else "red"
            console.print(f"[{style}]{results.summary()}[/{style}]")
            for failure in results.failures:
                console.print(f"  [red]failed at[/red] {escape(failure)}")

        results.raise_for_status()
