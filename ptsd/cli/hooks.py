"""Git and tool-use hook commands.

`install` and `validate-commit` are for git. `pre-tool-use` and
`post-tool-use` are called by an editor/agent around each file write,
with the tool payload as JSON on stdin.
"""
from __future__ import annotations

import typer
from rich.markup import escape

from ptsd.cli.common import cli_errors, emit, get_console, open_store, working_dir
from ptsd.hooks.git_hooks import install_git_hooks
from ptsd.hooks.tool_use import run_post_tool_use, run_pre_tool_use
from ptsd.pipeline.commit import CommitScopeValidator
from ptsd.pipeline.tracking import AutoTrackResult
from ptsd.utils.fs import relative_to_root

app = typer.Typer(
    name="hooks",
    help="Git hooks and editor tool-use hooks",
    no_args_is_help=True,
)

console = get_console()


def tracked_line(result: AutoTrackResult) -> str:
    return f"tracked: {result.feature} stage={result.stage.value} tests={result.tests.value}"


def _read_stdin() -> str:
    return typer.get_text_stream("stdin").read()


@app.command("install")
def install() -> None:
    """Write .git/hooks/pre-commit and .git/hooks/commit-msg."""
    with cli_errors():
        store = open_store("hooks install")
        written = install_git_hooks(store.root, pre_commit=store.config.hooks.pre_commit)
        names = [relative_to_root(path, store.root) for path in written]
    emit("ok hooks installed", "[green]Git hooks installed:[/green] " + escape(", ".join(names)))


@app.command("validate-commit")
def validate_commit(
    msg_file: str = typer.Option(..., "--msg-file", help="Commit message file passed by git."),
) -> None:
    """Check a commit message's [SCOPE] against the staged files."""
    with cli_errors():
        parsed = CommitScopeValidator(open_store("hooks validate-commit")).validate_commit_file(msg_file)
    emit(f"ok [{parsed.scope}]", f"[green]ok[/green] commit scope [{parsed.scope}]")


@app.command("pre-tool-use")
def pre_tool_use() -> None:
    """Gate a file write. Exits 2 with the reason on stderr when blocked."""
    result = run_pre_tool_use(_read_stdin(), start=working_dir())
    if not result.allowed:
        typer.echo(result.reason, err=True)
        raise typer.Exit(2)


@app.command("post-tool-use")
def post_tool_use() -> None:
    """Track a written file. Never fails."""
    result = run_post_tool_use(_read_stdin(), start=working_dir())
    if result is not None and result.updated:
        typer.echo(tracked_line(result))
