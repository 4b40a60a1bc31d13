"""Installation of the git hooks that keep commits inside the pipeline."""

from __future__ import annotations

import shutil
from pathlib import Path

from ptsd.errors import StoreIOError, ValidationError
from ptsd.git import git_dir
from ptsd.utils.fs import FileSystemError, safe_write

PRE_COMMIT = "pre-commit"
COMMIT_MSG = "commit-msg"


def ptsd_command() -> str:
    """Command the hooks call: the installed ptsd script when on PATH."""
    return shutil.which("ptsd") or "ptsd"


def render_pre_commit(command: str) -> str:
    return f"#!/bin/sh\n{command} validate\n"


def render_commit_msg(command: str) -> str:
    return f'#!/bin/sh\n{command} hooks validate-commit --msg-file "$1"\n'


def install_git_hooks(repo_root: str | Path, pre_commit: bool = True) -> list[Path]:
    """
    Write the commit-msg hook, and the pre-commit hook unless disabled.

    Existing hooks with the same names are replaced.

    Returns:
        Paths of the hooks written.

    Raises:
        ValidationError: repo_root is not a git repository.
        StoreIOError: A hook could not be written.
    """
    git = git_dir(repo_root)
    if not git.is_dir():
        raise ValidationError(f"not a git repository: {repo_root}")

    command = ptsd_command()
    hooks = {COMMIT_MSG: render_commit_msg(command)}
    if pre_commit:
        hooks[PRE_COMMIT] = render_pre_commit(command)

    written = []
    for name, content in hooks.items():
        path = git / "hooks" / name
        try:
            safe_write(path, content)
            path.chmod(0o755)
        except (FileSystemError, OSError) as e:
            raise StoreIOError(f"cannot write {name} hook: {e}")
        written.append(path)
    return written
