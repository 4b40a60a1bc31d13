"""Thin wrappers over the git command line."""

from __future__ import annotations

import subprocess
from pathlib import Path

from ptsd.errors import StoreIOError


def staged_files(repo_root: str | Path) -> list[str]:
    """
    List files staged for commit (``git diff --cached --name-only``).

    Raises:
        StoreIOError: If git is not available or the command fails.
    """
    try:
        result = subprocess.run(
            ["git", "diff", "--cached", "--name-only"],
            cwd=str(repo_root),
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise StoreIOError(f"git not found: {e}")

    if result.returncode != 0:
        raise StoreIOError(f"git diff --cached failed: {result.stderr.strip()}")

    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def git_dir(repo_root: str | Path) -> Path:
    """Path of the repository's .git directory (not guaranteed to exist)."""
    return Path(repo_root) / ".git"
