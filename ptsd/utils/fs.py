"""
File system utilities for ptsd.

This module provides safe file operations including:
- Atomic writes (write to temp file, then rename)
- Directory creation
- File reading with encoding handling
- Project-relative path normalisation
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional


class FileSystemError(Exception):
    """Raised when a file system operation fails."""
    pass


def ensure_dir(path: str | Path) -> Path:
    """
    Create a directory if it does not exist (like mkdir -p).

    Raises:
        FileSystemError: If directory creation fails.
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError as e:
        raise FileSystemError(f"Failed to create directory {path}: {e}")


def safe_write(path: str | Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write content to a file atomically.

    Uses a temporary file in the same directory and a rename, so readers
    never see a partially written document.

    Args:
        path: Path to the file to write.
        content: Content to write to the file.
        encoding: Character encoding to use. Defaults to utf-8.

    Raises:
        FileSystemError: If write operation fails.
    """
    path = Path(path)

    ensure_dir(path.parent)

    try:
        # Same directory keeps the rename on one filesystem
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)

            shutil.move(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
    except OSError as e:
        raise FileSystemError(f"Failed to write file {path}: {e}")


def file_exists(path: str | Path) -> bool:
    """True if path exists and is a regular file."""
    return Path(path).is_file()


def read_file(path: str | Path, encoding: str = "utf-8") -> str:
    """
    Read a file's contents.

    Raises:
        FileSystemError: If the file is missing or cannot be read.
    """
    path = Path(path)
    try:
        return path.read_text(encoding=encoding)
    except FileNotFoundError:
        raise FileSystemError(f"File not found: {path}")
    except (OSError, UnicodeDecodeError) as e:
        raise FileSystemError(f"Failed to read file {path}: {e}")


def relative_to_root(path: str | Path, root: Optional[str | Path] = None) -> str:
    """
    Normalise a path to forward-slash form relative to the project root.

    Backslashes become slashes, a leading "./" is dropped, and absolute
    paths under root are made relative. Paths outside root are returned
    normalised but otherwise unchanged.
    """
    text = str(path).replace("\\", "/")
    if root is not None:
        root_text = str(Path(root).absolute()).replace("\\", "/").rstrip("/") + "/"
        if text.startswith(root_text):
            text = text[len(root_text):]
    while text.startswith("./"):
        text = text[2:]
    return text
