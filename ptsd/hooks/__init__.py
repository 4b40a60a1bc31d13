"""Hooks module for ptsd.

Git hooks that validate commits, and tool-use hooks that gate and track
file writes made by editors and agents.
"""

from ptsd.hooks.git_hooks import install_git_hooks
from ptsd.hooks.tool_use import (
    extract_file_path,
    run_post_tool_use,
    run_pre_tool_use,
)

__all__ = [
    # Git hooks
    "install_git_hooks",
    # Tool-use hooks
    "extract_file_path",
    "run_post_tool_use",
    "run_pre_tool_use",
]
