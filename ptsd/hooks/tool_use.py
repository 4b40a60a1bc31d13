"""Tool-use hooks: gate a file write before it happens, track it after.

Both hooks read a JSON payload on stdin and look for a string
``file_path``, either at the top level or under ``tool_input``. They fail
open: malformed input, a missing project or any internal error lets the
write through and changes nothing.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from ptsd.config import find_project_root, load_config
from ptsd.logger import PtsdLogger
from ptsd.pipeline.tracking import AutoTrack, AutoTrackResult, GateCheck, GateResult
from ptsd.store import ProjectStore

logger = logging.getLogger(__name__)


def extract_file_path(raw: str) -> str:
    """
    Get the target file path from a hook payload.

    Returns "" for malformed JSON, a non-object payload, or a missing or
    non-string file_path.
    """
    try:
        payload: Any = json.loads(raw)
    except (ValueError, TypeError):
        return ""
    if not isinstance(payload, dict):
        return ""

    value = payload.get("file_path")
    if not isinstance(value, str):
        tool_input = payload.get("tool_input")
        value = tool_input.get("file_path") if isinstance(tool_input, dict) else None
    return value if isinstance(value, str) else ""


def _open_store(start: Optional[str | Path], command: str) -> ProjectStore:
    root = find_project_root(start)
    config = load_config(root)
    return ProjectStore(config, PtsdLogger(config, command))


def run_pre_tool_use(raw: str, start: Optional[str | Path] = None) -> GateResult:
    """Gate-check the payload's file; anything unexpected allows the write."""
    file_path = extract_file_path(raw)
    if not file_path:
        return GateResult(True)
    try:
        store = _open_store(start, "hooks pre-tool-use")
        return GateCheck(store).check(file_path)
    except Exception as e:
        logger.warning(f"pre-tool-use check skipped for {file_path}: {e}")
        return GateResult(True)


def run_post_tool_use(raw: str, start: Optional[str | Path] = None) -> Optional[AutoTrackResult]:
    """Auto-track the payload's file; anything unexpected is a no-op."""
    file_path = extract_file_path(raw)
    if not file_path:
        return None
    try:
        store = _open_store(start, "hooks post-tool-use")
        return AutoTrack(store).track(file_path)
    except Exception as e:
        logger.warning(f"post-tool-use tracking skipped for {file_path}: {e}")
        return None
