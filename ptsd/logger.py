"""
Structured JSONL logging for ptsd.

This module provides:
- JSONL event logging as an audit trail of pipeline operations
- Log files organized by date under .ptsd/logs/
- Log levels (debug, info, warn, error)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ptsd.config import PtsdConfig
from ptsd.models import utc_now


class LogLevel:
    """Log level constants."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class PtsdLogger:
    """
    JSONL event logger for ptsd.

    Writes structured log entries to .ptsd/logs/ptsd-YYYY-MM-DD.jsonl

    Each log entry is a JSON object with:
    - timestamp: ISO format timestamp
    - level: Log level (debug, info, warn, error)
    - event_type: Type of event being logged
    - command: CLI command that produced the event ("" outside the CLI)
    - data: Additional event data (dict)
    """

    def __init__(self, config: PtsdConfig, command: str = "") -> None:
        """
        Initialize logger for a project.

        Args:
            config: Project config; logging.enabled switches writing on or off.
            command: Name of the command being run, recorded with every entry.
        """
        self._config = config
        self.command = command

    @property
    def enabled(self) -> bool:
        return self._config.logging.enabled

    def _get_log_path(self, date: Optional[str] = None) -> Path:
        """Get the log file path for a date (today by default)."""
        if date is None:
            date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return self._config.logs_path / f"ptsd-{date}.jsonl"

    def _write_entry(self, entry: dict[str, Any]) -> None:
        """Append a log entry to today's JSONL file."""
        log_path = self._get_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        with open(log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")

    def log(
        self,
        event_type: str,
        data: Optional[dict[str, Any]] = None,
        level: str = LogLevel.INFO,
    ) -> None:
        """
        Log an event.

        Args:
            event_type: Type of event (e.g., "review_recorded", "task_added").
            data: Additional data to include in the log entry.
            level: Log level (debug, info, warn, error).
        """
        if not self.enabled:
            return

        entry = {
            "timestamp": utc_now(),
            "level": level,
            "event_type": event_type,
            "command": self.command,
            "data": data or {},
        }
        self._write_entry(entry)

    def debug(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log a debug event."""
        self.log(event_type, data, LogLevel.DEBUG)

    def info(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log an info event."""
        self.log(event_type, data, LogLevel.INFO)

    def warn(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log a warning event."""
        self.log(event_type, data, LogLevel.WARN)

    def error(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log an error event."""
        self.log(event_type, data, LogLevel.ERROR)
