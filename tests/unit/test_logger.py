"""Tests for the JSONL event logger."""

from __future__ import annotations

import json

from ptsd.config import LoggingConfig, PtsdConfig
from ptsd.logger import PtsdLogger


def _logger(tmp_path, enabled=True, command="review"):
    config = PtsdConfig(repo_root=str(tmp_path), logging=LoggingConfig(enabled=enabled))
    return PtsdLogger(config, command)


def _entries(logs_dir):
    return [
        json.loads(line)
        for path in sorted(logs_dir.glob("ptsd-*.jsonl"))
        for line in path.read_text().splitlines()
        if line.strip()
    ]


class TestPtsdLogger:
    """Entries land in .ptsd/logs/ptsd-<date>.jsonl."""

    def test_entry_shape(self, tmp_path):
        logger = _logger(tmp_path)
        logger.info("review_recorded", {"feature": "auth", "score": 8})

        files = list((tmp_path / ".ptsd" / "logs").glob("ptsd-*.jsonl"))
        assert len(files) == 1
        entry = json.loads(files[0].read_text().strip())
        assert set(entry) == {"timestamp", "level", "event_type", "command", "data"}
        assert entry["level"] == "info"
        assert entry["event_type"] == "review_recorded"
        assert entry["command"] == "review"
        assert entry["data"] == {"feature": "auth", "score": 8}

    def test_disabled_writes_nothing(self, tmp_path):
        logger = _logger(tmp_path, enabled=False)
        logger.error("anything")
        assert not (tmp_path / ".ptsd" / "logs").exists()

    def test_entries_append_in_order(self, tmp_path):
        logger = _logger(tmp_path)
        logger.info("a")
        logger.warn("b")

        entries = _entries(tmp_path / ".ptsd" / "logs")
        assert [(e["level"], e["event_type"]) for e in entries] == [("info", "a"), ("warn", "b")]

    def test_store_components_log_through_store(self, project):
        from ptsd.pipeline.tasks import TaskQueue

        project.feature("auth")
        store = project.store(with_logger=True)
        TaskQueue(store).add("auth", "write prd")

        events = [e["event_type"] for e in _entries(project.root / ".ptsd" / "logs")]
        assert "task_added" in events
