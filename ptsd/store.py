"""
Project document persistence for ptsd.

This module handles:
- Loading and saving the five YAML documents under .ptsd/
  (features, state, tasks, issues, review-status)
- Reading the PRD document
- Atomic writes to prevent corruption
- Mapping malformed documents to config errors and missing required
  documents to io errors
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import yaml

from ptsd.errors import ConfigError, StoreIOError, UserError
from ptsd.models import Feature, FeatureState, Issue, ReviewStatusEntry, Task
from ptsd.utils.fs import FileSystemError, file_exists, read_file, safe_write

if TYPE_CHECKING:
    from ptsd.config import PtsdConfig
    from ptsd.logger import PtsdLogger


FEATURES_FILE = "features.yaml"
STATE_FILE = "state.yaml"
TASKS_FILE = "tasks.yaml"
ISSUES_FILE = "issues.yaml"
REVIEW_STATUS_FILE = "review-status.yaml"


def dump_yaml(data: Any) -> str:
    """Serialize in block style, keeping insertion order."""
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


class ProjectStore:
    """
    Repository over the .ptsd/ documents of one project.

    Every component receives the store explicitly. Each document is read
    whole and written whole; writes go through a temp file and a rename.
    """

    def __init__(
        self,
        config: PtsdConfig,
        logger: Optional[PtsdLogger] = None
    ) -> None:
        """
        Initialize the store.

        Args:
            config: PtsdConfig with the project root resolved.
            logger: Optional logger for recording operations.
        """
        self._config = config
        self._logger = logger

    @property
    def config(self) -> PtsdConfig:
        return self._config

    @property
    def logger(self) -> Optional[PtsdLogger]:
        return self._logger

    @property
    def root(self) -> Path:
        """Absolute project root."""
        return self._config.root_path

    @property
    def ptsd_dir(self) -> Path:
        return self._config.ptsd_path

    def _log(
        self,
        event_type: str,
        data: Optional[dict] = None,
        level: str = "info"
    ) -> None:
        """Log an event if logger is configured."""
        if self._logger:
            self._logger.log(event_type, data, level=level)

    # Generic document access

    def _doc_path(self, name: str) -> Path:
        return self.ptsd_dir / name

    def _load_doc(self, name: str, required: bool = False) -> dict[str, Any]:
        """
        Load a YAML document as a mapping.

        Args:
            name: File name under .ptsd/.
            required: If True a missing file is an io error; otherwise it
                loads as an empty mapping.

        Raises:
            StoreIOError: Required document missing or unreadable.
            ConfigError: Document is not valid YAML or not a mapping.
        """
        path = self._doc_path(name)
        if not file_exists(path):
            if required:
                raise StoreIOError(f"{name} not found in {self.ptsd_dir} (run: ptsd init)")
            self._log("doc_load_miss", {"doc": name}, level="debug")
            return {}

        try:
            content = read_file(path)
        except FileSystemError as e:
            raise StoreIOError(str(e))

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            self._log("doc_corrupted", {"doc": name, "error": str(e)}, level="error")
            raise ConfigError(f"invalid YAML in {name}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{name} must contain a mapping")
        return data

    def _save_doc(self, name: str, data: dict[str, Any]) -> None:
        """Write a document atomically."""
        try:
            safe_write(self._doc_path(name), dump_yaml(data))
        except FileSystemError as e:
            self._log("doc_write_error", {"doc": name, "error": str(e)}, level="error")
            raise StoreIOError(str(e))
        self._log("doc_saved", {"doc": name}, level="debug")

    def _entries(self, name: str, key: str, required: bool = False) -> list[dict[str, Any]]:
        """Load the list stored under key, validating it is a list of mappings."""
        items = self._load_doc(name, required=required).get(key) or []
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise ConfigError(f"{name}: {key} must be a list of mappings")
        return items

    def _mapping(self, name: str, key: str) -> dict[str, Any]:
        """Load the id-keyed mapping stored under key."""
        items = self._load_doc(name).get(key) or {}
        if not isinstance(items, dict):
            raise ConfigError(f"{name}: {key} must be a mapping")
        return items

    # Features

    def load_features(self) -> list[Feature]:
        """
        Load declared features in file order.

        Raises:
            StoreIOError: features.yaml is missing.
            ConfigError: features.yaml is malformed.
        """
        features = []
        for entry in self._entries(FEATURES_FILE, "features", required=True):
            try:
                features.append(Feature.from_dict(entry))
            except (KeyError, ValueError, TypeError, UserError) as e:
                raise ConfigError(f"{FEATURES_FILE}: invalid feature entry {entry!r}: {e}")
        return features

    def save_features(self, features: list[Feature]) -> None:
        self._save_doc(FEATURES_FILE, {"features": [f.to_dict() for f in features]})

    def get_feature(self, feature_id: str) -> Optional[Feature]:
        """Find a declared feature by ID."""
        for feature in self.load_features():
            if feature.id == feature_id:
                return feature
        return None

    def active_features(self) -> list[Feature]:
        """Active features sorted by ID."""
        return sorted(
            (f for f in self.load_features() if f.is_active),
            key=lambda f: f.id,
        )

    # State

    def load_state(self) -> dict[str, FeatureState]:
        """Load per-feature pipeline state; absent document means no state."""
        return {
            str(fid): FeatureState.from_dict(entry if isinstance(entry, dict) else None)
            for fid, entry in self._mapping(STATE_FILE, "features").items()
        }

    def save_state(self, state: dict[str, FeatureState]) -> None:
        self._save_doc(
            STATE_FILE,
            {"features": {fid: fs.to_dict() for fid, fs in state.items()}},
        )

    # Tasks

    def load_tasks(self) -> list[Task]:
        tasks = []
        for entry in self._entries(TASKS_FILE, "tasks"):
            try:
                tasks.append(Task.from_dict(entry))
            except (KeyError, ValueError, TypeError) as e:
                raise ConfigError(f"{TASKS_FILE}: invalid task entry {entry!r}: {e}")
        return tasks

    def save_tasks(self, tasks: list[Task]) -> None:
        self._save_doc(TASKS_FILE, {"tasks": [t.to_dict() for t in tasks]})

    # Issues

    def load_issues(self) -> list[Issue]:
        issues = []
        for entry in self._entries(ISSUES_FILE, "issues"):
            try:
                issues.append(Issue.from_dict(entry))
            except (KeyError, ValueError, TypeError) as e:
                raise ConfigError(f"{ISSUES_FILE}: invalid issue entry {entry!r}: {e}")
        return issues

    def save_issues(self, issues: list[Issue]) -> None:
        self._save_doc(ISSUES_FILE, {"issues": [i.to_dict() for i in issues]})

    # Review status

    def load_review_status(self) -> dict[str, ReviewStatusEntry]:
        result = {}
        for fid, entry in self._mapping(REVIEW_STATUS_FILE, "features").items():
            try:
                result[str(fid)] = ReviewStatusEntry.from_dict(
                    entry if isinstance(entry, dict) else None
                )
            except (ValueError, TypeError) as e:
                raise ConfigError(f"{REVIEW_STATUS_FILE}: invalid entry for {fid}: {e}")
        return result

    def save_review_status(self, status: dict[str, ReviewStatusEntry]) -> None:
        self._save_doc(
            REVIEW_STATUS_FILE,
            {"features": {fid: rs.to_dict() for fid, rs in status.items()}},
        )

    # PRD

    def prd_exists(self) -> bool:
        return file_exists(self._config.prd_path)

    def read_prd(self) -> str:
        """
        Read the PRD document.

        Raises:
            StoreIOError: PRD.md is missing or unreadable.
        """
        try:
            return read_file(self._config.prd_path)
        except FileSystemError as e:
            raise StoreIOError(f"cannot read PRD: {e}")

    # Paths

    def seed_dir(self, feature_id: str) -> Path:
        return self._config.seeds_path / feature_id

    def seed_manifest(self, feature_id: str) -> Path:
        return self.seed_dir(feature_id) / "seed.yaml"

    def bdd_file(self, feature_id: str) -> Path:
        return self._config.bdd_path / f"{feature_id}.feature"
