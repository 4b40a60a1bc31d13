"""Shared fixtures: a freshly initialized ptsd project in a temp git repo."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest
import yaml
from typer.testing import CliRunner

from ptsd.config import load_config
from ptsd.logger import PtsdLogger
from ptsd.models import Feature, FeatureStatus
from ptsd.pipeline.artifacts import TestMapper
from ptsd.project import initialize_project
from ptsd.store import ProjectStore


class ProjectFixture:
    """Helpers for building up a project's documents and artifacts."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def store(self, with_logger: bool = False) -> ProjectStore:
        """A fresh store that re-reads ptsd.yaml."""
        config = load_config(self.root)
        return ProjectStore(config, PtsdLogger(config, "test") if with_logger else None)

    def write(self, rel: str, content: str = "") -> Path:
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def prd(self, *feature_ids: str) -> Path:
        """Write a PRD with one anchored section per feature."""
        parts = ["# Demo PRD\n"]
        for fid in feature_ids:
            parts.append(f"<!-- feature:{fid} -->\n## {fid}\n\nThe {fid} feature.\n")
        return self.write(".ptsd/docs/PRD.md", "\n".join(parts))

    def feature(self, feature_id: str, status: str = "in-progress", title: str = "") -> Feature:
        store = self.store()
        features = store.load_features()
        feature = Feature(feature_id, title or feature_id, FeatureStatus.parse(status))
        features.append(feature)
        store.save_features(features)
        return feature

    def seed(self, feature_id: str) -> Path:
        return self.write(
            f".ptsd/seeds/{feature_id}/seed.yaml",
            f"feature: {feature_id}\nfiles: []\n",
        )

    def bdd(self, feature_id: str, scenarios: int = 1) -> Path:
        lines = [f"@feature:{feature_id}", f"Feature: {feature_id}", ""]
        for n in range(1, scenarios + 1):
            lines += [
                f"  Scenario: case {n}",
                f"    Given a {feature_id} setup",
                f"    Then case {n} works",
                "",
            ]
        return self.write(f".ptsd/bdd/{feature_id}.feature", "\n".join(lines))

    def map_test(self, feature_id: str, test_rel: Optional[str] = None) -> str:
        """Write a test file and record its mapping in state.yaml."""
        test_rel = test_rel or f"tests/{feature_id}_test.go"
        if not (self.root / test_rel).exists():
            self.write(test_rel, f"package tests // {feature_id}\n")
        TestMapper(self.store()).map(f".ptsd/bdd/{feature_id}.feature", test_rel)
        return test_rel

    def configure(self, section: str, **values) -> None:
        """Update one section of ptsd.yaml."""
        config_path = self.root / ".ptsd" / "ptsd.yaml"
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        data.setdefault(section, {}).update(values)
        config_path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """An empty git repository (just the .git directory)."""
    root = tmp_path / "repo"
    (root / ".git" / "hooks").mkdir(parents=True)
    return root


@pytest.fixture
def project(repo: Path) -> ProjectFixture:
    """A repository with `ptsd init` already run."""
    initialize_project(repo, name="demo")
    return ProjectFixture(repo)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Typer CLI test runner."""
    return CliRunner()
