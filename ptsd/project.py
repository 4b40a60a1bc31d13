"""Scaffolding of a new .ptsd/ project directory, fresh or adopted from an existing repo."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from ptsd.config import (
    CONFIG_FILE,
    DEFAULT_TEST_PATTERNS,
    PTSD_DIR,
    load_config,
    render_config_yaml,
)
from ptsd.errors import ConfigError, StoreIOError, ValidationError
from ptsd.git import git_dir
from ptsd.hooks.git_hooks import install_git_hooks
from ptsd.logger import PtsdLogger
from ptsd.models import Stage
from ptsd.pipeline.artifacts import TestMapper, parse_feature_text
from ptsd.pipeline.classifier import is_test_path
from ptsd.pipeline.features import FEATURE_ID_RE, FeatureRegistry, match_feature_id
from ptsd.pipeline.hashing import SKIP_DIRS, StageHashTracker
from ptsd.pipeline.tracking import tested_name
from ptsd.store import (
    FEATURES_FILE,
    ISSUES_FILE,
    REVIEW_STATUS_FILE,
    STATE_FILE,
    TASKS_FILE,
    ProjectStore,
)
from ptsd.utils.fs import FileSystemError, ensure_dir, read_file, safe_write

EMPTY_DOCUMENTS = {
    FEATURES_FILE: "features: []\n",
    STATE_FILE: "features: {}\n",
    TASKS_FILE: "tasks: []\n",
    ISSUES_FILE: "issues: []\n",
    REVIEW_STATUS_FILE: "features: {}\n",
}


def render_prd_template(name: str) -> str:
    return (
        f"# {name} PRD\n"
        "\n"
        "Describe each feature in its own section, opened by an anchor line:\n"
        "\n"
        "    <!-- feature:<id> -->\n"
        "\n"
    )


def initialize_project(repo_root: str | Path, name: str = "", runner: str = "") -> Path:
    """
    Create .ptsd/ with config, empty documents, a PRD template and git hooks.

    Args:
        repo_root: Root of a git repository.
        name: Project name; defaults to the directory name.
        runner: Test runner command to put in ptsd.yaml.

    Returns:
        Path of the created .ptsd directory.

    Raises:
        ConfigError: repo_root is not a git repository.
        ValidationError: .ptsd/ already exists.
        StoreIOError: Files could not be written.
    """
    root = Path(repo_root).absolute()
    if not git_dir(root).is_dir():
        raise ConfigError("git repository required (run: git init)")
    ptsd_dir = root / PTSD_DIR
    if ptsd_dir.exists():
        raise ValidationError(f"{PTSD_DIR} already exists")

    name = name or root.name
    try:
        for sub in ("docs", "seeds", "bdd"):
            ensure_dir(ptsd_dir / sub)
        safe_write(ptsd_dir / CONFIG_FILE, render_config_yaml(name, runner))
        for filename, content in EMPTY_DOCUMENTS.items():
            safe_write(ptsd_dir / filename, content)
        safe_write(ptsd_dir / "docs" / "PRD.md", render_prd_template(name))
        safe_write(ptsd_dir / ".gitignore", "logs/\n")
    except FileSystemError as e:
        raise StoreIOError(str(e))

    config = load_config(root)
    install_git_hooks(root, pre_commit=config.hooks.pre_commit)
    return ptsd_dir


@dataclass
class AdoptReport:
    """What adopt found in an existing repository, and what it imported."""
    bdd_files: dict[str, str] = field(default_factory=dict)   # feature ID -> .feature path
    titles: dict[str, str] = field(default_factory=dict)
    test_files: list[str] = field(default_factory=list)
    mappings: dict[str, list[str]] = field(default_factory=dict)  # feature ID -> test paths
    findings: list[str] = field(default_factory=list)
    recorded: dict[str, list[Stage]] = field(default_factory=dict)
    dry_run: bool = False
    ptsd_dir: Path = Path(PTSD_DIR)

    @property
    def features_file(self) -> Path:
        return self.ptsd_dir / FEATURES_FILE


def _walk_files(root: Path) -> list[str]:
    """Relative paths of every file outside skipped and hidden directories, sorted."""
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )
        for name in filenames:
            found.append(Path(dirpath, name).relative_to(root).as_posix())
    return sorted(found)


def scan_project(repo_root: str | Path) -> AdoptReport:
    """
    Discover tagged .feature files and test files in a repository without .ptsd/.

    Each .feature file is claimed by its @feature tag. Files without a tag,
    with an invalid ID, or repeating an ID already claimed are reported as
    findings and left alone. A test file is mapped to the feature its name
    is about (``auth_test.go`` to ``auth``); the rest are reported unmapped.

    Raises:
        ValidationError: .ptsd/ already exists.
    """
    root = Path(repo_root).absolute()
    ptsd_dir = root / PTSD_DIR
    if ptsd_dir.exists():
        raise ValidationError(f"{PTSD_DIR} already exists")

    report = AdoptReport(ptsd_dir=ptsd_dir)
    for rel in _walk_files(root):
        if rel.endswith(".feature"):
            try:
                parsed = parse_feature_text(read_file(root / rel))
            except FileSystemError as e:
                raise StoreIOError(str(e))
            feature_id = parsed.tag
            if not feature_id:
                report.findings.append(f"no @feature tag in {rel}")
            elif not FEATURE_ID_RE.match(feature_id):
                report.findings.append(f"invalid feature id {feature_id!r} in {rel}")
            elif feature_id in report.bdd_files:
                report.findings.append(
                    f"duplicate @feature:{feature_id} in {rel} (kept {report.bdd_files[feature_id]})"
                )
            else:
                report.bdd_files[feature_id] = rel
                report.titles[feature_id] = parsed.title or feature_id
        elif is_test_path(rel, DEFAULT_TEST_PATTERNS):
            report.test_files.append(rel)

    for rel in report.test_files:
        feature_id = match_feature_id(tested_name(rel), list(report.bdd_files))
        if feature_id:
            report.mappings.setdefault(feature_id, []).append(rel)
        else:
            report.findings.append(f"no feature for test {rel}")
    return report


def adopt_project(
    repo_root: str | Path,
    dry_run: bool = False,
    name: str = "",
    runner: str = "",
) -> AdoptReport:
    """
    Bring an existing repository under ptsd.

    Scans for tagged .feature files and test files, then (unless dry_run)
    initializes .ptsd/, moves each claimed .feature file to
    .ptsd/bdd/<id>.feature, declares its feature as planned, records the
    test mappings and syncs fingerprints for every stage.

    Args:
        repo_root: Root of a git repository.
        dry_run: Only scan; nothing is written or moved.
        name: Project name; defaults to the directory name.
        runner: Test runner command to put in ptsd.yaml.

    Raises:
        ConfigError: repo_root is not a git repository (not checked on dry runs).
        ValidationError: .ptsd/ already exists.
        StoreIOError: Files could not be read, written or moved.
    """
    report = scan_project(repo_root)
    report.dry_run = dry_run
    if dry_run:
        return report

    root = Path(repo_root).absolute()
    initialize_project(root, name=name, runner=runner)
    config = load_config(root)
    store = ProjectStore(config, PtsdLogger(config, "adopt"))

    registry = FeatureRegistry(store)
    for feature_id, rel in report.bdd_files.items():
        source = root / rel
        try:
            safe_write(store.bdd_file(feature_id), read_file(source))
            source.unlink()
        except (FileSystemError, OSError) as e:
            raise StoreIOError(f"cannot move {rel}: {e}")
        registry.add(feature_id, report.titles[feature_id])

    mapper = TestMapper(store)
    for feature_id, tests in report.mappings.items():
        for test_rel in tests:
            mapper.map(str(store.bdd_file(feature_id)), test_rel)

    report.recorded = StageHashTracker(store).sync()
    if store.logger:
        store.logger.info("project_adopted", {
            "features": list(report.bdd_files),
            "tests": len(report.test_files),
            "findings": len(report.findings),
        })
    return report
