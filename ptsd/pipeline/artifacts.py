"""
Seed, BDD and test-mapping artifacts.

Seeds live in .ptsd/seeds/<id>/ with a seed.yaml manifest. BDD scenarios
live in .ptsd/bdd/<id>.feature tagged ``@feature:<id>``. Test mappings
link a BDD file to a test file and are stored in state.yaml as
``<bdd file>::<test file>``.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from ptsd.errors import ConfigError, PipelineError, StoreIOError, UserError, ValidationError
from ptsd.models import FeatureState
from ptsd.store import ProjectStore, dump_yaml
from ptsd.utils.fs import FileSystemError, read_file, relative_to_root, safe_write

FEATURE_TAG = "@feature:"
STEP_KEYWORDS = ("Given ", "When ", "Then ", "And ", "But ")


@dataclass
class Scenario:
    name: str
    steps: list[str] = field(default_factory=list)


@dataclass
class FeatureFile:
    """Parsed .feature file."""
    tag: str = ""
    title: str = ""
    scenarios: list[Scenario] = field(default_factory=list)


@dataclass
class CoverageEntry:
    """Test coverage of one BDD file."""
    feature: str
    bdd_file: str
    scenarios: int
    tests: int

    @property
    def status(self) -> str:
        if self.tests == 0:
            return "no-tests"
        if self.tests >= self.scenarios:
            return "covered"
        return "partial"


def parse_feature_text(content: str) -> FeatureFile:
    """Parse the tag, title and scenarios (with their steps) of a .feature file."""
    parsed = FeatureFile()
    current: Optional[Scenario] = None

    for line in content.splitlines():
        text = line.strip()
        if text.startswith(FEATURE_TAG):
            parsed.tag = text[len(FEATURE_TAG):].strip()
        elif text.startswith("Feature:"):
            parsed.title = text[len("Feature:"):].strip()
        elif text.startswith("Scenario:"):
            current = Scenario(name=text[len("Scenario:"):].strip())
            parsed.scenarios.append(current)
        elif current is not None and text.startswith(STEP_KEYWORDS):
            current.steps.append(text)

    return parsed


def feature_tag(content: str) -> str:
    """First @feature: tag of a .feature file, or ""."""
    for line in content.splitlines():
        text = line.strip()
        if text.startswith(FEATURE_TAG):
            return text[len(FEATURE_TAG):].strip()
    return ""


class SeedManager:
    """Initializes, extends and checks feature seeds."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def _load_manifest(self, feature_id: str) -> dict:
        path = self.store.seed_manifest(feature_id)
        try:
            data = yaml.safe_load(read_file(path)) or {}
        except FileSystemError as e:
            raise StoreIOError(str(e))
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in seeds/{feature_id}/seed.yaml: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"seeds/{feature_id}/seed.yaml must contain a mapping")
        return data

    def init(self, feature_id: str) -> Path:
        """
        Create the seed directory and manifest; an existing manifest is kept.

        Raises:
            ValidationError: Feature not declared.
        """
        if self.store.get_feature(feature_id) is None:
            raise ValidationError(f"feature {feature_id} not found")
        manifest = self.store.seed_manifest(feature_id)
        if not manifest.is_file():
            try:
                safe_write(manifest, dump_yaml({"feature": feature_id, "files": []}))
            except FileSystemError as e:
                raise StoreIOError(str(e))
        return manifest

    def add(self, feature_id: str, source: str | Path, file_type: str = "data") -> Path:
        """
        Copy a file into the seed directory and list it in the manifest.

        Relative source paths are resolved against the project root.

        Raises:
            ValidationError: Seed not initialized.
            StoreIOError: Source file missing or copy failed.
        """
        if not self.store.seed_manifest(feature_id).is_file():
            raise ValidationError(f"seed not initialized for {feature_id}")
        if not (file_type or "").strip():
            raise UserError("seed file type required")

        src = Path(source)
        if not src.is_absolute():
            src = self.store.root / src
        if not src.is_file():
            raise StoreIOError(f"seed source not found: {source}")

        dst = self.store.seed_dir(feature_id) / src.name
        try:
            if src.resolve() != dst.resolve():
                shutil.copyfile(src, dst)
        except OSError as e:
            raise StoreIOError(f"cannot copy {source}: {e}")

        manifest = self._load_manifest(feature_id)
        files = [f for f in (manifest.get("files") or []) if isinstance(f, dict)]
        files = [f for f in files if f.get("path") != src.name]
        files.append({"path": src.name, "type": file_type})
        manifest["feature"] = manifest.get("feature") or feature_id
        manifest["files"] = files
        try:
            safe_write(self.store.seed_manifest(feature_id), dump_yaml(manifest))
        except FileSystemError as e:
            raise StoreIOError(str(e))
        return dst

    def missing(self) -> list[str]:
        """Active features (by ID) that have no seed manifest."""
        return [
            f.id for f in self.store.active_features()
            if not self.store.seed_manifest(f.id).is_file()
        ]

    def check(self) -> None:
        """
        Raises:
            PipelineError: Some active feature has no seed.
        """
        missing = self.missing()
        if missing:
            raise PipelineError("; ".join(f"{fid} has no seed" for fid in missing))


class BddManager:
    """Creates, checks and shows BDD feature files."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def add(self, feature_id: str) -> Path:
        """
        Create a tagged skeleton .feature file; an existing file is kept.

        Raises:
            ValidationError: Feature not declared.
            PipelineError: The feature has no seed yet.
        """
        if self.store.get_feature(feature_id) is None:
            raise ValidationError(f"feature {feature_id} not found")
        if not self.store.seed_manifest(feature_id).is_file():
            raise PipelineError(f"{feature_id} has no seed")

        path = self.store.bdd_file(feature_id)
        if not path.is_file():
            try:
                safe_write(path, f"{FEATURE_TAG}{feature_id}\nFeature: {feature_id}\n")
            except FileSystemError as e:
                raise StoreIOError(str(e))
        return path

    def _feature_files(self) -> list[Path]:
        bdd_dir = self.store.config.bdd_path
        if not bdd_dir.is_dir():
            return []
        return sorted(bdd_dir.glob("*.feature"))

    def check(self) -> None:
        """
        Raises:
            ValidationError: A .feature file is tagged with an undeclared feature.
            PipelineError: Some active feature has no BDD file.
        """
        declared = {f.id for f in self.store.load_features()}
        for path in self._feature_files():
            tag = feature_tag(path.read_text(encoding="utf-8"))
            if tag and tag not in declared:
                raise ValidationError(f"unknown feature tag {tag} in {path.name}")

        missing = [
            f.id for f in self.store.active_features()
            if not self.store.bdd_file(f.id).is_file()
        ]
        if missing:
            raise PipelineError("; ".join(f"{fid} has no bdd" for fid in missing))

    def parse(self, feature_id: str) -> FeatureFile:
        """
        Raises:
            ValidationError: The feature has no BDD file.
        """
        path = self.store.bdd_file(feature_id)
        if not path.is_file():
            raise ValidationError(f"no bdd for {feature_id}")
        return parse_feature_text(path.read_text(encoding="utf-8"))

    def show(self, feature_id: str) -> list[str]:
        """One line per scenario: ``<name>: <step> / <step>``."""
        return [
            f"{s.name}: {' / '.join(s.steps)}"
            for s in self.parse(feature_id).scenarios
        ]


class TestMapper:
    """Links BDD files to test files and reports coverage."""

    __test__ = False

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def map(self, bdd_file: str, test_file: str) -> str:
        """
        Record a ``<bdd>::<test>`` mapping for the feature tagged in the BDD file.

        Returns:
            The feature ID the mapping was recorded under.

        Raises:
            StoreIOError: BDD file missing.
            ValidationError: No @feature tag, or the tag is not declared.
        """
        bdd_rel = relative_to_root(bdd_file, self.store.root)
        test_rel = relative_to_root(test_file, self.store.root)
        try:
            content = read_file(self.store.root / bdd_rel)
        except FileSystemError as e:
            raise StoreIOError(str(e))

        feature_id = feature_tag(content)
        if not feature_id:
            raise ValidationError(f"no @feature tag in {bdd_rel}")
        if self.store.get_feature(feature_id) is None:
            raise ValidationError(f"feature {feature_id} not found")

        state = self.store.load_state()
        fs = state.get(feature_id) or FeatureState()
        mapping = f"{bdd_rel}::{test_rel}"
        if mapping not in fs.tests:
            fs.tests.append(mapping)
        state[feature_id] = fs
        self.store.save_state(state)
        if self.store.logger:
            self.store.logger.info("test_mapped", {"feature": feature_id, "mapping": mapping})
        return feature_id

    def coverage(self) -> list[CoverageEntry]:
        """Coverage per tagged BDD file, in file name order."""
        state = self.store.load_state()
        bdd_dir = self.store.config.bdd_path
        entries = []
        if not bdd_dir.is_dir():
            return entries
        for path in sorted(bdd_dir.glob("*.feature")):
            parsed = parse_feature_text(path.read_text(encoding="utf-8"))
            if not parsed.tag:
                continue
            fs = state.get(parsed.tag)
            entries.append(CoverageEntry(
                feature=parsed.tag,
                bdd_file=relative_to_root(path, self.store.root),
                scenarios=len(parsed.scenarios),
                tests=len(fs.tests) if fs else 0,
            ))
        return entries
