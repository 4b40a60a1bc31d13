"""
Per-file hooks for editor/agent tool use.

GateCheck decides, before a file is written, whether the pipeline allows
touching it yet. AutoTrack runs after a write and moves the feature's
recorded stage forward.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

from ptsd.models import ReviewStatusEntry, Stage, TestsState
from ptsd.pipeline.classifier import FileClassifier, StageLabel
from ptsd.pipeline.features import file_stem, match_feature_id
from ptsd.pipeline.hashing import StageHashTracker, is_impl_file
from ptsd.pipeline.prd import extract_anchors
from ptsd.store import ProjectStore
from ptsd.utils.fs import relative_to_root

ALWAYS_ALLOWED = {
    ".ptsd/docs/PRD.md",
    ".ptsd/tasks.yaml",
    ".ptsd/state.yaml",
    ".ptsd/features.yaml",
    ".ptsd/ptsd.yaml",
    ".ptsd/issues.yaml",
    "CLAUDE.md",
    ".claude/settings.json",
}
ALWAYS_ALLOWED_PREFIXES = (".ptsd/skills/", ".ptsd/logs/", ".claude/hooks/")
REVIEW_STATUS = ".ptsd/review-status.yaml"

_TEST_SUFFIXES = (
    "_test.go", ".test.ts", ".test.js", ".spec.ts", ".spec.js", "_test.py", ".py",
)


def tested_name(rel: str) -> str:
    """Name a test file is about: ``auth_test.go`` and ``test_auth.py`` give ``auth``."""
    name = PurePosixPath(rel).name
    for suffix in _TEST_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    else:
        name = file_stem(name)
    if name.startswith("test_"):
        name = name[len("test_"):]
    return name


@dataclass
class GateResult:
    allowed: bool
    reason: str = ""
    feature: str = ""


@dataclass
class AutoTrackResult:
    feature: str
    stage: Stage                     # review-status stage after tracking
    previous: Stage
    tests: TestsState
    updated: bool                    # review-status.yaml was written
    recorded: bool                   # a fingerprint was recorded


class _FileInference:
    """Shared path-to-feature inference for the gate and the tracker."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store
        self.classifier = FileClassifier(store.config.testing.patterns, store.root)
        self._feature_ids: Optional[list[str]] = None

    def feature_ids(self) -> list[str]:
        if self._feature_ids is None:
            self._feature_ids = [f.id for f in self.store.load_features()]
        return self._feature_ids

    def normalize(self, path: str) -> str:
        return relative_to_root(path, self.store.root)

    def feature_for_test(self, rel: str) -> str:
        """Feature by test file name, falling back to recorded test mappings."""
        match = match_feature_id(tested_name(rel), self.feature_ids())
        if match:
            return match
        for fid, fs in sorted(self.store.load_state().items()):
            if any(mapping.endswith("::" + rel) or mapping == rel for mapping in fs.tests):
                return fid
        return ""

    def feature_for_impl(self, rel: str) -> str:
        return match_feature_id(file_stem(rel), self.feature_ids())

    @staticmethod
    def seed_feature(rel: str) -> str:
        parts = rel.split("/")
        return parts[2] if len(parts) >= 4 else ""

    @staticmethod
    def bdd_feature(rel: str) -> str:
        if rel.startswith(".ptsd/bdd/") and rel.endswith(".feature"):
            return PurePosixPath(rel).stem
        return ""


class GateCheck(_FileInference):
    """Allows or blocks a file write based on the earlier pipeline stages."""

    def check(self, path: str) -> GateResult:
        rel = self.normalize(path)

        if rel in ALWAYS_ALLOWED or rel.startswith(ALWAYS_ALLOWED_PREFIXES):
            return GateResult(True)
        if rel == REVIEW_STATUS:
            return GateResult(False, "direct edits to review-status.yaml are blocked, use: ptsd review")

        feature_id = self.bdd_feature(rel)
        if feature_id:
            if not self.store.seed_manifest(feature_id).is_file():
                return GateResult(
                    False, f"no seed for {feature_id}, run: ptsd seed init {feature_id}", feature_id
                )
            return GateResult(True, feature=feature_id)

        if rel.startswith(".ptsd/seeds/"):
            feature_id = self.seed_feature(rel)
            if not feature_id:
                return GateResult(True)
            anchors = extract_anchors(self.store.read_prd()) if self.store.prd_exists() else []
            if feature_id not in anchors:
                return GateResult(False, f"no PRD anchor for {feature_id}", feature_id)
            return GateResult(True, feature=feature_id)

        if rel.startswith(".ptsd/"):
            return GateResult(True)

        label = self.classifier.classify(rel)
        if label == StageLabel.TEST:
            feature_id = self.feature_for_test(rel)
            if feature_id and not self.store.bdd_file(feature_id).is_file():
                return GateResult(
                    False,
                    f"no BDD scenarios for {feature_id}, run: ptsd bdd add {feature_id}",
                    feature_id,
                )
            return GateResult(True, feature=feature_id)

        if is_impl_file(rel):
            feature_id = self.feature_for_impl(rel)
            if feature_id:
                fs = self.store.load_state().get(feature_id)
                if fs is None or not fs.tests:
                    return GateResult(False, f"no tests for {feature_id}", feature_id)
            return GateResult(True, feature=feature_id)

        return GateResult(True)


class AutoTrack(_FileInference):
    """Records fingerprints and advances review status after a file write."""

    def _classify(self, rel: str) -> tuple[str, Optional[Stage]]:
        feature_id = self.bdd_feature(rel)
        if feature_id:
            return feature_id, Stage.BDD
        if rel.startswith(".ptsd/seeds/"):
            return self.seed_feature(rel), Stage.SEED
        if rel.startswith(".ptsd/"):
            return "", None

        if self.classifier.classify(rel) == StageLabel.TEST:
            return self.feature_for_test(rel), Stage.TEST
        if is_impl_file(rel):
            return self.feature_for_impl(rel), Stage.IMPL
        return "", None

    def track(self, path: str) -> Optional[AutoTrackResult]:
        """
        Track one written file.

        Returns:
            None when the file maps to no declared feature.
        """
        rel = self.normalize(path)
        feature_id, stage = self._classify(rel)
        if not feature_id or stage is None or feature_id not in self.feature_ids():
            return None

        recorded = StageHashTracker(self.store).record(feature_id, stage)

        review_status = self.store.load_review_status()
        entry = review_status.get(feature_id) or ReviewStatusEntry()
        previous = entry.stage
        updated = False

        if stage == Stage.TEST and entry.tests != TestsState.WRITTEN:
            entry.tests = TestsState.WRITTEN
            updated = True
        if stage > entry.stage:
            entry.stage = stage
            updated = True

        if updated:
            review_status[feature_id] = entry
            self.store.save_review_status(review_status)
        if self.store.logger and (updated or recorded):
            self.store.logger.info("auto_tracked", {
                "feature": feature_id,
                "file": rel,
                "stage": entry.stage.value,
                "previous": previous.value,
            })

        return AutoTrackResult(
            feature=feature_id,
            stage=entry.stage,
            previous=previous,
            tests=entry.tests,
            updated=updated,
            recorded=recorded,
        )
