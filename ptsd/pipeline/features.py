"""
Feature registry: declaring features and moving them through statuses.

Also holds feature inference from file names, shared by fingerprinting,
the gate check and auto-tracking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Optional

from ptsd.errors import PipelineError, UserError, ValidationError
from ptsd.models import Feature, FeatureStatus
from ptsd.pipeline.prd import anchor_id
from ptsd.store import ProjectStore

FEATURE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def match_feature_id(name: str, feature_ids: Iterable[str]) -> str:
    """
    Best feature ID for a file stem.

    An exact match wins; otherwise the longest feature ID contained in the
    name, so "authorization" is not claimed by "auth" when both exist.
    Returns "" when nothing matches.
    """
    ids = list(feature_ids)
    if name in ids:
        return name
    best = ""
    for fid in ids:
        if fid and fid in name and len(fid) > len(best):
            best = fid
    return best


def file_stem(path: str) -> str:
    """Base name without its (last) extension."""
    return PurePosixPath(path).stem


@dataclass
class FeatureDetail:
    """Everything `feature show` reports for one feature."""
    id: str
    title: str
    status: str
    stage: str
    prd_anchor: str                  # "l<line>" or "" when missing
    seed: str                        # "ok" or "missing"
    scenarios: int
    tests: int
    test_status: str


class FeatureRegistry:
    """Add, list, inspect, re-status and remove declared features."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        """Log an event if the store has a logger."""
        if self.store.logger:
            self.store.logger.log(event_type, data, level=level)

    def _require(self, features: list[Feature], feature_id: str) -> Feature:
        for feature in features:
            if feature.id == feature_id:
                return feature
        raise ValidationError(f"feature {feature_id} not found")

    def add(self, feature_id: str, title: str = "") -> Feature:
        """
        Declare a new feature with status planned.

        Raises:
            UserError: The ID is empty or has invalid characters.
            ValidationError: The ID is already declared.
        """
        if not FEATURE_ID_RE.match(feature_id or ""):
            raise UserError(f"invalid feature id {feature_id!r}")
        features = self.store.load_features()
        if any(f.id == feature_id for f in features):
            raise ValidationError(f"feature {feature_id} already exists")

        feature = Feature(id=feature_id, title=title or feature_id)
        features.append(feature)
        self.store.save_features(features)
        self._log("feature_added", {"feature": feature_id})
        return feature

    def list(self, status: Optional[str] = None) -> list[Feature]:
        """Declared features in file order, optionally filtered by status."""
        features = self.store.load_features()
        if status is None:
            return features
        wanted = FeatureStatus.parse(status)
        return [f for f in features if f.status == wanted]

    def show(self, feature_id: str) -> FeatureDetail:
        feature = self._require(self.store.load_features(), feature_id)
        state = self.store.load_state().get(feature_id)

        prd_anchor = ""
        if self.store.prd_exists():
            for lineno, line in enumerate(self.store.read_prd().splitlines(), start=1):
                if anchor_id(line) == feature_id:
                    prd_anchor = f"l{lineno}"
                    break

        scenarios = 0
        bdd_file = self.store.bdd_file(feature_id)
        if bdd_file.is_file():
            scenarios = sum(
                1 for line in bdd_file.read_text(encoding="utf-8").splitlines()
                if line.strip().startswith("Scenario:")
            )

        return FeatureDetail(
            id=feature.id,
            title=feature.title,
            status=feature.status.value,
            stage=state.stage.value if state else "none",
            prd_anchor=prd_anchor,
            seed="ok" if self.store.seed_manifest(feature_id).is_file() else "missing",
            scenarios=scenarios,
            tests=len(state.tests) if state else 0,
            test_status=state.test_status if state else "",
        )

    def set_status(self, feature_id: str, status: str) -> Feature:
        """
        Change a feature's status.

        Raises:
            UserError: Unknown status value.
            ValidationError: Feature not declared.
            PipelineError: Marking implemented while tests are not passing.
        """
        new_status = FeatureStatus.parse(status)
        features = self.store.load_features()
        feature = self._require(features, feature_id)

        if new_status == FeatureStatus.IMPLEMENTED:
            state = self.store.load_state().get(feature_id)
            if state is None or state.test_status != "passing":
                raise PipelineError(f"tests not passing for {feature_id}")

        previous = feature.status
        feature.status = new_status
        self.store.save_features(features)
        self._log("feature_status_changed", {
            "feature": feature_id,
            "from": previous.value,
            "to": new_status.value,
        })
        return feature

    def remove(self, feature_id: str) -> None:
        """Remove a feature along with its state and review-status entries."""
        features = self.store.load_features()
        self._require(features, feature_id)
        self.store.save_features([f for f in features if f.id != feature_id])

        state = self.store.load_state()
        if state.pop(feature_id, None) is not None:
            self.store.save_state(state)
        review_status = self.store.load_review_status()
        if review_status.pop(feature_id, None) is not None:
            self.store.save_review_status(review_status)

        self._log("feature_removed", {"feature": feature_id})
