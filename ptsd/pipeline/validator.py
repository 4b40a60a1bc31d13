"""
Pipeline ordering checks over active features.

The validator only reads; it never changes project documents. Each check
contributes at most one violation per feature, and violations come back
ordered by check, then feature ID.
"""

from __future__ import annotations

from typing import Optional

from ptsd.models import Feature, FeatureState, PipelineViolation
from ptsd.pipeline.prd import extract_anchors
from ptsd.store import ProjectStore

PIPELINE = "pipeline"
VALIDATION = "validation"


class PipelineValidator:
    """Reports pipeline violations for the active features of a project."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        if self.store.logger:
            self.store.logger.log(event_type, data, level=level)

    def _anchor_checks(
        self,
        features: list[Feature],
        active: list[Feature],
    ) -> list[PipelineViolation]:
        """Missing anchors for active features, then orphaned anchors."""
        anchors = extract_anchors(self.store.read_prd())
        anchor_set = set(anchors)
        declared = {f.id for f in features}

        violations = [
            PipelineViolation(PIPELINE, f.id, "has no prd anchor")
            for f in active
            if f.id not in anchor_set
        ]
        violations.extend(
            PipelineViolation(VALIDATION, "", f"orphaned-anchor {a}")
            for a in sorted(anchor_set - declared)
        )
        return violations

    def check_prd(self) -> list[PipelineViolation]:
        """
        Run only the PRD anchor checks.

        Raises:
            StoreIOError: features.yaml or PRD.md is missing.
        """
        features = self.store.load_features()
        active = sorted((f for f in features if f.is_active), key=lambda f: f.id)
        return self._anchor_checks(features, active)

    def validate(self) -> list[PipelineViolation]:
        """
        Run every check over active features.

        Returns:
            Violations ordered by check number, then feature ID. Empty when
            there are no active features.

        Raises:
            StoreIOError: features.yaml or PRD.md is missing.
            ConfigError: A document is malformed.
        """
        features = self.store.load_features()
        active = sorted((f for f in features if f.is_active), key=lambda f: f.id)
        if not active:
            return []

        violations = self._anchor_checks(features, active)
        state = self.store.load_state()

        with_bdd = [f for f in active if self.store.bdd_file(f.id).is_file()]
        violations.extend(
            PipelineViolation(PIPELINE, f.id, "has bdd but no seed")
            for f in with_bdd
            if not self.store.seed_manifest(f.id).is_file()
        )
        violations.extend(
            PipelineViolation(PIPELINE, f.id, "has bdd but no tests")
            for f in with_bdd
            if not (state.get(f.id) or FeatureState()).tests
        )

        self._log("validated", {
            "active": len(active),
            "violations": len(violations),
        }, level="warn" if violations else "info")
        return violations
