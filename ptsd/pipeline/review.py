"""
Review gate: quality scores per feature and stage.

A score at or above review.min_score passes the gate for that exact stage.
Recording a score also updates review-status.yaml, and with
review.auto_redo on, a failing score enqueues a redo task.
"""

from __future__ import annotations

from typing import Optional

from ptsd.errors import UserError, ValidationError
from ptsd.models import (
    FeatureState,
    Priority,
    ReviewOutcome,
    ReviewState,
    ReviewStatusEntry,
    ScoreEntry,
    Stage,
    utc_now,
)
from ptsd.pipeline.tasks import TaskQueue
from ptsd.store import ProjectStore

MIN_SCORE = 0
MAX_SCORE = 10


def parse_review_stage(stage: str | Stage) -> Stage:
    """Stage for a review; NONE is not reviewable."""
    parsed = stage if isinstance(stage, Stage) else Stage.parse(stage)
    if parsed == Stage.NONE:
        raise UserError("invalid stage 'none': use prd, seed, bdd, test, impl")
    return parsed


class ReviewGate:
    """Records review scores and answers gate checks."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store
        self.min_score = store.config.review.min_score
        self.auto_redo = store.config.review.auto_redo

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        if self.store.logger:
            self.store.logger.log(event_type, data, level=level)

    def record_review(self, feature_id: str, stage: str | Stage, score: int) -> ReviewOutcome:
        """
        Record the latest score for a feature's stage.

        Args:
            feature_id: Declared feature.
            stage: Stage being reviewed (aliases accepted).
            score: Integer 0..10.

        Returns:
            ReviewOutcome with the derived verdict and any redo task.

        Raises:
            UserError: Score out of range or invalid stage.
            ValidationError: Feature not declared.
        """
        if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
            raise UserError(f"score must be {MIN_SCORE}-{MAX_SCORE}, got {score}")
        review_stage = parse_review_stage(stage)
        if self.store.get_feature(feature_id) is None:
            raise ValidationError(f"feature {feature_id} not found")

        state = self.store.load_state()
        fs = state.get(feature_id) or FeatureState()
        fs.scores[review_stage.value] = ScoreEntry(score=score, at=utc_now())
        state[feature_id] = fs
        self.store.save_state(state)

        outcome = ReviewOutcome(
            feature=feature_id,
            stage=review_stage,
            score=score,
            min_score=self.min_score,
        )
        passed = score >= self.min_score

        review_status = self.store.load_review_status()
        # A new entry starts at the reviewed stage; later reviews leave the stage alone
        entry = review_status.get(feature_id) or ReviewStatusEntry(stage=review_stage)
        if passed:
            entry.review = ReviewState.PASSED
            entry.issues = 0
            entry.issues_list = []
        else:
            entry.review = ReviewState.FAILED
            entry.issues += 1
            entry.issues_list.append(
                f"score {score} below min {self.min_score} at {review_stage.value} stage"
            )
        review_status[feature_id] = entry
        self.store.save_review_status(review_status)

        if self.auto_redo and not passed:
            task = TaskQueue(self.store).add(
                feature_id,
                f"redo {review_stage.value} for {feature_id}",
                Priority.B,
            )
            outcome.redo_task = task.id

        self._log("review_recorded", {
            "feature": feature_id,
            "stage": review_stage.value,
            "score": score,
            "verdict": outcome.verdict.value,
        }, level="info" if passed else "warn")
        return outcome

    def check_gate(self, feature_id: str, stage: str | Stage) -> bool:
        """True iff exactly this stage has a recorded score >= min_score."""
        review_stage = parse_review_stage(stage)
        fs = self.store.load_state().get(feature_id)
        if fs is None:
            return False
        entry = fs.scores.get(review_stage.value)
        return entry is not None and entry.score >= self.min_score
