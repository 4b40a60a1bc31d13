"""
What to work on next, and what went stale.

ContextBuilder turns features, review status, pipeline violations and the
task queue into a short list of next/blocked/done/task lines.
RegressionDetector compares recorded fingerprints and timestamps to spot
earlier stages that changed after a later stage was recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ptsd.models import (
    PIPELINE_STAGES,
    FeatureState,
    ReviewState,
    ReviewStatusEntry,
    Stage,
    Task,
    TaskStatus,
    parse_timestamp,
)
from ptsd.pipeline.hashing import StageHashTracker
from ptsd.pipeline.tasks import queue_order
from ptsd.pipeline.validator import PipelineValidator
from ptsd.store import ProjectStore

STAGE_ACTIONS = {
    Stage.NONE: "write-prd",
    Stage.PRD: "write-seed",
    Stage.SEED: "write-bdd",
    Stage.BDD: "write-tests",
    Stage.TEST: "write-impl",
}

ERROR = "error"
WARN = "warn"


@dataclass
class ContextLine:
    """One line of `ptsd context` output."""
    kind: str                        # next, blocked, done, task
    feature: str
    stage: str = ""
    action: str = ""
    reason: str = ""
    task_id: str = ""
    task_status: str = ""
    title: str = ""

    def render(self) -> str:
        if self.kind == "next":
            return f"next: {self.feature} stage={self.stage} action={self.action}"
        if self.kind == "blocked":
            return f'blocked: {self.feature} stage={self.stage} reason="{self.reason}"'
        if self.kind == "done":
            return f"done: {self.feature} stage={self.stage}"
        return (
            f'task: {self.task_id} status={self.task_status} '
            f'feature={self.feature} title="{self.title}"'
        )


@dataclass
class RegressionWarning:
    """An earlier stage that changed after a later stage was recorded."""
    feature: str
    stage: Stage
    later_stage: Stage
    severity: str                    # error for PRD changes, warn otherwise
    message: str

    def render(self) -> str:
        return f"[{self.severity}] {self.feature}: {self.message}"


@dataclass
class ContextResult:
    lines: list[ContextLine] = field(default_factory=list)
    warnings: list[RegressionWarning] = field(default_factory=list)


class RegressionDetector:
    """
    Pure staleness check over recorded state and current fingerprints.

    Args:
        states: Recorded state per feature.
        current: Current fingerprint per feature and stage value (None when
            the artifact no longer exists). Stages missing from a feature's
            mapping are not checked for drift.
    """

    def __init__(
        self,
        states: dict[str, FeatureState],
        current: dict[str, dict[str, Optional[str]]],
    ) -> None:
        self.states = states
        self.current = current

    @staticmethod
    def _last_validated(fs: FeatureState, stage: Stage):
        """Later of a stage's recorded update and its latest review."""
        times = [parse_timestamp(fs.updated.get(stage.value))]
        score = fs.scores.get(stage.value)
        if score is not None:
            times.append(parse_timestamp(score.at))
        times = [t for t in times if t is not None]
        return max(times) if times else None

    def check_feature(self, feature_id: str) -> list[RegressionWarning]:
        fs = self.states.get(feature_id)
        if fs is None:
            return []
        later = fs.stage
        if later == Stage.NONE:
            return []

        current = self.current.get(feature_id, {})
        later_validated = self._last_validated(fs, later)
        warnings = []
        for stage in PIPELINE_STAGES:
            if stage.rank >= later.rank or stage.value not in fs.hashes:
                continue

            reason = ""
            if stage.value in current and current[stage.value] != fs.hashes[stage.value]:
                reason = "content changed"
            else:
                updated = parse_timestamp(fs.updated.get(stage.value))
                if updated and later_validated and updated > later_validated:
                    reason = "updated"
            if not reason:
                continue

            severity = ERROR if stage == Stage.PRD else WARN
            warnings.append(RegressionWarning(
                feature=feature_id,
                stage=stage,
                later_stage=later,
                severity=severity,
                message=(
                    f"{stage.value} {reason} after {later.value} was recorded, "
                    "downstream may be stale"
                ),
            ))
        return warnings

    def detect(self, feature_ids: list[str]) -> list[RegressionWarning]:
        warnings = []
        for feature_id in feature_ids:
            warnings.extend(self.check_feature(feature_id))
        return warnings


@dataclass
class StatusReport:
    """Counts shown by `ptsd status`."""
    features: int = 0
    active: int = 0
    by_stage: dict[str, int] = field(default_factory=dict)
    tasks: dict[str, int] = field(default_factory=dict)
    violations: int = 0
    warnings: list[RegressionWarning] = field(default_factory=list)


class ContextBuilder:
    """Builds next-action context and project status for a store."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def _current_fingerprints(
        self,
        feature_ids: list[str],
        states: dict[str, FeatureState],
    ) -> dict[str, dict[str, Optional[str]]]:
        """Current fingerprints for every stage that has a recorded hash."""
        tracker = StageHashTracker(self.store)
        current: dict[str, dict[str, Optional[str]]] = {}
        for feature_id in feature_ids:
            fs = states.get(feature_id)
            if fs is None:
                continue
            current[feature_id] = {
                stage.value: tracker.compute_fingerprint(feature_id, stage, fs)
                for stage in PIPELINE_STAGES
                if stage.value in fs.hashes
            }
        return current

    def regressions(self, feature_ids: Optional[list[str]] = None) -> list[RegressionWarning]:
        """Regression warnings for the given features (default: all active)."""
        states = self.store.load_state()
        if feature_ids is None:
            feature_ids = [f.id for f in self.store.active_features()]
        current = self._current_fingerprints(feature_ids, states)
        return RegressionDetector(states, current).detect(feature_ids)

    def _feature_line(
        self,
        feature_id: str,
        stage: Stage,
        effective: Stage,
        entry: Optional[ReviewStatusEntry],
        violation: Optional[str],
    ) -> ContextLine:
        """
        Line for one feature. ``stage`` is the later of the tracked and the
        effective stage; only an implementation with recorded artifacts is done.
        """
        review = entry.review if entry else ReviewState.PENDING

        if review == ReviewState.FAILED:
            return ContextLine(
                "blocked", feature_id, stage.value,
                reason=f"review failed at {stage.value} stage",
            )
        if violation:
            return ContextLine("blocked", feature_id, stage.value, reason=violation)
        if stage == Stage.IMPL:
            if review == ReviewState.PASSED:
                if effective == Stage.IMPL:
                    return ContextLine("done", feature_id, stage.value)
                return ContextLine(
                    "next", feature_id, effective.value, action=STAGE_ACTIONS[effective]
                )
            return ContextLine("next", feature_id, stage.value, action="review-impl")
        return ContextLine("next", feature_id, stage.value, action=STAGE_ACTIONS[stage])

    def build(self) -> ContextResult:
        """
        Next/blocked/done lines for active features in declared order,
        followed by WIP then TODO tasks.
        """
        features = [f for f in self.store.load_features() if f.is_active]
        states = self.store.load_state()
        review_status = self.store.load_review_status()

        first_violation: dict[str, str] = {}
        for violation in PipelineValidator(self.store).validate():
            if violation.feature_id:
                first_violation.setdefault(violation.feature_id, violation.message)

        result = ContextResult()
        for feature in features:
            fs = states.get(feature.id) or FeatureState()
            entry = review_status.get(feature.id)
            stage = max(fs.stage, entry.stage) if entry else fs.stage
            result.lines.append(
                self._feature_line(
                    feature.id, stage, fs.stage, entry, first_violation.get(feature.id)
                )
            )

        result.lines.extend(self._task_lines(self.store.load_tasks()))
        result.warnings = self.regressions([f.id for f in features])
        return result

    @staticmethod
    def _task_lines(tasks: list[Task]) -> list[ContextLine]:
        wip = [t for t in tasks if t.status == TaskStatus.WIP]
        todo = queue_order([t for t in tasks if t.status == TaskStatus.TODO])
        return [
            ContextLine(
                "task", t.feature,
                task_id=t.id, task_status=t.status.value, title=t.title,
            )
            for t in wip + todo
        ]

    def status(self) -> StatusReport:
        """Counts of features per stage, tasks per status and open problems."""
        features = self.store.load_features()
        states = self.store.load_state()
        report = StatusReport(features=len(features))
        report.by_stage = {s.value: 0 for s in [Stage.NONE, *PIPELINE_STAGES]}
        report.tasks = {s.value: 0 for s in TaskStatus}

        active_ids = []
        for feature in features:
            if feature.is_active:
                report.active += 1
                active_ids.append(feature.id)
            stage = (states.get(feature.id) or FeatureState()).stage
            report.by_stage[stage.value] += 1

        for task in self.store.load_tasks():
            report.tasks[task.status.value] += 1

        if active_ids and self.store.prd_exists():
            report.violations = len(PipelineValidator(self.store).validate())
        report.warnings = self.regressions(sorted(active_ids))
        return report
