"""Tests for next-action context, regression detection and status counts."""

from __future__ import annotations

from ptsd.models import (
    FeatureState,
    ReviewState,
    ReviewStatusEntry,
    ScoreEntry,
    Stage,
    Task,
    TaskStatus,
    Priority,
)
from ptsd.pipeline.context import ContextBuilder, RegressionDetector
from ptsd.pipeline.hashing import StageHashTracker
from ptsd.pipeline.review import ReviewGate


def _set_state(project, feature_id: str, **fields) -> None:
    store = project.store()
    state = store.load_state()
    state[feature_id] = FeatureState(**fields)
    store.save_state(state)


def _set_review(project, feature_id: str, entry: ReviewStatusEntry) -> None:
    store = project.store()
    review_status = store.load_review_status()
    review_status[feature_id] = entry
    store.save_review_status(review_status)


class TestContextLines:
    def test_fresh_feature_needs_prd(self, project):
        project.prd("auth")
        project.feature("auth")
        lines = [line.render() for line in ContextBuilder(project.store()).build().lines]
        assert lines == ["next: auth stage=none action=write-prd"]

    def test_stage_actions(self, project):
        project.prd("auth", "billing")
        project.feature("auth")
        project.feature("billing")
        _set_state(project, "auth", hashes={"prd": "a"})
        _set_state(project, "billing", hashes={"prd": "a", "seed": "b", "bdd": "c", "test": "d"})
        _set_review(project, "billing", ReviewStatusEntry(stage=Stage.TEST))

        lines = [line.render() for line in ContextBuilder(project.store()).build().lines]
        assert lines == [
            "next: auth stage=prd action=write-seed",
            "next: billing stage=test action=write-impl",
        ]

    def test_violation_blocks(self, project):
        project.prd()
        project.feature("auth")
        lines = [line.render() for line in ContextBuilder(project.store()).build().lines]
        assert lines == ['blocked: auth stage=none reason="has no prd anchor"']

    def test_failed_review_blocks(self, project):
        project.prd("auth")
        project.feature("auth")
        _set_review(project, "auth", ReviewStatusEntry(stage=Stage.SEED, review=ReviewState.FAILED))
        lines = [line.render() for line in ContextBuilder(project.store()).build().lines]
        assert lines == ['blocked: auth stage=seed reason="review failed at seed stage"']

    def test_impl_done_after_passed_review(self, project):
        project.prd("auth", "billing")
        project.feature("auth")
        project.feature("billing")
        _set_state(
            project, "auth", hashes={"prd": "a", "seed": "b", "bdd": "c", "test": "d", "impl": "e"}
        )
        _set_review(project, "auth", ReviewStatusEntry(stage=Stage.IMPL, review=ReviewState.PASSED))
        _set_review(project, "billing", ReviewStatusEntry(stage=Stage.IMPL))

        lines = [line.render() for line in ContextBuilder(project.store()).build().lines]
        assert lines == [
            "done: auth stage=impl",
            "next: billing stage=impl action=review-impl",
        ]

    def test_passed_impl_review_without_artifacts_is_not_done(self, project):
        project.prd("auth")
        project.feature("auth")
        ReviewGate(project.store()).record_review("auth", "impl", 9)

        lines = [line.render() for line in ContextBuilder(project.store()).build().lines]
        assert lines == ["next: auth stage=none action=write-prd"]

    def test_inactive_features_skipped(self, project):
        project.prd("auth")
        project.feature("auth", status="planned")
        assert ContextBuilder(project.store()).build().lines == []

    def test_tasks_follow_features(self, project):
        project.prd("auth")
        project.feature("auth")
        store = project.store()
        store.save_tasks([
            Task("T-1", "auth", "low", TaskStatus.TODO, Priority.C),
            Task("T-2", "auth", "urgent", TaskStatus.TODO, Priority.A),
            Task("T-3", "auth", "busy", TaskStatus.WIP, Priority.B),
            Task("T-4", "auth", "finished", TaskStatus.DONE, Priority.A),
        ])

        lines = [line.render() for line in ContextBuilder(project.store()).build().lines]
        assert lines[1:] == [
            'task: T-3 status=WIP feature=auth title="busy"',
            'task: T-2 status=TODO feature=auth title="urgent"',
            'task: T-1 status=TODO feature=auth title="low"',
        ]


class TestRegressionDetector:
    """Pure checks over recorded state and current fingerprints."""

    def test_prd_drift_is_error(self):
        states = {"auth": FeatureState(hashes={"prd": "p1", "seed": "s1"})}
        current = {"auth": {"prd": "p2", "seed": "s1"}}

        warnings = RegressionDetector(states, current).detect(["auth"])
        assert len(warnings) == 1
        warning = warnings[0]
        assert (warning.stage, warning.later_stage, warning.severity) == (Stage.PRD, Stage.SEED, "error")
        assert warning.render() == (
            "[error] auth: prd content changed after seed was recorded, downstream may be stale"
        )

    def test_seed_drift_is_warn(self):
        states = {"auth": FeatureState(hashes={"prd": "p", "seed": "s", "bdd": "b"})}
        current = {"auth": {"prd": "p", "seed": "changed", "bdd": "b"}}
        warnings = RegressionDetector(states, current).detect(["auth"])
        assert [(w.stage, w.severity) for w in warnings] == [(Stage.SEED, "warn")]

    def test_updated_after_later_stage(self):
        states = {"auth": FeatureState(
            hashes={"prd": "p", "seed": "s"},
            updated={"prd": "2026-01-02T00:00:00Z", "seed": "2026-01-01T00:00:00Z"},
        )}
        current = {"auth": {"prd": "p", "seed": "s"}}
        warnings = RegressionDetector(states, current).detect(["auth"])
        assert len(warnings) == 1
        assert "prd updated after seed" in warnings[0].message

    def test_later_review_counts_as_validation(self):
        states = {"auth": FeatureState(
            hashes={"prd": "p", "seed": "s"},
            updated={"prd": "2026-01-02T00:00:00Z", "seed": "2026-01-01T00:00:00Z"},
            scores={"seed": ScoreEntry(8, "2026-01-03T00:00:00Z")},
        )}
        current = {"auth": {"prd": "p", "seed": "s"}}
        assert RegressionDetector(states, current).detect(["auth"]) == []

    def test_nothing_recorded(self):
        assert RegressionDetector({}, {}).detect(["auth"]) == []
        states = {"auth": FeatureState()}
        assert RegressionDetector(states, {}).detect(["auth"]) == []


class TestRegressionsInProject:
    def test_edited_prd_section_warns(self, project):
        project.prd("auth")
        project.feature("auth")
        project.seed("auth")
        StageHashTracker(project.store()).record("auth", Stage.PRD)
        StageHashTracker(project.store()).record("auth", Stage.SEED)
        assert ContextBuilder(project.store()).regressions() == []

        prd = project.root / ".ptsd/docs/PRD.md"
        prd.write_text(prd.read_text() + "More requirements.\n")
        warnings = ContextBuilder(project.store()).build().warnings
        assert [(w.feature, w.stage) for w in warnings] == [("auth", Stage.PRD)]


class TestStatus:
    def test_counts(self, project):
        project.prd("auth")
        project.feature("auth")
        project.feature("billing")
        project.feature("later", status="planned")
        _set_state(project, "auth", hashes={"prd": "a", "seed": "b"})
        store = project.store()
        store.save_tasks([
            Task("T-1", "auth", "one"),
            Task("T-2", "auth", "two", TaskStatus.DONE),
        ])

        report = ContextBuilder(project.store()).status()
        assert (report.features, report.active) == (3, 2)
        assert report.by_stage["seed"] == 1
        assert report.by_stage["none"] == 2
        assert report.tasks == {"TODO": 1, "WIP": 0, "DONE": 1}
        assert report.violations == 1
