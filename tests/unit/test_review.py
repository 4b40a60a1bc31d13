"""Tests for the review gate."""

from __future__ import annotations

import pytest

from ptsd.errors import UserError, ValidationError
from ptsd.models import ReviewState, Stage, TaskStatus, Verdict
from ptsd.pipeline.review import ReviewGate


@pytest.fixture
def gate(project):
    project.feature("auth")
    return ReviewGate(project.store())


class TestRecordReview:
    """Scores update state.yaml and review-status.yaml."""

    def test_failing_score(self, project, gate):
        outcome = gate.record_review("auth", "bdd", 5)

        assert outcome.verdict == Verdict.FAIL
        assert outcome.min_score == 7
        assert not gate.check_gate("auth", "bdd")

        entry = project.store().load_review_status()["auth"]
        assert entry.review == ReviewState.FAILED
        assert entry.issues == 1
        assert entry.issues_list == ["score 5 below min 7 at bdd stage"]

    def test_repeated_failures_accumulate(self, project, gate):
        gate.record_review("auth", "bdd", 5)
        gate.record_review("auth", "bdd", 4)
        entry = project.store().load_review_status()["auth"]
        assert entry.issues == 2
        assert len(entry.issues_list) == 2

    def test_pass_resets_issues(self, project, gate):
        gate.record_review("auth", "bdd", 3)
        outcome = gate.record_review("auth", "bdd", 8)

        assert outcome.verdict == Verdict.PASS
        entry = project.store().load_review_status()["auth"]
        assert entry.review == ReviewState.PASSED
        assert entry.issues == 0
        assert entry.issues_list == []
        assert entry.stage == Stage.BDD

    def test_latest_score_overwrites(self, project, gate):
        gate.record_review("auth", "prd", 9)
        gate.record_review("auth", "prd", 2)
        assert project.store().load_state()["auth"].scores["prd"].score == 2

    def test_review_does_not_advance_existing_stage(self, project, gate):
        gate.record_review("auth", "seed", 8)
        gate.record_review("auth", "impl", 9)
        assert project.store().load_review_status()["auth"].stage == Stage.SEED

    def test_stage_alias(self, project, gate):
        outcome = gate.record_review("auth", "tests", 7)
        assert outcome.stage == Stage.TEST
        assert gate.check_gate("auth", "test")

    @pytest.mark.parametrize("score", [-1, 11, True])
    def test_score_out_of_range(self, gate, score):
        with pytest.raises(UserError):
            gate.record_review("auth", "bdd", score)

    @pytest.mark.parametrize("stage", ["none", "deploy"])
    def test_invalid_stage(self, gate, stage):
        with pytest.raises(UserError):
            gate.record_review("auth", stage, 8)

    def test_unknown_feature(self, gate):
        with pytest.raises(ValidationError, match="feature ghost not found"):
            gate.record_review("ghost", "bdd", 8)


class TestCheckGate:
    """The gate looks at exactly the asked stage."""

    def test_no_score_fails(self, gate):
        assert not gate.check_gate("auth", "impl")

    def test_other_stage_score_does_not_count(self, gate):
        gate.record_review("auth", "prd", 10)
        assert gate.check_gate("auth", "prd")
        assert not gate.check_gate("auth", "seed")

    def test_threshold_from_config(self, project):
        project.feature("auth")
        project.configure("review", min_score=9)
        gate = ReviewGate(project.store())
        gate.record_review("auth", "impl", 8)
        assert not gate.check_gate("auth", "impl")


class TestAutoRedo:
    """A failing score queues a redo task only when auto_redo is on."""

    def test_off_by_default(self, project, gate):
        outcome = gate.record_review("auth", "seed", 1)
        assert outcome.redo_task is None
        assert project.store().load_tasks() == []

    def test_failing_score_queues_task(self, project):
        project.feature("auth")
        project.configure("review", auto_redo=True)
        outcome = ReviewGate(project.store()).record_review("auth", "seed", 1)

        tasks = project.store().load_tasks()
        assert outcome.redo_task == "T-1"
        assert [(t.id, t.title, t.status, t.priority.value) for t in tasks] == [
            ("T-1", "redo seed for auth", TaskStatus.TODO, "B"),
        ]

    def test_passing_score_queues_nothing(self, project):
        project.feature("auth")
        project.configure("review", auto_redo=True)
        ReviewGate(project.store()).record_review("auth", "seed", 9)
        assert project.store().load_tasks() == []
