"""Tests for the stage machine and document models."""

from __future__ import annotations

import pytest

from ptsd.errors import UserError
from ptsd.models import (
    FeatureState,
    Priority,
    ReviewOutcome,
    ReviewStatusEntry,
    Stage,
    Verdict,
    effective_stage,
    parse_timestamp,
    utc_now,
)


class TestStage:
    """Ordering and parsing of pipeline stages."""

    def test_total_order(self):
        assert Stage.NONE < Stage.PRD < Stage.SEED < Stage.BDD < Stage.TEST < Stage.IMPL
        assert max(Stage.BDD, Stage.PRD) == Stage.BDD

    @pytest.mark.parametrize("text,stage", [
        ("prd", Stage.PRD),
        ("BDD", Stage.BDD),
        ("tests", Stage.TEST),
        ("implemented", Stage.IMPL),
        ("impl", Stage.IMPL),
    ])
    def test_parse_aliases(self, text, stage):
        assert Stage.parse(text) == stage

    def test_parse_unknown(self):
        with pytest.raises(UserError):
            Stage.parse("deploy")


class TestEffectiveStage:
    """The stage is derived from recorded hashes only."""

    def test_no_hashes(self):
        assert effective_stage({}) == Stage.NONE

    def test_highest_recorded_stage_wins(self):
        assert effective_stage({"prd": "a", "bdd": "b"}) == Stage.BDD

    def test_feature_state_stage_is_derived(self):
        fs = FeatureState.from_dict({"stage": "impl", "hashes": {"prd": "a"}})
        assert fs.stage == Stage.PRD

    def test_unknown_stage_keys_dropped(self):
        fs = FeatureState.from_dict({"hashes": {"prd": "a", "deploy": "b"}})
        assert fs.hashes == {"prd": "a"}
        assert fs.to_dict()["stage"] == "prd"


def test_priority_rank_is_explicit():
    assert [p.rank for p in (Priority.A, Priority.B, Priority.C)] == [0, 1, 2]


def test_review_outcome_verdict():
    assert ReviewOutcome("f", Stage.BDD, 7, 7).verdict == Verdict.PASS
    assert ReviewOutcome("f", Stage.BDD, 6, 7).verdict == Verdict.FAIL


def test_review_status_entry_defaults():
    entry = ReviewStatusEntry.from_dict(None)
    assert entry.stage == Stage.NONE
    assert entry.issues == 0
    assert entry.issues_list == []


def test_timestamps_have_microseconds_and_z():
    now = utc_now()
    assert now.endswith("Z")
    assert "." in now
    assert parse_timestamp(now) is not None
    assert parse_timestamp("not a time") is None
