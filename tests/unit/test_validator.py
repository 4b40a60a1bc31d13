"""Tests for pipeline ordering checks."""

from __future__ import annotations

import pytest

from ptsd.errors import StoreIOError
from ptsd.pipeline.validator import PipelineValidator


def _messages(project):
    return [(v.category, v.feature_id, v.message) for v in PipelineValidator(project.store()).validate()]


class TestValidate:
    """Checks run over active features only."""

    def test_no_active_features(self, project):
        project.feature("later", status="planned")
        project.feature("parked", status="deferred")
        (project.root / ".ptsd/docs/PRD.md").unlink()
        assert PipelineValidator(project.store()).validate() == []

    def test_clean_pipeline(self, project):
        project.feature("auth")
        project.prd("auth")
        project.seed("auth")
        project.bdd("auth")
        project.map_test("auth")
        assert _messages(project) == []

    def test_bdd_without_seed(self, project):
        """In-progress gamma with anchor, BDD and tests but no seed."""
        project.feature("gamma")
        project.prd("gamma")
        project.bdd("gamma")
        project.map_test("gamma")
        assert _messages(project) == [("pipeline", "gamma", "has bdd but no seed")]

    def test_bdd_without_tests(self, project):
        project.feature("auth")
        project.prd("auth")
        project.seed("auth")
        project.bdd("auth")
        assert _messages(project) == [("pipeline", "auth", "has bdd but no tests")]

    def test_ordering_by_check_then_feature(self, project):
        project.feature("zeta")
        project.feature("alpha")
        project.prd("ghost")
        project.bdd("zeta")
        assert _messages(project) == [
            ("pipeline", "alpha", "has no prd anchor"),
            ("pipeline", "zeta", "has no prd anchor"),
            ("validation", "", "orphaned-anchor ghost"),
            ("pipeline", "zeta", "has bdd but no seed"),
            ("pipeline", "zeta", "has bdd but no tests"),
        ]

    def test_planned_features_never_violate(self, project):
        project.feature("auth")
        project.feature("later", status="planned")
        project.prd("auth", "later")
        project.bdd("later")
        assert _messages(project) == []

    def test_missing_prd_is_io(self, project):
        project.feature("auth")
        (project.root / ".ptsd/docs/PRD.md").unlink()
        with pytest.raises(StoreIOError):
            PipelineValidator(project.store()).validate()


def test_check_prd_runs_anchor_checks_only(project):
    project.feature("auth")
    project.prd("auth", "ghost")
    project.bdd("auth")
    violations = PipelineValidator(project.store()).check_prd()
    assert [v.render() for v in violations] == ["validation orphaned-anchor ghost"]
