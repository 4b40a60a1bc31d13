"""Tests for running the configured test command."""

from __future__ import annotations

import pytest

from ptsd.errors import ConfigError, TestRunError, ValidationError
from ptsd.pipeline.testrunner import TestRunner, parse_tap

TAP = """TAP version 13
1..3
ok 1 - login works
not ok 2 - logout works
# Failed at tests/auth_test.go:42
ok 3 - refresh works
"""


class TestParseTap:
    def test_counts(self):
        results = parse_tap(TAP)
        assert (results.total, results.passed, results.failed) == (3, 2, 1)
        assert results.failures == ["tests/auth_test.go:42"]

    def test_non_tap_output(self):
        results = parse_tap("PASS\nokay then\n")
        assert results.total == 0

    def test_status(self):
        results = parse_tap("ok 1\n")
        assert results.ok
        assert results.status == "passing"
        results.exit_code = 1
        assert results.status == "failing"
        with pytest.raises(TestRunError):
            results.raise_for_status()


class TestTestRunner:
    def test_no_runner_configured(self, project):
        with pytest.raises(ConfigError, match="no test runner configured"):
            TestRunner(project.store()).run()

    def test_passing_run_records_status(self, project):
        project.feature("auth")
        project.configure("testing", runner="printf 'ok 1 - a\\nok 2 - b\\n'")
        results = TestRunner(project.store()).run("auth")

        assert results.ok
        assert (results.passed, results.failed) == (2, 0)
        assert project.store().load_state()["auth"].test_status == "passing"

    def test_failing_exit_code(self, project):
        project.feature("auth")
        project.configure("testing", runner="echo 'ok 1'; exit 3")
        results = TestRunner(project.store()).run("auth")
        assert results.exit_code == 3
        assert project.store().load_state()["auth"].test_status == "failing"

    def test_without_feature_updates_mapped_features(self, project):
        project.feature("auth")
        project.feature("billing")
        project.bdd("auth")
        project.map_test("auth")
        project.configure("testing", runner="echo 'not ok 1'")

        TestRunner(project.store()).run()
        state = project.store().load_state()
        assert state["auth"].test_status == "failing"
        assert "billing" not in state

    def test_unknown_feature(self, project):
        project.configure("testing", runner="true")
        with pytest.raises(ValidationError):
            TestRunner(project.store()).run("ghost")

    def test_runs_in_project_root(self, project):
        project.feature("auth")
        project.configure("testing", runner="test -d .ptsd && echo 'ok 1'")
        assert TestRunner(project.store()).run("auth").passed == 1

    def test_stdout_without_trailing_newline_kept_apart_from_stderr(self, project):
        project.feature("auth")
        project.configure("testing", runner="printf 'ok 1'; printf 'not ok 2\\n' >&2")
        results = TestRunner(project.store()).run("auth")
        assert (results.total, results.passed, results.failed) == (2, 1, 1)
