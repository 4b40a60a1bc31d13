"""Tests for the feature, task and issues command groups."""

from __future__ import annotations

from typer.testing import CliRunner

from ptsd.cli import app

runner = CliRunner()


def agent(root, *args):
    return runner.invoke(app, ["--agent", "-p", str(root), *args])


class TestFeatureCommands:
    def test_add_and_list(self, project):
        result = agent(project.root, "feature", "add", "auth", "User login")
        assert result.exit_code == 0
        assert result.output.strip() == "ok feature:auth status:planned"

        agent(project.root, "feature", "add", "billing")
        result = agent(project.root, "feature", "list")
        assert result.output.splitlines() == [
            "auth [planned] User login",
            "billing [planned] billing",
        ]

    def test_add_duplicate(self, project):
        agent(project.root, "feature", "add", "auth")
        result = agent(project.root, "feature", "add", "auth")
        assert result.exit_code == 1
        assert "err:validation feature auth already exists" in result.output

    def test_list_by_status(self, project):
        project.feature("auth")
        project.feature("later", status="planned")
        result = agent(project.root, "feature", "list", "--status", "planned")
        assert result.output.splitlines() == ["later [planned] later"]

    def test_show(self, project):
        project.prd("auth")
        project.feature("auth")
        project.seed("auth")
        project.bdd("auth", scenarios=2)
        project.map_test("auth")

        result = agent(project.root, "feature", "show", "auth")
        assert result.exit_code == 0
        assert result.output.strip() == (
            "auth [in-progress] stage:none PRD:l3 SEED:ok BDD:2scn TEST:1 STATUS:-"
        )

    def test_status_and_remove(self, project):
        project.feature("auth", status="planned")
        result = agent(project.root, "feature", "status", "auth", "in-progress")
        assert result.output.strip() == "ok feature:auth status:in-progress"

        result = agent(project.root, "feature", "status", "auth", "implemented")
        assert result.exit_code == 1
        assert "err:pipeline tests not passing for auth" in result.output

        result = agent(project.root, "feature", "remove", "auth")
        assert result.output.strip() == "ok removed:auth"
        assert agent(project.root, "feature", "list").output == ""

    def test_human_list(self, project):
        result = runner.invoke(app, ["-p", str(project.root), "feature", "list"])
        assert result.exit_code == 0
        project.feature("auth")
        result = runner.invoke(app, ["-p", str(project.root), "feature", "list"])
        assert "auth" in result.output


class TestTaskCommands:
    def test_queue_flow(self, project):
        project.feature("auth")
        assert agent(project.root, "task", "add", "auth", "first").output.strip() == "ok T-1"
        agent(project.root, "task", "add", "auth", "urgent", "-P", "A")

        result = agent(project.root, "task", "next")
        assert result.output.splitlines() == ["T-2 [TODO] [A] auth: urgent"]

        result = agent(project.root, "task", "update", "T-2", "WIP")
        assert result.output.strip() == "ok T-2 [WIP]"

        result = agent(project.root, "task", "list", "--status", "TODO")
        assert result.output.splitlines() == ["T-1 [TODO] [B] auth: first"]

    def test_unknown_feature(self, project):
        result = agent(project.root, "task", "add", "ghost", "x")
        assert result.exit_code == 1

    def test_bad_priority(self, project):
        project.feature("auth")
        result = agent(project.root, "task", "add", "auth", "x", "--priority", "Z")
        assert result.exit_code == 2


class TestIssueCommands:
    def test_add_list_remove(self, project):
        result = agent(project.root, "issues", "add", "flaky-ci", "env", "CI times out", "raise timeout")
        assert result.output.strip() == "ok flaky-ci"

        result = agent(project.root, "issues", "list", "--category", "env")
        assert result.output.splitlines() == ["flaky-ci [env] CI times out -> raise timeout"]

        assert agent(project.root, "issues", "remove", "flaky-ci").output.strip() == "ok removed:flaky-ci"
