"""Tests for seeds, BDD files and test mappings."""

from __future__ import annotations

import pytest
import yaml

from ptsd.errors import PipelineError, StoreIOError, ValidationError
from ptsd.pipeline.artifacts import (
    BddManager,
    SeedManager,
    TestMapper,
    parse_feature_text,
)


class TestSeedManager:
    def test_init_writes_manifest(self, project):
        project.feature("auth")
        manifest = SeedManager(project.store()).init("auth")
        assert yaml.safe_load(manifest.read_text()) == {"feature": "auth", "files": []}

    def test_init_keeps_existing_manifest(self, project):
        project.feature("auth")
        project.write(".ptsd/seeds/auth/seed.yaml", "feature: auth\nfiles: [{path: a.json, type: data}]\n")
        SeedManager(project.store()).init("auth")
        assert "a.json" in (project.root / ".ptsd/seeds/auth/seed.yaml").read_text()

    def test_init_unknown_feature(self, project):
        with pytest.raises(ValidationError):
            SeedManager(project.store()).init("ghost")

    def test_add_copies_and_lists(self, project):
        project.feature("auth")
        project.write("fixtures/users.json", "[]")
        seeds = SeedManager(project.store())
        seeds.init("auth")

        dst = seeds.add("auth", "fixtures/users.json", "fixture")
        assert dst == project.root / ".ptsd/seeds/auth/users.json"
        manifest = yaml.safe_load((project.root / ".ptsd/seeds/auth/seed.yaml").read_text())
        assert manifest["files"] == [{"path": "users.json", "type": "fixture"}]

        seeds.add("auth", "fixtures/users.json", "data")
        manifest = yaml.safe_load((project.root / ".ptsd/seeds/auth/seed.yaml").read_text())
        assert manifest["files"] == [{"path": "users.json", "type": "data"}]

    def test_add_requires_init(self, project):
        project.feature("auth")
        project.write("users.json", "[]")
        with pytest.raises(ValidationError, match="seed not initialized"):
            SeedManager(project.store()).add("auth", "users.json")

    def test_add_missing_source(self, project):
        project.feature("auth")
        seeds = SeedManager(project.store())
        seeds.init("auth")
        with pytest.raises(StoreIOError):
            seeds.add("auth", "nope.json")

    def test_check(self, project):
        project.feature("auth")
        project.feature("later", status="planned")
        seeds = SeedManager(project.store())
        with pytest.raises(PipelineError, match="auth has no seed"):
            seeds.check()
        project.seed("auth")
        seeds.check()


class TestBddManager:
    def test_add_requires_seed(self, project):
        project.feature("auth")
        with pytest.raises(PipelineError, match="auth has no seed"):
            BddManager(project.store()).add("auth")

    def test_add_writes_tagged_skeleton(self, project):
        project.feature("auth")
        project.seed("auth")
        path = BddManager(project.store()).add("auth")
        assert path.read_text() == "@feature:auth\nFeature: auth\n"

    def test_check_unknown_tag(self, project):
        project.write(".ptsd/bdd/ghost.feature", "@feature:ghost\nFeature: ghost\n")
        with pytest.raises(ValidationError, match="unknown feature tag ghost"):
            BddManager(project.store()).check()

    def test_check_missing_bdd(self, project):
        project.feature("auth")
        with pytest.raises(PipelineError, match="auth has no bdd"):
            BddManager(project.store()).check()
        project.bdd("auth")
        BddManager(project.store()).check()

    def test_show(self, project):
        project.feature("auth")
        project.bdd("auth", scenarios=2)
        assert BddManager(project.store()).show("auth") == [
            "case 1: Given a auth setup / Then case 1 works",
            "case 2: Given a auth setup / Then case 2 works",
        ]

    def test_show_missing(self, project):
        with pytest.raises(ValidationError):
            BddManager(project.store()).show("auth")


def test_parse_feature_text():
    parsed = parse_feature_text(
        "@feature:auth\nFeature: Login\n\n  Scenario: ok\n    Given a user\n    When login\n    And more\n"
    )
    assert parsed.tag == "auth"
    assert parsed.title == "Login"
    assert [(s.name, len(s.steps)) for s in parsed.scenarios] == [("ok", 3)]


class TestTestMapper:
    def test_map_records_once(self, project):
        project.feature("auth")
        project.bdd("auth")
        mapper = TestMapper(project.store())
        assert mapper.map(".ptsd/bdd/auth.feature", "tests/auth_test.go") == "auth"
        mapper.map(str(project.root / ".ptsd/bdd/auth.feature"), "./tests/auth_test.go")
        assert project.store().load_state()["auth"].tests == [
            ".ptsd/bdd/auth.feature::tests/auth_test.go",
        ]

    def test_map_requires_tag(self, project):
        project.write(".ptsd/bdd/raw.feature", "Feature: raw\n")
        with pytest.raises(ValidationError, match="no @feature tag"):
            TestMapper(project.store()).map(".ptsd/bdd/raw.feature", "t_test.go")

    def test_map_unknown_feature(self, project):
        project.write(".ptsd/bdd/ghost.feature", "@feature:ghost\n")
        with pytest.raises(ValidationError, match="feature ghost not found"):
            TestMapper(project.store()).map(".ptsd/bdd/ghost.feature", "t_test.go")

    def test_map_missing_bdd(self, project):
        with pytest.raises(StoreIOError):
            TestMapper(project.store()).map(".ptsd/bdd/none.feature", "t_test.go")

    def test_coverage(self, project):
        project.feature("auth")
        project.feature("billing")
        project.feature("search")
        project.bdd("auth", scenarios=1)
        project.bdd("billing", scenarios=2)
        project.bdd("search", scenarios=1)
        project.map_test("auth")
        project.map_test("billing")

        coverage = {e.feature: e.status for e in TestMapper(project.store()).coverage()}
        assert coverage == {"auth": "covered", "billing": "partial", "search": "no-tests"}
