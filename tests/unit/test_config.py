"""Tests for ptsd.yaml loading and project root discovery."""

from __future__ import annotations

import pytest

from ptsd.config import (
    DEFAULT_COMMIT_TYPES,
    DEFAULT_SCOPES,
    PtsdConfig,
    find_project_root,
    load_config,
    parse_config,
    render_config_yaml,
)
from ptsd.errors import ConfigError


class TestDefaults:
    """Every section is optional."""

    def test_empty_document(self, tmp_path):
        config = parse_config(None, tmp_path)
        assert config.testing.patterns == ["**/*_test.go"]
        assert config.testing.runner == ""
        assert config.review.min_score == 7
        assert config.review.auto_redo is False
        assert config.hooks.pre_commit is True
        assert config.hooks.scopes == DEFAULT_SCOPES
        assert config.hooks.types == DEFAULT_COMMIT_TYPES
        assert config.logging.enabled is True

    def test_missing_file_gives_defaults(self, tmp_path):
        (tmp_path / ".ptsd").mkdir()
        config = load_config(tmp_path)
        assert config.review.min_score == 7
        assert config.root_path == tmp_path.absolute()

    def test_paths(self, tmp_path):
        config = PtsdConfig(repo_root=str(tmp_path))
        assert config.prd_path == tmp_path.absolute() / ".ptsd" / "docs" / "PRD.md"
        assert config.bdd_path.name == "bdd"
        assert config.seeds_path.name == "seeds"


class TestParsing:
    """Values from ptsd.yaml override defaults."""

    def test_nested_sections(self, tmp_path):
        config = parse_config({
            "project": {"name": "demo"},
            "testing": {"runner": "make test", "patterns": {"files": ["spec/**/*.rb"]}},
            "review": {"min_score": 9, "auto_redo": True},
            "hooks": {"pre_commit": False, "scopes": ["IMPL"], "types": ["fix"]},
            "logging": {"enabled": False},
        }, tmp_path)
        assert config.project.name == "demo"
        assert config.testing.runner == "make test"
        assert config.testing.patterns == ["spec/**/*.rb"]
        assert config.review.min_score == 9
        assert config.review.auto_redo is True
        assert config.hooks.pre_commit is False
        assert config.hooks.scopes == ["IMPL"]
        assert config.logging.enabled is False

    @pytest.mark.parametrize("data", [
        ["not", "a", "mapping"],
        {"review": "high"},
        {"review": {"min_score": "seven"}},
        {"review": {"min_score": 11}},
        {"review": {"auto_redo": "yes"}},
        {"testing": {"patterns": ["**/*.go"]}},
        {"hooks": {"scopes": [1, 2]}},
    ])
    def test_invalid_values(self, tmp_path, data):
        with pytest.raises(ConfigError):
            parse_config(data, tmp_path)

    def test_malformed_yaml_is_config_error(self, tmp_path):
        (tmp_path / ".ptsd").mkdir()
        (tmp_path / ".ptsd" / "ptsd.yaml").write_text("review: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(tmp_path)

    def test_rendered_config_loads_back(self, tmp_path):
        (tmp_path / ".ptsd").mkdir()
        (tmp_path / ".ptsd" / "ptsd.yaml").write_text(render_config_yaml("demo", "go test ./..."))
        config = load_config(tmp_path)
        assert config.project.name == "demo"
        assert config.testing.runner == "go test ./..."

    def test_to_dict_uses_file_layout(self, tmp_path):
        data = parse_config({}, tmp_path).to_dict()
        assert "repo_root" not in data
        assert data["testing"]["patterns"] == {"files": ["**/*_test.go"]}


class TestFindProjectRoot:
    """The root is the nearest ancestor holding .ptsd/."""

    def test_walks_up(self, tmp_path):
        (tmp_path / ".ptsd").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_project_root(nested) == tmp_path.absolute()

    def test_not_found(self, tmp_path):
        with pytest.raises(ConfigError, match="ptsd init"):
            find_project_root(tmp_path)
