"""
Configuration loading and validation for ptsd.

This module handles:
- Locating the project root (nearest ancestor containing .ptsd/)
- Loading .ptsd/ptsd.yaml into a typed schema
- Validation of field types and ranges
- Default values for every optional field
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from ptsd.errors import ConfigError

PTSD_DIR = ".ptsd"
CONFIG_FILE = "ptsd.yaml"

DEFAULT_TEST_PATTERNS = ["**/*_test.go"]
DEFAULT_MIN_SCORE = 7
DEFAULT_SCOPES = ["PRD", "SEED", "BDD", "TEST", "IMPL", "TASK", "STATUS"]
DEFAULT_COMMIT_TYPES = ["feat", "add", "fix", "refactor", "remove", "update"]


@dataclass
class ProjectSection:
    """Project identity."""
    name: str = ""


@dataclass
class TestingConfig:
    """Test runner and test file discovery."""
    __test__ = False

    runner: str = ""                           # Shell command, e.g. "pytest --tap-stream"
    patterns: list[str] = field(default_factory=lambda: list(DEFAULT_TEST_PATTERNS))


@dataclass
class ReviewConfig:
    """Review gate thresholds."""
    min_score: int = DEFAULT_MIN_SCORE         # Scores >= min_score pass the gate
    auto_redo: bool = False                    # Enqueue a redo task on a failing score


@dataclass
class HooksConfig:
    """Git hook behaviour and commit message vocabulary."""
    pre_commit: bool = True
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    types: list[str] = field(default_factory=lambda: list(DEFAULT_COMMIT_TYPES))


@dataclass
class LoggingConfig:
    """Event log settings."""
    enabled: bool = True                       # Write JSONL events to .ptsd/logs/


@dataclass
class PtsdConfig:
    """
    Main configuration for ptsd.

    Built from .ptsd/ptsd.yaml; every section is optional.
    """
    repo_root: str = "."

    project: ProjectSection = field(default_factory=ProjectSection)
    testing: TestingConfig = field(default_factory=TestingConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    hooks: HooksConfig = field(default_factory=HooksConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        """Convert the root to an absolute path."""
        self.repo_root = str(Path(self.repo_root).absolute())

    @property
    def root_path(self) -> Path:
        """Absolute project root."""
        return Path(self.repo_root)

    @property
    def ptsd_path(self) -> Path:
        """Absolute path to the .ptsd directory."""
        return self.root_path / PTSD_DIR

    @property
    def config_path(self) -> Path:
        return self.ptsd_path / CONFIG_FILE

    @property
    def docs_path(self) -> Path:
        return self.ptsd_path / "docs"

    @property
    def prd_path(self) -> Path:
        """Absolute path to the PRD document."""
        return self.docs_path / "PRD.md"

    @property
    def seeds_path(self) -> Path:
        return self.ptsd_path / "seeds"

    @property
    def bdd_path(self) -> Path:
        return self.ptsd_path / "bdd"

    @property
    def logs_path(self) -> Path:
        return self.ptsd_path / "logs"

    def to_dict(self) -> dict[str, Any]:
        """Serializable view in ptsd.yaml layout, without the resolved root."""
        data = asdict(self)
        data.pop("repo_root")
        data["testing"]["patterns"] = {"files": data["testing"]["patterns"]}
        return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Get a mapping section, rejecting anything that is not a mapping."""
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _string_list(value: Any, key: str, default: list[str]) -> list[str]:
    """Accept a list of strings (or a single string); None means default."""
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return list(value)


def _bool(value: Any, key: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _parse_project_config(data: dict[str, Any]) -> ProjectSection:
    """Parse project section from dict."""
    name = data.get("name") or ""
    return ProjectSection(name=str(name))


def _parse_testing_config(data: dict[str, Any]) -> TestingConfig:
    """Parse testing section from dict."""
    patterns_data = data.get("patterns") or {}
    if not isinstance(patterns_data, dict):
        raise ConfigError("testing.patterns must be a mapping")
    patterns = _string_list(
        patterns_data.get("files"), "testing.patterns.files", DEFAULT_TEST_PATTERNS
    )
    if not patterns:
        patterns = list(DEFAULT_TEST_PATTERNS)
    return TestingConfig(
        runner=str(data.get("runner") or ""),
        patterns=patterns,
    )


def _parse_review_config(data: dict[str, Any]) -> ReviewConfig:
    """Parse review section from dict."""
    min_score = data.get("min_score", DEFAULT_MIN_SCORE)
    if isinstance(min_score, bool) or not isinstance(min_score, int):
        raise ConfigError(f"review.min_score must be an integer, got {min_score!r}")
    if not 0 <= min_score <= 10:
        raise ConfigError(f"review.min_score must be 0-10, got {min_score}")
    return ReviewConfig(
        min_score=min_score,
        auto_redo=_bool(data.get("auto_redo"), "review.auto_redo", False),
    )


def _parse_hooks_config(data: dict[str, Any]) -> HooksConfig:
    """Parse hooks section from dict."""
    return HooksConfig(
        pre_commit=_bool(data.get("pre_commit"), "hooks.pre_commit", True),
        scopes=_string_list(data.get("scopes"), "hooks.scopes", DEFAULT_SCOPES),
        types=_string_list(data.get("types"), "hooks.types", DEFAULT_COMMIT_TYPES),
    )


def _parse_logging_config(data: dict[str, Any]) -> LoggingConfig:
    return LoggingConfig(enabled=_bool(data.get("enabled"), "logging.enabled", True))


def parse_config(data: Optional[dict[str, Any]], repo_root: str | Path = ".") -> PtsdConfig:
    """
    Build a PtsdConfig from an already-loaded YAML mapping.

    Args:
        data: Mapping loaded from ptsd.yaml (None or empty means all defaults).
        repo_root: Project root the config belongs to.

    Returns:
        PtsdConfig: Validated configuration.

    Raises:
        ConfigError: If a section has the wrong shape or a value is invalid.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("ptsd.yaml must contain a mapping")

    return PtsdConfig(
        repo_root=str(repo_root),
        project=_parse_project_config(_section(data, "project")),
        testing=_parse_testing_config(_section(data, "testing")),
        review=_parse_review_config(_section(data, "review")),
        hooks=_parse_hooks_config(_section(data, "hooks")),
        logging=_parse_logging_config(_section(data, "logging")),
    )


def find_project_root(start: Optional[str | Path] = None) -> Path:
    """
    Walk up from start until a directory containing .ptsd/ is found.

    Args:
        start: Directory to start from. Defaults to the current directory.

    Returns:
        Path: The project root.

    Raises:
        ConfigError: If no ancestor contains a .ptsd directory.
    """
    current = Path(start or Path.cwd()).absolute()
    for candidate in (current, *current.parents):
        if (candidate / PTSD_DIR).is_dir():
            return candidate
    raise ConfigError(f"no {PTSD_DIR}/ directory found from {current} (run: ptsd init)")


def load_config(repo_root: str | Path) -> PtsdConfig:
    """
    Load configuration from <repo_root>/.ptsd/ptsd.yaml.

    A missing ptsd.yaml yields the defaults; a malformed one is an error.

    Raises:
        ConfigError: If config is invalid or cannot be parsed.
    """
    path = Path(repo_root) / PTSD_DIR / CONFIG_FILE
    if not path.exists():
        return PtsdConfig(repo_root=str(repo_root))

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path.name}: {e}")
    except OSError as e:
        raise ConfigError(f"cannot read {path.name}: {e}")

    return parse_config(raw_data, repo_root)


def render_config_yaml(name: str, runner: str = "") -> str:
    """Render a fresh ptsd.yaml with the documented defaults spelled out."""
    data = {
        "project": {"name": name},
        "testing": {"runner": runner, "patterns": {"files": list(DEFAULT_TEST_PATTERNS)}},
        "review": {"min_score": DEFAULT_MIN_SCORE, "auto_redo": False},
        "hooks": {
            "pre_commit": True,
            "scopes": list(DEFAULT_SCOPES),
            "types": list(DEFAULT_COMMIT_TYPES),
        },
    }
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
