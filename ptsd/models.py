"""
Core data models for ptsd.

This module defines the foundational data structures used throughout the system:
- Enums for pipeline stages, feature/task status, priorities and issue categories
- Dataclasses for the persisted documents (features, state, tasks, issues,
  review status) and for produced-only results (violations)
- The single derivation of a feature's stage from its recorded hashes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from ptsd.errors import UserError


class Stage(Enum):
    """
    Pipeline stages, in order.

    A feature advances PRD -> SEED -> BDD -> TEST -> IMPL. NONE means no
    artifact has been recorded yet.
    """
    NONE = "none"
    PRD = "prd"
    SEED = "seed"
    BDD = "bdd"
    TEST = "test"
    IMPL = "impl"

    @property
    def rank(self) -> int:
        """Position in the pipeline; NONE is 0, IMPL is 5."""
        return _STAGE_ORDER.index(self)

    def __lt__(self, other: Stage) -> bool:
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: Stage) -> bool:
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: Stage) -> bool:
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: Stage) -> bool:
        if not isinstance(other, Stage):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, text: str) -> Stage:
        """
        Parse a stage name, accepting the aliases "tests" and "implemented".

        Raises:
            UserError: If the name is not a known stage.
        """
        key = (text or "").strip().lower()
        key = _STAGE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UserError(f"invalid stage {text!r}: use prd, seed, bdd, test, impl")


_STAGE_ORDER = [Stage.NONE, Stage.PRD, Stage.SEED, Stage.BDD, Stage.TEST, Stage.IMPL]
_STAGE_ALIASES = {"tests": "test", "implemented": "impl", "implementation": "impl"}

# Stages that carry artifacts (everything but NONE)
PIPELINE_STAGES = _STAGE_ORDER[1:]


class FeatureStatus(Enum):
    """Lifecycle status of a declared feature."""
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    IMPLEMENTED = "implemented"
    DEFERRED = "deferred"
    DONE = "done"

    @classmethod
    def parse(cls, text: str) -> FeatureStatus:
        try:
            return cls((text or "").strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise UserError(f"invalid status {text!r}: use {valid}")


class TaskStatus(Enum):
    TODO = "TODO"
    WIP = "WIP"
    DONE = "DONE"


class Priority(Enum):
    """Task priority; A is most urgent."""
    A = "A"
    B = "B"
    C = "C"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.A: 0, Priority.B: 1, Priority.C: 2}


class IssueCategory(Enum):
    """Categories of recurring environment problems."""
    ENV = "env"
    ACCESS = "access"
    IO = "io"
    CONFIG = "config"
    TEST = "test"
    LLM = "llm"


class ReviewState(Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"


class TestsState(Enum):
    __test__ = False

    ABSENT = "absent"
    WRITTEN = "written"


class Verdict(Enum):
    PASS = "pass"
    FAIL = "fail"


def utc_now() -> str:
    """Current time as ISO-8601 UTC with microseconds and a Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into an aware datetime.

    Returns None for empty or unparseable values.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _timestamp_str(value: Any) -> str:
    """Coerce a YAML-loaded timestamp (str or datetime) back to our string form."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return "" if value is None else str(value)


def _stage_keyed(data: Any) -> dict[str, Any]:
    """Keep only entries whose key is a recognized pipeline stage."""
    if not isinstance(data, dict):
        return {}
    result = {}
    for key, value in data.items():
        key = str(key).lower()
        key = _STAGE_ALIASES.get(key, key)
        if key in {s.value for s in PIPELINE_STAGES}:
            result[key] = value
    return result


def effective_stage(hashes: dict[str, str]) -> Stage:
    """
    Derive a feature's stage: the highest stage with a recorded hash.

    This is the only place a feature's stage is computed.
    """
    stage = Stage.NONE
    for candidate in PIPELINE_STAGES:
        if hashes.get(candidate.value):
            stage = candidate
    return stage


@dataclass
class Feature:
    """
    A declared feature.

    Persisted as one entry of .ptsd/features.yaml
    """
    id: str
    title: str = ""
    status: FeatureStatus = FeatureStatus.PLANNED

    @property
    def is_active(self) -> bool:
        """Planned and deferred features are outside pipeline checks."""
        return self.status not in (FeatureStatus.PLANNED, FeatureStatus.DEFERRED)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Feature:
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            status=FeatureStatus.parse(str(data.get("status") or "planned")),
        )


@dataclass
class ScoreEntry:
    """Latest review score for one stage."""
    score: int
    at: str = ""                     # ISO format timestamp

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "at": self.at}

    @classmethod
    def from_dict(cls, data: Any) -> ScoreEntry:
        if isinstance(data, int):
            return cls(score=data)
        return cls(score=int(data.get("score", 0)), at=_timestamp_str(data.get("at")))


@dataclass
class FeatureState:
    """
    Pipeline state of one feature.

    Persisted under features.<id> in .ptsd/state.yaml
    """
    hashes: dict[str, str] = field(default_factory=dict)     # stage -> sha256 hex
    updated: dict[str, str] = field(default_factory=dict)    # stage -> timestamp
    scores: dict[str, ScoreEntry] = field(default_factory=dict)
    tests: list[str] = field(default_factory=list)           # "<bdd>::<test>" mappings
    test_status: str = ""                                     # "", passing, failing

    @property
    def stage(self) -> Stage:
        return effective_stage(self.hashes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for YAML serialization."""
        return {
            "stage": self.stage.value,
            "hashes": dict(self.hashes),
            "updated": dict(self.updated),
            "scores": {k: v.to_dict() for k, v in self.scores.items()},
            "tests": list(self.tests),
            "test_status": self.test_status,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> FeatureState:
        """Create from dictionary, dropping keys that are not pipeline stages."""
        data = data or {}
        hashes = {k: str(v) for k, v in _stage_keyed(data.get("hashes")).items() if v}
        updated = {k: _timestamp_str(v) for k, v in _stage_keyed(data.get("updated")).items()}
        scores = {
            k: ScoreEntry.from_dict(v)
            for k, v in _stage_keyed(data.get("scores")).items()
            if isinstance(v, (dict, int))
        }
        tests = [str(t) for t in (data.get("tests") or [])]
        return cls(
            hashes=hashes,
            updated=updated,
            scores=scores,
            tests=tests,
            test_status=str(data.get("test_status") or ""),
        )


@dataclass
class Task:
    """
    A unit of work in the queue.

    Persisted as one entry of .ptsd/tasks.yaml. Tasks are never deleted.
    """
    id: str                          # "T-<n>"
    feature: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.B

    @property
    def number(self) -> int:
        """Numeric suffix of the ID; 0 when the ID is not T-<n>."""
        _, _, suffix = self.id.partition("-")
        return int(suffix) if suffix.isdigit() else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "feature": self.feature,
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=str(data["id"]),
            feature=str(data.get("feature") or ""),
            title=str(data.get("title") or ""),
            status=TaskStatus(str(data.get("status") or "TODO").upper()),
            priority=Priority(str(data.get("priority") or "B").upper()),
        )


@dataclass
class Issue:
    """A known environment problem and its fix."""
    id: str
    category: IssueCategory
    summary: str
    fix: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "summary": self.summary,
            "fix": self.fix,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Issue:
        return cls(
            id=str(data["id"]),
            category=IssueCategory(str(data.get("category") or "").lower()),
            summary=str(data.get("summary") or ""),
            fix=str(data.get("fix") or ""),
        )


@dataclass
class ReviewStatusEntry:
    """
    Review progress of one feature.

    Persisted under features.<id> in .ptsd/review-status.yaml
    """
    stage: Stage = Stage.NONE
    tests: TestsState = TestsState.ABSENT
    review: ReviewState = ReviewState.PENDING
    issues: int = 0
    issues_list: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "tests": self.tests.value,
            "review": self.review.value,
            "issues": self.issues,
            "issues_list": list(self.issues_list),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> ReviewStatusEntry:
        data = data or {}
        stage_text = str(data.get("stage") or "none").lower()
        stage_text = _STAGE_ALIASES.get(stage_text, stage_text)
        try:
            stage = Stage(stage_text)
        except ValueError:
            stage = Stage.NONE
        return cls(
            stage=stage,
            tests=TestsState(str(data.get("tests") or "absent")),
            review=ReviewState(str(data.get("review") or "pending")),
            issues=int(data.get("issues") or 0),
            issues_list=[str(i) for i in (data.get("issues_list") or [])],
        )


@dataclass(frozen=True)
class PipelineViolation:
    """A broken pipeline rule. Produced by validation, never persisted."""
    category: str                    # "pipeline" or "validation"
    feature_id: str                  # "" for project-global violations
    message: str

    def render(self) -> str:
        """Render as a single line: ``<category> <feature>: <message>``."""
        if self.feature_id:
            return f"{self.category} {self.feature_id}: {self.message}"
        return f"{self.category} {self.message}"


@dataclass
class ReviewOutcome:
    """Result of recording a review score."""
    feature: str
    stage: Stage
    score: int
    min_score: int
    redo_task: Optional[str] = None  # ID of the auto-created redo task, if any

    @property
    def verdict(self) -> Verdict:
        return Verdict.PASS if self.score >= self.min_score else Verdict.FAIL
