"""
Classification of repository paths into pipeline stage labels.

The classifier is total: every path gets exactly one label, and the same
path with the same configured test globs always gets the same label.
"""

from __future__ import annotations

import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional

from ptsd.models import Stage
from ptsd.utils.fs import relative_to_root


class StageLabel(Enum):
    """Label of a file; also the set of commit scopes tied to files."""
    PRD = "PRD"
    SEED = "SEED"
    BDD = "BDD"
    TEST = "TEST"
    IMPL = "IMPL"
    TASK = "TASK"
    STATUS = "STATUS"

    @property
    def stage(self) -> Optional[Stage]:
        """Pipeline stage for artifact labels; None for TASK and STATUS."""
        return _LABEL_STAGES.get(self)


_LABEL_STAGES = {
    StageLabel.PRD: Stage.PRD,
    StageLabel.SEED: Stage.SEED,
    StageLabel.BDD: Stage.BDD,
    StageLabel.TEST: Stage.TEST,
    StageLabel.IMPL: Stage.IMPL,
}

_STATUS_FILES = {
    ".ptsd/state.yaml",
    ".ptsd/review-status.yaml",
    ".ptsd/features.yaml",
    ".ptsd/ptsd.yaml",
    ".ptsd/issues.yaml",
    ".ptsd/.gitignore",
}
_STATUS_PREFIXES = (".ptsd/skills/", ".ptsd/logs/")

# Test naming conventions recognized regardless of configuration
BUILTIN_TEST_SUFFIXES = ("_test.go", ".test.ts", ".test.js", "_test.py")
BUILTIN_TEST_PREFIXES = ("test_",)


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Translate a path glob into an anchored regular expression.

    ``**`` matches zero or more whole path segments, ``*`` matches within
    one segment and ``?`` matches a single non-slash character.
    """
    out = []
    i = 0
    n = len(pattern)
    while i < n:
        if pattern.startswith("**", i):
            i += 2
            if i < n and pattern[i] == "/":
                i += 1
                out.append("(?:.*/)?")
            else:
                out.append(".*")
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


def matches_glob(path: str, pattern: str) -> bool:
    """
    Match a normalised relative path against a glob.

    Patterns without a slash also match against the file's base name.
    """
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    regex = glob_to_regex(pattern)
    if regex.match(path):
        return True
    if "/" not in pattern:
        return bool(regex.match(path.rsplit("/", 1)[-1]))
    return False


def is_builtin_test_name(path: str) -> bool:
    """True for file names following a common test naming convention."""
    base = path.rsplit("/", 1)[-1]
    if base.endswith(BUILTIN_TEST_SUFFIXES):
        return True
    return base.endswith(".py") and base.startswith(BUILTIN_TEST_PREFIXES)


def is_test_path(path: str, patterns: Iterable[str]) -> bool:
    """True if path matches a configured test glob or a built-in convention."""
    if any(matches_glob(path, p) for p in patterns):
        return True
    return is_builtin_test_name(path)


class FileClassifier:
    """
    Maps repository paths to stage labels.

    Args:
        test_patterns: Configured test globs (testing.patterns.files).
        root: Project root; absolute paths under it are made relative.
    """

    def __init__(self, test_patterns: Iterable[str], root: Optional[str | Path] = None) -> None:
        self.test_patterns = list(test_patterns)
        self.root = root

    def normalize(self, path: str | Path) -> str:
        return relative_to_root(path, self.root)

    def classify(self, path: str | Path) -> StageLabel:
        """Label a path; the first matching rule wins."""
        rel = self.normalize(path)

        if rel.startswith(".ptsd/docs/"):
            return StageLabel.PRD
        if rel.startswith(".ptsd/seeds/"):
            return StageLabel.SEED
        if rel.startswith(".ptsd/bdd/"):
            return StageLabel.BDD
        if rel == ".ptsd/tasks.yaml":
            return StageLabel.TASK
        if rel in _STATUS_FILES or rel.startswith(_STATUS_PREFIXES):
            return StageLabel.STATUS

        if is_test_path(rel, self.test_patterns):
            return StageLabel.TEST

        return StageLabel.IMPL


def classify(path: str | Path, test_patterns: Iterable[str] = (), root: Optional[str | Path] = None) -> StageLabel:
    """Convenience wrapper around FileClassifier.classify."""
    return FileClassifier(test_patterns, root).classify(path)
