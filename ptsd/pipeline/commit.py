"""
Commit message validation.

Messages look like ``[SCOPE] type: text``. The scope must agree with the
label of every staged file, so a commit touches one pipeline stage at a
time. TASK and STATUS commits are bookkeeping and skip the file check.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ptsd import git
from ptsd.errors import PipelineError, StoreIOError, ValidationError
from ptsd.pipeline.classifier import FileClassifier
from ptsd.pipeline.validator import PipelineValidator
from ptsd.store import ProjectStore

BOOKKEEPING_SCOPES = {"TASK", "STATUS"}
MISSING_SCOPE = "missing [SCOPE] in commit message"

_TYPE_RE = re.compile(r"^(?P<type>[A-Za-z][\w-]*)\s*:\s*(?P<text>.*)$", re.DOTALL)


@dataclass
class ParsedCommit:
    scope: str
    type: str                        # "" when the message has no "<type>:" prefix
    text: str


def strip_comments(message: str) -> str:
    """Drop git comment lines (starting with '#') and surrounding whitespace."""
    lines = [line for line in message.splitlines() if not line.startswith("#")]
    return "\n".join(lines).strip()


def parse_commit_message(message: str) -> ParsedCommit:
    """
    Split a cleaned commit message into scope, type and text.

    Raises:
        ValidationError: The message has no leading [SCOPE] (an empty message has none).
    """
    if not message.startswith("["):
        raise ValidationError(MISSING_SCOPE)
    end = message.find("]")
    if end == -1:
        raise ValidationError(MISSING_SCOPE)

    scope = message[1:end].strip()
    rest = message[end + 1:].strip()
    match = _TYPE_RE.match(rest)
    if match:
        return ParsedCommit(scope, match.group("type"), match.group("text").strip())
    return ParsedCommit(scope, "", rest)


class CommitScopeValidator:
    """Checks commit messages against the configured scopes and staged files."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store
        config = store.config
        self.scopes = list(config.hooks.scopes)
        self.types = list(config.hooks.types)
        self.classifier = FileClassifier(config.testing.patterns, store.root)

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        if self.store.logger:
            self.store.logger.log(event_type, data, level=level)

    def validate_commit(self, message: str, staged_files: Iterable[str]) -> ParsedCommit:
        """
        Validate a commit message against the files being committed.

        Returns:
            The parsed message when the commit is acceptable.

        Raises:
            ValidationError: Malformed message, unknown scope or type.
            PipelineError: A staged file belongs to another stage, or an IMPL
                commit while the pipeline has violations.
        """
        parsed = parse_commit_message(strip_comments(message))

        if parsed.scope not in self.scopes:
            raise ValidationError(f"unknown scope {parsed.scope}")
        if parsed.type and parsed.type not in self.types:
            raise ValidationError(
                f"invalid commit type {parsed.type!r}: must be {'|'.join(self.types)}"
            )

        if parsed.scope in BOOKKEEPING_SCOPES:
            return parsed

        for path in staged_files:
            label = self.classifier.classify(path)
            if label.value != parsed.scope:
                self._log("commit_rejected", {
                    "scope": parsed.scope,
                    "file": path,
                    "label": label.value,
                }, level="warn")
                raise PipelineError(
                    f"file {path} classified as {label.value} but scope is [{parsed.scope}]"
                )

        if parsed.scope == "IMPL":
            violations = PipelineValidator(self.store).validate()
            if violations:
                raise PipelineError(
                    "validation failed: " + "; ".join(v.render() for v in violations)
                )

        self._log("commit_accepted", {"scope": parsed.scope, "type": parsed.type})
        return parsed

    def validate_commit_file(self, msg_file: str | Path) -> ParsedCommit:
        """
        Validate the message file git hands to the commit-msg hook.

        Raises:
            StoreIOError: The message file cannot be read, or git fails.
            ValidationError: The file holds only comments or whitespace.
        """
        try:
            message = Path(msg_file).read_text(encoding="utf-8")
        except OSError as e:
            raise StoreIOError(f"cannot read commit message file: {e}")
        if not strip_comments(message):
            raise ValidationError("empty commit message")
        return self.validate_commit(message, git.staged_files(self.store.root))
