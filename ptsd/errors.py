"""
Error categories for ptsd.

Errors are categorized, not typed per failure: every failure raised by the
pipeline engine is a PtsdError carrying one of six categories, and each
category maps to a fixed process exit code.

- user: bad CLI usage or argument values
- config: missing or malformed project configuration / documents
- validation: a single well-defined precondition failed (duplicate ID,
  not found, invalid enum value)
- pipeline: a multi-step ordering or gate rule failed
- io: filesystem access failure
- test: the external test runner reported failures
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(Enum):
    """Category of a ptsd failure."""

    USER = "user"
    CONFIG = "config"
    VALIDATION = "validation"
    PIPELINE = "pipeline"
    IO = "io"
    TEST = "test"


EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 1,
    ErrorCategory.PIPELINE: 1,
    ErrorCategory.USER: 2,
    ErrorCategory.CONFIG: 3,
    ErrorCategory.IO: 4,
    ErrorCategory.TEST: 5,
}


class PtsdError(Exception):
    """
    Base exception for all categorized ptsd failures.

    Subclasses only fix the category; the message is what gets rendered.
    """

    category: ErrorCategory = ErrorCategory.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def exit_code(self) -> int:
        """Process exit code for this error's category."""
        return EXIT_CODES[self.category]

    def render(self) -> str:
        """Terse machine-readable form: ``err:<category> <message>``."""
        return f"err:{self.category.value} {self.message}"


class UserError(PtsdError):
    """Raised on bad CLI usage or invalid argument values."""

    category = ErrorCategory.USER


class ConfigError(PtsdError):
    """Raised when configuration is missing, invalid, or cannot be parsed."""

    category = ErrorCategory.CONFIG


class ValidationError(PtsdError):
    """Raised when a single precondition fails (duplicate, not found, bad enum)."""

    category = ErrorCategory.VALIDATION


class PipelineError(PtsdError):
    """Raised when a stage ordering or gate rule fails."""

    category = ErrorCategory.PIPELINE


class StoreIOError(PtsdError):
    """Raised when a required file cannot be read or written."""

    category = ErrorCategory.IO


class TestRunError(PtsdError):
    """Raised when the configured test runner reports failures."""

    __test__ = False
    category = ErrorCategory.TEST
