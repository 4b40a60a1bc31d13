"""
Invocation of the project's configured test runner.

The runner is a shell command (testing.runner). It is awaited without a
timeout, its combined output is captured, and TAP lines in that output
are counted. The exit status and TAP failures decide the test status
recorded in state.yaml.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from typing import Optional

from ptsd.errors import ConfigError, StoreIOError, TestRunError, ValidationError
from ptsd.models import FeatureState
from ptsd.store import ProjectStore

PASSING = "passing"
FAILING = "failing"


@dataclass
class TestResults:
    """Outcome of one runner invocation."""
    __test__ = False

    total: int = 0
    passed: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)
    exit_code: int = 0
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.failed == 0

    @property
    def status(self) -> str:
        return PASSING if self.ok else FAILING

    def summary(self) -> str:
        return f"{self.passed}/{self.total} passed, {self.failed} failed (exit {self.exit_code})"

    def raise_for_status(self) -> None:
        """
        Raises:
            TestRunError: The runner exited non-zero or reported failures.
        """
        if not self.ok:
            raise TestRunError(f"tests failed: {self.summary()}")


def parse_tap(output: str) -> TestResults:
    """Count ``ok``/``not ok`` lines and collect ``# Failed at`` locations."""
    results = TestResults(output=output)
    for line in output.splitlines():
        text = line.strip()
        if text.startswith("not ok"):
            results.total += 1
            results.failed += 1
        elif text.startswith("ok ") or text == "ok":
            results.total += 1
            results.passed += 1
        elif text.startswith("# Failed at "):
            results.failures.append(text[len("# Failed at "):])
    return results


class TestRunner:
    """Runs testing.runner and records the resulting test status."""

    __test__ = False

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        if self.store.logger:
            self.store.logger.log(event_type, data, level=level)

    def run(self, feature_id: Optional[str] = None) -> TestResults:
        """
        Run the configured command and record test_status.

        Args:
            feature_id: Record the status for this feature only. Without it,
                every feature that has test mappings is updated.

        Raises:
            ConfigError: No runner configured.
            ValidationError: feature_id is not declared.
            StoreIOError: The shell could not be started.
        """
        runner = self.store.config.testing.runner
        if not runner:
            raise ConfigError("no test runner configured (set testing.runner in ptsd.yaml)")
        if feature_id is not None and self.store.get_feature(feature_id) is None:
            raise ValidationError(f"feature {feature_id} not found")

        self._log("tests_started", {"runner": runner, "feature": feature_id or ""})
        try:
            proc = subprocess.run(
                ["sh", "-c", runner],
                cwd=str(self.store.root),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise StoreIOError(f"cannot start test runner: {e}")

        # stdout may end without a newline; keep its last line apart from stderr
        results = parse_tap(proc.stdout + "\n" + proc.stderr)
        results.exit_code = proc.returncode

        state = self.store.load_state()
        if feature_id is not None:
            targets = [feature_id]
        else:
            targets = [fid for fid, fs in state.items() if fs.tests]
        for fid in targets:
            fs = state.get(fid) or FeatureState()
            fs.test_status = results.status
            state[fid] = fs
        if targets:
            self.store.save_state(state)

        self._log("tests_finished", {
            "total": results.total,
            "passed": results.passed,
            "failed": results.failed,
            "exit_code": results.exit_code,
        }, level="info" if results.ok else "warn")
        return results
