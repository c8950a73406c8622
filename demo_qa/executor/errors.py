"""Failure taxonomy raised while running a test case."""

from __future__ import annotations

from demo_qa.models.test_result import AssertionResult, MatrixResult


class HarnessError(Exception):
    """Base class for all harness failures."""

    failure_kind = "error"


class InfrastructureError(HarnessError):
    """Setup or teardown of a case could not be completed."""

    failure_kind = "infrastructure"


class StepTimeoutError(HarnessError):
    """A locator or navigation wait exceeded its bound."""

    failure_kind = "timeout"

    def __init__(self, action: str, selector: str | None, timeout_ms: int):
        self.action = action
        self.selector = selector
        self.timeout_ms = timeout_ms
        target = f" on '{selector}'" if selector else ""
        super().__init__(f"{action}{target} timed out after {timeout_ms}ms")


class NavigationError(HarnessError):
    """The page could not be loaded."""

    failure_kind = "navigation"

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load {url}: {reason}")


class HardAssertionError(HarnessError, AssertionError):
    failure_kind = "hard_assertion"

    def __init__(self, result: AssertionResult):
        self.result = result
        super().__init__(result.describe())


class SoftAssertionFailures(HarnessError, AssertionError):
    """Raised at finalization when any soft assertion failed."""

    failure_kind = "soft_assertion"

    def __init__(self, results: list[AssertionResult]):
        self.results = results
        lines = [r.describe() for r in results]
        super().__init__(f"{len(results)} soft assertion(s) failed: " + "; ".join(lines))


class VisualDiffError(HarnessError):
    failure_kind = "visual_diff"

    def __init__(self, results: list[MatrixResult]):
        self.results = results
        names = ", ".join(f"{r.checkpoint} [{r.matrix_key}]" for r in results)
        super().__init__(f"{len(results)} visual difference(s): {names}")
