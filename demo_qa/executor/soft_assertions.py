"""Per-case collector for soft assertion outcomes."""

from __future__ import annotations

import logging

from demo_qa.models.test_result import AssertionResult

from .errors import SoftAssertionFailures

logger = logging.getLogger(__name__)


class SoftAssertionCollector:
    """Records soft assertion results for one test case.

    Owned by the case context; checked once at finalization.
    """

    def __init__(self) -> None:
        self.results: list[AssertionResult] = []

    def record(self, result: AssertionResult) -> None:
        self.results.append(result)
        if not result.passed:
            logger.debug("Soft assertion failed: %s", result.describe())

    @property
    def failures(self) -> list[AssertionResult]:
        return [r for r in self.results if not r.passed]

    @property
    def has_failures(self) -> bool:
        return any(not r.passed for r in self.results)

    def raise_if_failed(self) -> None:
        failures = self.failures
        if failures:
            raise SoftAssertionFailures(failures)
