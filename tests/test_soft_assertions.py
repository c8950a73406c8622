"""Tests for the soft assertion collector and failure taxonomy."""

import pytest

from demo_qa.executor.errors import HardAssertionError, SoftAssertionFailures, StepTimeoutError
from demo_qa.executor.soft_assertions import SoftAssertionCollector
from demo_qa.models.test_result import AssertionResult


def _result(selector: str, passed: bool, expected="visible", actual="not found") -> AssertionResult:
    return AssertionResult(
        assertion_type="element_visible", selector=selector, soft=True, passed=passed,
        expected=None if passed else expected, actual=None if passed else actual,
    )


class TestSoftAssertionCollector:
    def test_empty_collector_has_no_failures(self):
        collector = SoftAssertionCollector()
        assert collector.has_failures is False
        collector.raise_if_failed()

    def test_records_all_results(self):
        collector = SoftAssertionCollector()
        collector.record(_result("a", True))
        collector.record(_result("b", False))
        assert len(collector.results) == 2
        assert [r.selector for r in collector.failures] == ["b"]

    def test_raise_lists_every_failure(self):
        collector = SoftAssertionCollector()
        for selector, passed in [("a", True), ("b", False), ("c", True), ("d", False), ("e", True)]:
            collector.record(_result(selector, passed))

        with pytest.raises(SoftAssertionFailures) as exc_info:
            collector.raise_if_failed()

        assert [r.selector for r in exc_info.value.results] == ["b", "d"]
        message = str(exc_info.value)
        assert message.startswith("2 soft assertion(s) failed")
        assert "element_visible b" in message
        assert "element_visible d" in message

    def test_collectors_are_independent(self):
        first, second = SoftAssertionCollector(), SoftAssertionCollector()
        first.record(_result("a", False))
        assert second.has_failures is False


class TestErrors:
    def test_hard_assertion_message_has_expected_and_actual(self):
        error = HardAssertionError(_result("#username", False))
        assert "expected 'visible', got 'not found'" in str(error)
        assert error.failure_kind == "hard_assertion"
        assert isinstance(error, AssertionError)

    def test_step_timeout_without_selector(self):
        error = StepTimeoutError("navigate", None, 30000)
        assert str(error) == "navigate timed out after 30000ms"
