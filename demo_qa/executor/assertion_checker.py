"""Assertion checker — evaluates assertions against page state."""

from __future__ import annotations

import logging
import re

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page, expect

from demo_qa.models.test_plan import Assertion
from demo_qa.models.test_result import AssertionResult

logger = logging.getLogger(__name__)


def _result(assertion: Assertion, passed: bool, message: str = "",
            expected: str | None = None, actual: str | None = None,
            description: str | None = None) -> AssertionResult:
    return AssertionResult(
        assertion_type=assertion.assertion_type,
        selector=assertion.selector,
        description=description if description is not None else assertion.description,
        soft=assertion.soft,
        passed=passed,
        expected=expected,
        actual=actual,
        message=message,
    )


async def check_assertion(page: Page, assertion: Assertion, timeout: int = 5000) -> list[AssertionResult]:
    """Evaluate a single assertion.

    Most assertions produce one result. ``all_texts_in_set`` produces one
    result per observed item so every offending value is reported.
    """
    logger.debug("Checking assertion: %s on %s", assertion.assertion_type, assertion.selector)
    locator = page.locator(assertion.selector)
    try:
        match assertion.assertion_type:
            case "element_visible":
                return [await _check_element_visible(locator, assertion, timeout)]
            case "element_count":
                return [await _check_element_count(locator, assertion, timeout)]
            case "text_equals":
                return [await _check_text_equals(locator, assertion, timeout)]
            case "text_sequence":
                return [await _check_text_sequence(locator, assertion, timeout)]
            case "text_contains":
                return [await _check_text_contains(locator, assertion, timeout)]
            case "text_matches":
                return [await _check_text_matches(locator, assertion, timeout)]
            case "all_texts_in_set":
                return await _check_all_texts_in_set(locator, assertion, timeout)
            case _:
                return [_result(assertion, False, f"Unknown assertion type: {assertion.assertion_type}")]
    except PlaywrightError as e:
        return [_result(assertion, False, f"Assertion error: {e.message}")]


async def _describe_presence(locator: Locator) -> str:
    count = await locator.count()
    if count == 0:
        return "not found"
    if count > 1:
        return f"{count} matching elements"
    return "hidden"


async def _check_element_visible(locator: Locator, assertion: Assertion, timeout: int) -> AssertionResult:
    try:
        await expect(locator).to_be_visible(timeout=timeout)
    except (AssertionError, PlaywrightError):
        actual = await _describe_presence(locator)
        return _result(assertion, False, f"Element '{assertion.selector}' is {actual}",
                       expected="visible", actual=actual)
    return _result(assertion, True, f"Element '{assertion.selector}' is visible")


async def _check_element_count(locator: Locator, assertion: Assertion, timeout: int) -> AssertionResult:
    expected = int(assertion.expected_value)
    try:
        await expect(locator).to_have_count(expected, timeout=timeout)
    except AssertionError:
        actual = await locator.count()
        return _result(assertion, False, f"Expected {expected} elements, found {actual}",
                       expected=str(expected), actual=str(actual))
    return _result(assertion, True, f"Found {expected} elements")


async def _actual_text(locator: Locator) -> str:
    return " | ".join(await locator.all_text_contents())


async def _check_text_equals(locator: Locator, assertion: Assertion, timeout: int) -> AssertionResult:
    try:
        await expect(locator).to_have_text(assertion.expected_value, timeout=timeout)
    except AssertionError:
        actual = await _actual_text(locator)
        return _result(assertion, False, "Text mismatch",
                       expected=assertion.expected_value, actual=actual)
    return _result(assertion, True, "Text matches")


async def _check_text_sequence(locator: Locator, assertion: Assertion, timeout: int) -> AssertionResult:
    expected = list(assertion.expected_values)
    try:
        await expect(locator).to_have_text(expected, timeout=timeout)
    except AssertionError:
        actual = await locator.all_text_contents()
        if len(actual) != len(expected):
            message = f"Expected {len(expected)} items, found {len(actual)}"
        else:
            message = "Item text mismatch"
        return _result(assertion, False, message, expected=str(expected), actual=str(actual))
    return _result(assertion, True, f"All {len(expected)} items match")


async def _check_text_contains(locator: Locator, assertion: Assertion, timeout: int) -> AssertionResult:
    try:
        await expect(locator).to_contain_text(assertion.expected_value, timeout=timeout)
    except AssertionError:
        actual = await _actual_text(locator)
        return _result(assertion, False, f"'{assertion.expected_value}' not in text",
                       expected=assertion.expected_value, actual=actual)
    return _result(assertion, True, f"Found '{assertion.expected_value}'")


async def _check_text_matches(locator: Locator, assertion: Assertion, timeout: int) -> AssertionResult:
    pattern = re.compile(assertion.expected_value)
    try:
        await expect(locator).to_contain_text(pattern, timeout=timeout)
    except AssertionError:
        actual = await _actual_text(locator)
        return _result(assertion, False, "Pattern not matched",
                       expected=f"/{assertion.expected_value}/", actual=actual)
    return _result(assertion, True, f"Text matches /{assertion.expected_value}/")


async def _check_all_texts_in_set(locator: Locator, assertion: Assertion, timeout: int) -> list[AssertionResult]:
    allowed = set(assertion.expected_values)
    try:
        await locator.first.wait_for(state="attached", timeout=timeout)
    except PlaywrightError:
        logger.debug("No elements attached for %s within %dms", assertion.selector, timeout)

    observed = [text.strip() for text in await locator.all_text_contents()]
    if not observed:
        if assertion.allow_empty:
            return [_result(assertion, True, "No items observed")]
        return [_result(assertion, False, f"No data found for '{assertion.selector}'")]

    base = assertion.description or f"{assertion.assertion_type} {assertion.selector}"
    results = []
    for index, item in enumerate(observed):
        description = f"{base} [item {index}]"
        if item in allowed:
            results.append(_result(assertion, True, f"'{item}' allowed", description=description))
        else:
            results.append(_result(assertion, False, f"'{item}' not in allowed set",
                                   expected=f"one of {sorted(allowed)}", actual=item,
                                   description=description))
    return results
