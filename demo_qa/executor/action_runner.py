"""Action runner — translates Action models to Playwright calls."""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from demo_qa.models.test_plan import Action

from .errors import NavigationError, StepTimeoutError

logger = logging.getLogger(__name__)


def parse_viewport(value: str) -> dict[str, int]:
    """Parse ``WIDTHxHEIGHT`` into a Playwright viewport dict."""
    try:
        width, height = (int(part) for part in value.lower().split("x", 1))
    except ValueError:
        raise ValueError(f"Invalid viewport '{value}', expected WIDTHxHEIGHT") from None
    return {"width": width, "height": height}


async def _navigate(page: Page, url: str, timeout: int) -> None:
    logger.debug("Navigating to %s...", url)
    try:
        response = await page.goto(url, wait_until="load", timeout=timeout)
    except PlaywrightTimeoutError:
        raise StepTimeoutError("navigate", url, timeout) from None
    except PlaywrightError as e:
        raise NavigationError(url, e.message) from e
    if response is not None and response.status >= 400:
        raise NavigationError(url, f"HTTP {response.status}")


async def run_action(
    page: Page,
    action: Action,
    site_url: str = "",
    timeout: int = 10000,
    navigation_timeout: int = 30000,
) -> None:
    """Execute a single action on the Playwright page.

    Args:
        page: Playwright page instance.
        action: The action to execute.
        site_url: URL selected for this case by the site variant switch.
        timeout: Selector timeout in milliseconds.
        navigation_timeout: Page load timeout in milliseconds.
    """
    logger.debug("Running action: %s | selector=%s | %s",
                 action.action_type, action.selector, action.description or "")

    try:
        match action.action_type:
            case "navigate":
                url = action.value or action.selector or ""
                if not url:
                    raise ValueError("navigate action requires a URL value")
                await _navigate(page, url, navigation_timeout)

            case "open_site":
                if not site_url:
                    raise ValueError("open_site action requires a resolved site URL")
                await _navigate(page, site_url, navigation_timeout)

            case "set_viewport":
                viewport = parse_viewport(action.value or "")
                logger.debug("Setting viewport to %dx%d", viewport["width"], viewport["height"])
                await page.set_viewport_size(viewport)

            case "fill":
                if not action.selector:
                    raise ValueError("fill action requires a selector")
                logger.debug("Filling %s with '%s'", action.selector,
                             "***" if "password" in action.selector.lower() else action.value)
                await page.fill(action.selector, action.value or "", timeout=timeout)

            case "click":
                if not action.selector:
                    raise ValueError("click action requires a selector")
                logger.debug("Clicking: %s", action.selector)
                await page.click(action.selector, timeout=timeout)

            case "wait":
                if action.selector:
                    logger.debug("Waiting for selector: %s", action.selector)
                    await page.wait_for_selector(action.selector, state="visible", timeout=timeout)
                else:
                    delay = int(action.value or 1000)
                    logger.debug("Waiting %dms...", delay)
                    await page.wait_for_timeout(delay)

            case "keyboard":
                key = action.value or "Enter"
                logger.debug("Pressing key: %s", key)
                await page.keyboard.press(key)

    except PlaywrightTimeoutError:
        raise StepTimeoutError(action.action_type, action.selector, timeout) from None
