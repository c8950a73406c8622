"""Browser utilities — engine launch and isolated context creation."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

DEFAULT_LOCALE = "en-US"
DEFAULT_TIMEZONE = "America/New_York"


async def launch_browser(playwright: Playwright, engine: str = "chromium", headless: bool = True) -> Browser:
    """Launch one of Playwright's browser engines (chromium, firefox, webkit)."""
    browser_type = getattr(playwright, engine, None)
    if browser_type is None:
        raise ValueError(f"Unknown browser engine: {engine}")
    return await browser_type.launch(headless=headless)


async def create_context(
    browser: Browser,
    viewport: Optional[dict] = None,
    device: Optional[dict] = None,
) -> BrowserContext:
    """Create a fresh, isolated browser context.

    Args:
        viewport: ``{"width": ..., "height": ...}`` for desktop contexts.
        device: A Playwright device descriptor (``playwright.devices[name]``)
            without its ``default_browser_type`` key. Takes precedence over
            ``viewport`` for everything it defines.
    """
    context_kwargs: dict = {
        "locale": DEFAULT_LOCALE,
        "timezone_id": DEFAULT_TIMEZONE,
    }
    if viewport:
        context_kwargs["viewport"] = viewport
    if device:
        context_kwargs.update(device)

    return await browser.new_context(**context_kwargs)
