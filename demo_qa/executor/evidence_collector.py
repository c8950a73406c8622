"""Evidence collector — failure screenshots and browser console output for one case."""

from __future__ import annotations

import logging
from pathlib import Path

from playwright.async_api import ConsoleMessage, Page
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)


class EvidenceCollector:
    """Writes a case's evidence under its own directory of the run."""

    def __init__(self, evidence_dir: Path):
        self.evidence_dir = evidence_dir
        self.evidence_dir.mkdir(parents=True, exist_ok=True)
        self.console_logs: list[str] = []
        self._shots = 0

    def _on_console(self, msg: ConsoleMessage) -> None:
        self.console_logs.append(f"[{msg.type}] {msg.text}")

    def _on_page_error(self, error) -> None:
        self.console_logs.append(f"[pageerror] {error}")

    def setup_listeners(self, page: Page) -> None:
        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)

    async def take_screenshot(self, page: Page, label: str = "") -> str:
        """Save a full-page screenshot. Returns its path, or "" if the page could not be captured."""
        self._shots += 1
        stem = "_".join(part for part in ("screenshot", label, str(self._shots)) if part)
        path = self.evidence_dir / f"{stem}.png"
        try:
            await page.screenshot(path=str(path), full_page=True)
        except PlaywrightError as e:
            logger.warning("Screenshot %s failed: %s", path.name, e)
            return ""
        return str(path)

    def save_logs(self) -> None:
        (self.evidence_dir / "console.log").write_text("\n".join(self.console_logs))
