"""Tests for the evidence collector module."""

from unittest.mock import AsyncMock, Mock

import pytest
from playwright.async_api import Error as PlaywrightError

from demo_qa.executor.evidence_collector import EvidenceCollector


def _listening_page(collector: EvidenceCollector) -> dict:
    callbacks = {}
    page = Mock()
    page.on = Mock(side_effect=lambda event, cb: callbacks.update({event: cb}))
    collector.setup_listeners(page)
    return callbacks


class TestEvidenceCollector:
    def test_creates_evidence_dir(self, tmp_path):
        evidence_dir = tmp_path / "evidence" / "functional_login"
        EvidenceCollector(evidence_dir)
        assert evidence_dir.exists()

    def test_captures_console_messages(self, temp_evidence_dir):
        collector = EvidenceCollector(temp_evidence_dir)
        callbacks = _listening_page(collector)

        callbacks["console"](Mock(type="error", text="Uncaught TypeError: x is not a function"))
        callbacks["console"](Mock(type="warning", text="Deprecated API usage"))

        assert collector.console_logs == [
            "[error] Uncaught TypeError: x is not a function",
            "[warning] Deprecated API usage",
        ]

    def test_captures_page_errors(self, temp_evidence_dir):
        collector = EvidenceCollector(temp_evidence_dir)
        callbacks = _listening_page(collector)

        callbacks["pageerror"]("ReferenceError: foo is not defined")

        assert collector.console_logs == ["[pageerror] ReferenceError: foo is not defined"]

    def test_save_logs(self, temp_evidence_dir):
        collector = EvidenceCollector(temp_evidence_dir)
        collector.console_logs = ["[log] one", "[log] two"]
        collector.save_logs()
        assert (temp_evidence_dir / "console.log").read_text() == "[log] one\n[log] two"


@pytest.mark.asyncio
class TestTakeScreenshot:
    async def test_screenshot_path_and_counter(self, temp_evidence_dir):
        collector = EvidenceCollector(temp_evidence_dir)
        page = AsyncMock()

        first = await collector.take_screenshot(page, "failure")
        second = await collector.take_screenshot(page)

        assert first.endswith("screenshot_failure_1.png")
        assert second.endswith("screenshot_2.png")
        page.screenshot.assert_awaited_with(path=second, full_page=True)

    async def test_screenshot_failure_returns_empty(self, temp_evidence_dir):
        collector = EvidenceCollector(temp_evidence_dir)
        page = AsyncMock()
        page.screenshot = AsyncMock(side_effect=PlaywrightError("Target closed"))

        assert await collector.take_screenshot(page, "failure") == ""
