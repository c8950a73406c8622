"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image
from playwright.async_api import Page

from demo_qa.models.config import (
    BrowserEntry,
    DeviceEntry,
    FrameworkConfig,
    ViewportConfig,
    VisualConfig,
)
from demo_qa.models.test_plan import Action, Assertion, Checkpoint, Step, TestCase, TestSuite
from demo_qa.models.test_result import MatrixResult
from demo_qa.visual.matrix import MatrixEntry


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def visual_config(tmp_path: Path) -> VisualConfig:
    """Create a visual config with a five-entry matrix."""
    return VisualConfig(
        batch_name="Test Batch",
        test_concurrency=2,
        browsers=[
            BrowserEntry(width=800, height=600, browser_type="chrome"),
            BrowserEntry(width=700, height=500, browser_type="firefox"),
            BrowserEntry(width=1600, height=1200, browser_type="ie11"),
        ],
        devices=[
            DeviceEntry(device_name="iPhone X", orientation="portrait"),
            DeviceEntry(device_name="iPad Pro", orientation="landscape"),
        ],
        baselines_dir=str(tmp_path / "baselines"),
    )


@pytest.fixture
def framework_config(visual_config: VisualConfig, tmp_path: Path) -> FrameworkConfig:
    """Create a test framework configuration."""
    return FrameworkConfig(
        base_url="https://bank.example.com",
        viewport=ViewportConfig(width=1600, height=1200),
        execution_mode="parallel",
        max_parallel_contexts=2,
        selector_timeout_seconds=2,
        navigation_timeout_seconds=5,
        assertion_timeout_seconds=1,
        visual=visual_config,
        report_output_dir=str(tmp_path / "reports"),
        runs_dir=str(tmp_path / "runs"),
        capture_failure_screenshots=False,
    )


@pytest.fixture
def temp_config_file(framework_config: FrameworkConfig, tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_file = tmp_path / "demo-qa.json"
    framework_config.save(config_file)
    return config_file


# ============================================================================
# Test Plan Helpers
# ============================================================================


def action_step(action_type: str, selector: str | None = None, value: str | None = None) -> Step:
    return Step(action=Action(action_type=action_type, selector=selector, value=value))


def assertion_step(selector: str, soft: bool = False, assertion_type: str = "element_visible", **kwargs) -> Step:
    return Step(assertion=Assertion(assertion_type=assertion_type, selector=selector, soft=soft, **kwargs))


def checkpoint_step(label: str, match_level: str = "strict") -> Step:
    return Step(checkpoint=Checkpoint(label=label, match_level=match_level))


def make_test_case(test_id: str = "tc_001", steps: list[Step] | None = None,
                   category: str = "functional") -> TestCase:
    return TestCase(
        test_id=test_id,
        name=f"Test {test_id}",
        category=category,
        visual_test_name="Login" if category == "visual" else "",
        steps=steps if steps is not None else [action_step("open_site")],
    )


def make_suite(test_cases: list[TestCase], execution_mode: str | None = None) -> TestSuite:
    return TestSuite(suite_id="suite", name="Suite", execution_mode=execution_mode, test_cases=test_cases)


# ============================================================================
# Playwright Mock Fixtures
# ============================================================================


def make_locator(texts: list[str] | None = None, count: int | None = None) -> Mock:
    """Create a mock Playwright locator resolving to the given texts."""
    texts = texts or []
    locator = Mock()
    locator.count = AsyncMock(return_value=len(texts) if count is None else count)
    locator.all_text_contents = AsyncMock(return_value=list(texts))
    locator.first = Mock()
    locator.first.wait_for = AsyncMock()
    locator.first.screenshot = AsyncMock()
    return locator


def make_expect(failing: bool = False) -> Mock:
    """Stand-in for ``playwright.async_api.expect``; every matcher passes or fails."""
    matchers = Mock()
    for name in ("to_be_visible", "to_have_count", "to_have_text", "to_contain_text"):
        side_effect = AssertionError(f"Locator {name} failed") if failing else None
        setattr(matchers, name, AsyncMock(side_effect=side_effect))
    return Mock(return_value=matchers)


def make_mock_page(url: str = "https://bank.example.com/") -> AsyncMock:
    """Create a mock page whose sync API members are plain mocks."""
    page = AsyncMock(spec=Page)
    page.url = url
    page.on = Mock()
    page.set_default_timeout = Mock()
    page.locator = Mock(return_value=make_locator())
    page.content.return_value = "<html><body>demo</body></html>"
    page.goto.return_value = Mock(status=200)
    return page


def make_mock_context(page=None) -> AsyncMock:
    ctx = AsyncMock()
    ctx.new_page = AsyncMock(return_value=page or make_mock_page())
    return ctx


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    return make_mock_page()


@pytest.fixture
def temp_evidence_dir(tmp_path: Path) -> Path:
    """Create a temporary evidence directory."""
    evidence_dir = tmp_path / "evidence"
    evidence_dir.mkdir()
    return evidence_dir


# ============================================================================
# Visual Fixtures
# ============================================================================


class FakeGridService:
    """In-memory stand-in for VisualGridService."""

    def __init__(self, matrix: list[MatrixEntry], status: str = "passed", batch_name: str = "Test Batch"):
        self.matrix = matrix
        self.status = status
        self.batch_name = batch_name
        self.rendered: list[tuple[str, str]] = []
        self.close = AsyncMock()

    def base_result(self, request, entry) -> MatrixResult:
        return MatrixResult(
            app_name=request.app_name,
            test_name=request.test_name,
            checkpoint=request.checkpoint.label,
            batch_name=self.batch_name,
            matrix_key=entry.key,
            renderer=entry.renderer,
            match_level=request.checkpoint.match_level,
        )

    async def render(self, request, entry) -> MatrixResult:
        self.rendered.append((request.checkpoint.label, entry.key))
        result = self.base_result(request, entry)
        result.status = self.status
        return result


# Subset of Playwright's device registry used by the matrix.
DEVICE_DESCRIPTORS = {
    "iPhone X": {
        "user_agent": "Mozilla/5.0 (iPhone)",
        "viewport": {"width": 375, "height": 812},
        "screen": {"width": 375, "height": 812},
        "device_scale_factor": 3,
        "is_mobile": True,
        "has_touch": True,
        "default_browser_type": "webkit",
    },
    "iPad Pro 11": {
        "user_agent": "Mozilla/5.0 (iPad)",
        "viewport": {"width": 834, "height": 1194},
        "screen": {"width": 834, "height": 1194},
        "device_scale_factor": 2,
        "is_mobile": True,
        "has_touch": True,
        "default_browser_type": "webkit",
    },
}


@pytest.fixture
def five_entry_matrix() -> list[MatrixEntry]:
    return [
        MatrixEntry(renderer="chrome", width=800, height=600),
        MatrixEntry(renderer="firefox", width=700, height=500),
        MatrixEntry(renderer="safari", width=800, height=600),
        MatrixEntry(renderer="iPhone X", device_name="iPhone X", orientation="portrait"),
        MatrixEntry(renderer="iPad Pro", device_name="iPad Pro", orientation="landscape"),
    ]


@pytest.fixture
def fake_grid_service(five_entry_matrix) -> FakeGridService:
    return FakeGridService(five_entry_matrix)


def write_image(path: Path, size=(64, 64), color=(255, 255, 255), box=None, box_color=(0, 0, 0)) -> Path:
    """Write a solid PNG, optionally with a filled rectangle."""
    image = Image.new("RGB", size, color)
    if box:
        image.paste(box_color, box)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path)
    return path
