"""Visual grid — fans checkpoints out across the browser/device matrix.

Three objects cooperate:

* ``VisualGridService`` is shared by every case of a run. It owns the
  rendering browsers, the baseline registry and the concurrency limit
  (``VisualConfig.test_concurrency``).
* ``VisualGridRunner`` is created per case and collects the verdicts of the
  sessions registered with it.
* ``VisualSession`` is the per-case handle: ``open`` → ``check``… → ``close``,
  with ``abort`` as the teardown path.

``check`` snapshots the page DOM and queues one render task per matrix entry,
then returns. Each task replays the snapshot in a fresh context for its entry,
captures it and compares it with the stored baseline. Verdicts are only
collected by ``VisualGridRunner.get_all_test_results``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, Page, Playwright
from playwright.async_api import Error as PlaywrightError

from demo_qa.executor.errors import VisualDiffError
from demo_qa.models.config import VisualConfig
from demo_qa.models.test_plan import Checkpoint
from demo_qa.models.test_result import MatrixResult, VisualResultsSummary
from demo_qa.utils.browser import create_context, launch_browser

from .baseline_registry import VisualBaselineRegistryManager
from .comparator import compare_images
from .matrix import MatrixEntry, build_matrix, engine_for, resolve_device

logger = logging.getLogger(__name__)


class CaptureRequest:
    """DOM snapshot submitted by one ``check`` call."""

    def __init__(self, app_name: str, test_name: str, checkpoint: Checkpoint, url: str, html: str):
        self.app_name = app_name
        self.test_name = test_name
        self.checkpoint = checkpoint
        self.url = url
        self.html = html


class VisualGridService:
    """Renders snapshots per matrix entry and judges them against baselines."""

    def __init__(
        self,
        playwright: Playwright,
        config: VisualConfig,
        output_dir: Path,
        run_id: str,
        headless: bool = True,
    ):
        self.playwright = playwright
        self.config = config
        self.batch_name = config.batch_name
        self.matrix = build_matrix(config)
        self.output_dir = output_dir
        self.run_id = run_id
        self.headless = headless
        self.baselines = VisualBaselineRegistryManager(Path(config.baselines_dir))
        self.registry = self.baselines.load()
        self._semaphore = asyncio.Semaphore(config.test_concurrency)
        self._browsers: dict[str, Browser] = {}
        self._launch_lock = asyncio.Lock()

    def base_result(self, request: CaptureRequest, entry: MatrixEntry) -> MatrixResult:
        return MatrixResult(
            app_name=request.app_name,
            test_name=request.test_name,
            checkpoint=request.checkpoint.label,
            batch_name=self.batch_name,
            matrix_key=entry.key,
            renderer=entry.renderer,
            width=entry.width,
            height=entry.height,
            device_name=entry.device_name,
            orientation=entry.orientation,
            match_level=request.checkpoint.match_level,
        )

    async def _browser(self, engine: str) -> Browser:
        async with self._launch_lock:
            if engine not in self._browsers:
                logger.debug("Launching %s for visual rendering", engine)
                self._browsers[engine] = await launch_browser(self.playwright, engine, headless=self.headless)
            return self._browsers[engine]

    async def render(self, request: CaptureRequest, entry: MatrixEntry) -> MatrixResult:
        """Render one checkpoint on one matrix entry and return its verdict."""
        result = self.base_result(request, entry)

        device: Optional[dict] = None
        viewport: Optional[dict] = None
        if entry.is_device:
            engine, device = resolve_device(self.playwright.devices, entry)
            result.width = device["viewport"]["width"]
            result.height = device["viewport"]["height"]
        else:
            engine = engine_for(entry)
            viewport = {"width": entry.width, "height": entry.height}
        if engine is None:
            result.message = f"No local renderer available for '{entry.renderer}'"
            return result

        key = VisualBaselineRegistryManager.baseline_key(
            request.app_name, request.test_name, request.checkpoint.label, entry.key)
        image_path = self.output_dir / f"{key}.png"
        async with self._semaphore:
            try:
                await self._capture(request, engine, viewport, device, image_path)
            except PlaywrightError as e:
                result.message = f"Render failed: {e.message}"
                return result
        result.image_path = str(image_path)
        return await self._judge(result, key, image_path)

    async def _capture(
        self,
        request: CaptureRequest,
        engine: str,
        viewport: Optional[dict],
        device: Optional[dict],
        image_path: Path,
    ) -> None:
        browser = await self._browser(engine)
        context = await create_context(browser, viewport=viewport, device=device)
        try:
            page = await context.new_page()
            # Serve the captured DOM at its original URL so relative assets resolve.
            await page.route(request.url, lambda route: route.fulfill(
                status=200, content_type="text/html", body=request.html,
            ))
            await page.goto(request.url, wait_until="load")
            image_path.parent.mkdir(parents=True, exist_ok=True)
            checkpoint = request.checkpoint
            if checkpoint.target == "region":
                await page.locator(checkpoint.selector).first.screenshot(path=str(image_path))
            else:
                await page.screenshot(path=str(image_path), full_page=checkpoint.fully)
        finally:
            await context.close()

    async def _judge(self, result: MatrixResult, key: str, image_path: Path) -> MatrixResult:
        entry = self.baselines.get_baseline(self.registry, key)
        if entry is None:
            result.status = "new"
            result.message = "No baseline found"
            if self.config.save_new_baselines:
                stored = self.baselines.store_baseline(
                    self.registry, key, result.app_name, result.test_name, result.checkpoint,
                    result.matrix_key, result.width, result.height, image_path, self.run_id,
                )
                result.baseline_path = str(self.baselines.get_baseline_image_path(stored))
                result.message = "No baseline; capture stored as new baseline"
            return result

        baseline_path = self.baselines.get_baseline_image_path(entry)
        result.baseline_path = str(baseline_path)
        comparison = await asyncio.to_thread(
            compare_images, baseline_path, image_path, result.match_level,
            self.config.diff_tolerance, self.config.layout_tolerance,
        )
        result.status = "passed" if comparison.passed else "failed"
        result.diff_ratio = round(comparison.diff_ratio, 6)
        result.message = comparison.message
        return result

    async def close(self) -> None:
        """Close rendering browsers and persist new baselines."""
        for engine, browser in self._browsers.items():
            logger.debug("Closing %s renderer", engine)
            await browser.close()
        self._browsers.clear()
        self.baselines.save(self.registry)


class VisualSession:
    """Per-case visual session: open, check, close, abort."""

    def __init__(self, runner: VisualGridRunner):
        self.runner = runner
        self.session_id = f"vs_{uuid.uuid4().hex[:8]}"
        self.app_name = ""
        self.test_name = ""
        self.is_open = False
        self.is_closed = False
        self.is_aborted = False
        self._page: Page | None = None
        self._pending: list[tuple[CaptureRequest, MatrixEntry, asyncio.Task]] = []

    async def open(self, page: Page, app_name: str, test_name: str) -> None:
        if self.is_open or self.is_closed:
            raise RuntimeError(f"Visual session {self.session_id} was already opened")
        self._page = page
        self.app_name = app_name
        self.test_name = test_name
        self.is_open = True
        self.runner.register(self)
        logger.debug("Opened visual session %s: %s / %s", self.session_id, app_name, test_name)

    async def check(self, checkpoint: Checkpoint) -> None:
        """Snapshot the page and queue one render per matrix entry."""
        if not self.is_open:
            raise RuntimeError("check() called on a visual session that is not open")
        html = await self._page.content()
        request = CaptureRequest(self.app_name, self.test_name, checkpoint, self._page.url, html)
        service = self.runner.service
        for entry in service.matrix:
            task = asyncio.create_task(service.render(request, entry))
            self._pending.append((request, entry, task))
        logger.debug("Queued checkpoint '%s' on %d matrix entries", checkpoint.label, len(service.matrix))

    async def close(self, raise_on_diff: bool = True) -> None:
        """End the session.

        With ``raise_on_diff`` the verdicts of this session are awaited and a
        ``VisualDiffError`` is raised if any failed. Otherwise the verdicts
        are left for ``VisualGridRunner.get_all_test_results``.
        """
        if not self.is_open:
            raise RuntimeError("close() called on a visual session that is not open")
        self.is_open = False
        self.is_closed = True
        if raise_on_diff:
            failed = [r for r in await self.results() if r.status == "failed"]
            if failed:
                raise VisualDiffError(failed)

    async def abort(self) -> None:
        """Cancel pending renders of a session that was not closed."""
        if self.is_closed or self.is_aborted:
            return
        self.is_open = False
        self.is_aborted = True
        cancelled = 0
        for _, _, task in self._pending:
            if not task.done():
                task.cancel()
                cancelled += 1
        logger.debug("Aborted visual session %s (%d renders cancelled)", self.session_id, cancelled)

    async def results(self) -> list[MatrixResult]:
        """Wait for every queued render and return its verdict."""
        tasks = [task for _, _, task in self._pending]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        results = []
        for (request, entry, _), outcome in zip(self._pending, outcomes):
            if isinstance(outcome, MatrixResult):
                results.append(outcome)
                continue
            result = self.runner.service.base_result(request, entry)
            if isinstance(outcome, asyncio.CancelledError):
                result.message = "Session aborted before the render completed"
            else:
                logger.warning("Render of '%s' on %s failed: %s", request.checkpoint.label, entry.key, outcome)
                result.message = f"Render error: {outcome}"
            results.append(result)
        return results


class VisualGridRunner:
    """Collects verdicts for the sessions of one test case."""

    def __init__(self, service: VisualGridService):
        self.service = service
        self._sessions: list[VisualSession] = []

    def register(self, session: VisualSession) -> None:
        self._sessions.append(session)

    async def get_all_test_results(self, raise_on_diff: bool = True) -> VisualResultsSummary:
        """Block until every verdict is resolved and return them all."""
        results: list[MatrixResult] = []
        for session in self._sessions:
            results.extend(await session.results())
        summary = VisualResultsSummary(batch_name=self.service.batch_name, results=results)
        if raise_on_diff:
            failed = [r for r in results if r.status == "failed"]
            if failed:
                raise VisualDiffError(failed)
        return summary
