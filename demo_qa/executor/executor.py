"""Test executor — runs test suites using Playwright."""

from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional

from playwright.async_api import BrowserContext, Page, async_playwright

from demo_qa.models.config import FrameworkConfig
from demo_qa.models.test_plan import Step, TestCase, TestSuite
from demo_qa.models.test_result import AssertionResult, MatrixResult, RunResult, StepResult, TestResult
from demo_qa.url_utils import build_site_url, resolve_site_variant
from demo_qa.utils.browser import create_context, launch_browser
from demo_qa.visual.grid import VisualGridRunner, VisualGridService, VisualSession

from .action_runner import run_action
from .assertion_checker import check_assertion
from .errors import (
    HardAssertionError,
    HarnessError,
    InfrastructureError,
    SoftAssertionFailures,
    StepTimeoutError,
)
from .evidence_collector import EvidenceCollector
from .soft_assertions import SoftAssertionCollector

logger = logging.getLogger(__name__)


class CaseContext:
    """State owned by one running test case."""

    def __init__(self, test_case: TestCase, evidence_dir: Path):
        self.test_case = test_case
        self.evidence = EvidenceCollector(evidence_dir)
        self.soft = SoftAssertionCollector()
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.site_url = ""
        self.visual_runner: Optional[VisualGridRunner] = None
        self.visual_session: Optional[VisualSession] = None
        self.step_results: list[StepResult] = []
        self.current_step: Optional[int] = None
        self.assertion_results: list[AssertionResult] = []
        self.visual_results: list[MatrixResult] = []
        self.screenshots: list[str] = []


CaseHook = Callable[[CaseContext], Awaitable[None]]


class Executor:
    """Runs test suites against a live site, one isolated browser context per case."""

    def __init__(
        self,
        config: FrameworkConfig,
        runs_dir: Path,
        setup_hooks: list[CaseHook] | None = None,
        teardown_hooks: list[CaseHook] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.config = config
        self.runs_dir = runs_dir
        self.run_id = f"run_{uuid.uuid4().hex[:8]}"
        self.run_dir = runs_dir / self.run_id
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.setup_hooks = list(setup_hooks or [])
        self.teardown_hooks = list(teardown_hooks or [])
        self.environ = environ if environ is not None else os.environ

    async def execute(self, suites: list[TestSuite]) -> RunResult:
        """Execute suites and return aggregated results.

        Every case gets its own browser context. At most ``concurrency_limit``
        contexts are open at once across all suites. Within a suite, a serial
        mode runs one case at a time; a serial config makes every suite serial.
        """
        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        start_time = time.time()
        total_tests = sum(len(s.test_cases) for s in suites)
        logger.info("Starting execution of %d suite(s) (%d tests)", len(suites), total_tests)

        async with async_playwright() as p:
            logger.debug("Launching %s for test execution...", self.config.browser)
            browser = await launch_browser(p, self.config.browser, headless=self.config.headless)

            visual_service: VisualGridService | None = None
            if any(tc.is_visual for s in suites for tc in s.test_cases):
                visual_service = VisualGridService(
                    p, self.config.visual, self.run_dir / "visual", self.run_id,
                    headless=self.config.headless,
                )

            # One pool of context slots for the whole run. A serial config
            # overrides a suite's own mode.
            run_serial = self.config.execution_mode == "serial"
            slots = asyncio.Semaphore(self.config.concurrency_limit)

            async def _run_suite(suite: TestSuite) -> list[TestResult]:
                mode = "serial" if run_serial else (suite.execution_mode or self.config.execution_mode)
                limit = 1 if mode == "serial" else self.config.concurrency_limit
                suite_slots = asyncio.Semaphore(limit)
                logger.info("Suite '%s': %d tests, %s (max %d concurrent)",
                            suite.name, len(suite.test_cases), mode, limit)

                async def _run_one(tc: TestCase) -> TestResult:
                    async with suite_slots, slots:
                        return await self._run_test(browser, tc, visual_service)

                return list(await asyncio.gather(*(_run_one(tc) for tc in suite.test_cases)))

            try:
                per_suite = await asyncio.gather(*(_run_suite(s) for s in suites))
            finally:
                if visual_service is not None:
                    await visual_service.close()
                await browser.close()

        test_results = [r for results in per_suite for r in results]
        duration = time.time() - start_time
        run_result = RunResult(
            run_id=self.run_id,
            suite_ids=[s.suite_id for s in suites],
            started_at=started_at,
            completed_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            base_url=self.config.base_url,
            total_tests=len(test_results),
            passed=sum(1 for r in test_results if r.result == "pass"),
            failed=sum(1 for r in test_results if r.result == "fail"),
            errors=sum(1 for r in test_results if r.result == "error"),
            duration_seconds=round(duration, 2),
            test_results=test_results,
        )
        logger.info(
            "Execution complete: %d passed, %d failed, %d errors (%.1fs)",
            run_result.passed, run_result.failed, run_result.errors, duration,
        )
        return run_result

    async def _run_test(
        self, browser, tc: TestCase, visual_service: VisualGridService | None,
    ) -> TestResult:
        """Run one case: setup hook, body, teardown hook, finalization."""
        test_start = time.time()
        logger.info("Running test: %s (%s)", tc.name, tc.category)
        case = CaseContext(tc, self.run_dir / "evidence" / tc.test_id)

        try:
            await self._setup(case, browser, visual_service)
        except Exception as e:
            logger.error("Setup failed for %s: %s", tc.test_id, e)
            teardown_error = await self._teardown(case)
            return self._finalize(case, InfrastructureError(f"Setup failed: {e}"), teardown_error, test_start)

        body_error: Exception | None = None
        try:
            await asyncio.wait_for(self._run_body(case), timeout=tc.timeout_seconds)
        except asyncio.TimeoutError:
            body_error = StepTimeoutError("test case", tc.test_id, tc.timeout_seconds * 1000)
            if case.current_step is not None and len(case.step_results) == case.current_step:
                self._halt(case, case.current_step, str(body_error))
        except Exception as e:
            body_error = e

        if (body_error is not None or case.soft.has_failures) and self.config.capture_failure_screenshots:
            shot = await case.evidence.take_screenshot(case.page, "failure")
            if shot:
                case.screenshots.append(shot)

        teardown_error = await self._teardown(case)
        result = self._finalize(case, body_error, teardown_error, test_start)
        logger.info("[%s] %s: %s (%.1fs)", result.result.upper(), tc.test_id, tc.name,
                    result.duration_seconds)
        return result

    async def _setup(self, case: CaseContext, browser, visual_service: VisualGridService | None) -> None:
        viewport = {"width": self.config.viewport.width, "height": self.config.viewport.height}
        case.context = await create_context(browser, viewport=viewport)
        case.page = await case.context.new_page()
        case.page.set_default_timeout(self.config.selector_timeout_seconds * 1000)
        case.evidence.setup_listeners(case.page)

        # The site switch is read once per case, here.
        variant = resolve_site_variant(self.environ.get(self.config.site_env_var))
        case.site_url = build_site_url(self.config.base_url, variant, self.config.alternate_page)
        logger.debug("  %s=%r -> %s", self.config.site_env_var,
                     self.environ.get(self.config.site_env_var), case.site_url)

        for hook in self.setup_hooks:
            await hook(case)

        if case.test_case.is_visual:
            if visual_service is None:
                raise InfrastructureError("No visual grid service available")
            case.visual_runner = VisualGridRunner(visual_service)
            case.visual_session = VisualSession(case.visual_runner)
            await case.visual_session.open(
                case.page, self.config.visual.app_name,
                case.test_case.visual_test_name or case.test_case.name,
            )

    async def _run_body(self, case: CaseContext) -> None:
        steps = case.test_case.steps
        logger.debug("  Running %d steps...", len(steps))
        for index, step in enumerate(steps):
            logger.debug("  Step %d/%d: %s", index + 1, len(steps), step.label)
            case.current_step = index
            try:
                soft_message = await self._run_step(case, step)
            except Exception as e:
                self._halt(case, index, str(e))
                raise
            case.step_results.append(StepResult(
                step_index=index, kind=step.kind, description=step.label,
                status="fail" if soft_message else "pass", error_message=soft_message,
            ))

        if case.visual_session is not None:
            await case.visual_session.close(raise_on_diff=self.config.visual.raise_on_diff)
        case.soft.raise_if_failed()

    def _halt(self, case: CaseContext, index: int, message: str) -> None:
        """Record step ``index`` as failed and every later step as skipped."""
        steps = case.test_case.steps
        case.step_results.append(StepResult(
            step_index=index, kind=steps[index].kind, description=steps[index].label,
            status="fail", error_message=message,
        ))
        for later, skipped in enumerate(steps[index + 1:], start=index + 1):
            case.step_results.append(StepResult(
                step_index=later, kind=skipped.kind, description=skipped.label,
                status="skip", error_message="Skipped after earlier failure",
            ))

    async def _run_step(self, case: CaseContext, step: Step) -> str | None:
        """Run one step. Returns a message when soft assertions failed."""
        if step.action is not None:
            await run_action(
                case.page, step.action, site_url=case.site_url,
                timeout=self.config.selector_timeout_seconds * 1000,
                navigation_timeout=self.config.navigation_timeout_seconds * 1000,
            )
            return None

        if step.assertion is not None:
            assertion = step.assertion
            results = await check_assertion(
                case.page, assertion, timeout=self.config.assertion_timeout_seconds * 1000)
            case.assertion_results.extend(results)
            failures = [r for r in results if not r.passed]
            if not assertion.soft:
                if failures:
                    raise HardAssertionError(failures[0])
                return None
            for r in results:
                case.soft.record(r)
            if failures:
                return "; ".join(r.describe() for r in failures)
            return None

        if case.visual_session is None:
            raise InfrastructureError(f"Checkpoint '{step.checkpoint.label}' outside a visual test")
        await case.visual_session.check(step.checkpoint)
        return None

    async def _teardown(self, case: CaseContext) -> Exception | None:
        """Release everything the case acquired. Runs exactly once per case."""
        error: Exception | None = None

        for hook in self.teardown_hooks:
            try:
                await hook(case)
            except Exception as e:
                logger.error("Teardown hook failed for %s: %s", case.test_case.test_id, e)
                error = error or e

        if case.visual_session is not None:
            try:
                await case.visual_session.abort()
                summary = await case.visual_runner.get_all_test_results(raise_on_diff=False)
                case.visual_results = summary.results
                logger.info("Visual test results for %s: %s", case.test_case.test_id, summary)
            except Exception as e:
                logger.error("Visual teardown failed for %s: %s", case.test_case.test_id, e)
                error = error or e

        case.evidence.save_logs()
        if case.context is not None:
            try:
                await case.context.close()
            except Exception as e:
                logger.error("Closing context failed for %s: %s", case.test_case.test_id, e)
                error = error or e
        return error

    def _finalize(
        self,
        case: CaseContext,
        body_error: Exception | None,
        teardown_error: Exception | None,
        test_start: float,
    ) -> TestResult:
        """Combine hard failure (if any) and soft outcomes into one terminal result."""
        tc = case.test_case
        soft_failures = case.soft.failures
        reasons = []

        if isinstance(body_error, InfrastructureError):
            status, kind = "error", body_error.failure_kind
            reasons.append(str(body_error))
        elif isinstance(body_error, HarnessError):
            status, kind = "fail", body_error.failure_kind
            reasons.append(str(body_error))
        elif body_error is not None:
            status, kind = "error", "infrastructure"
            reasons.append(f"Test crashed: {body_error}")
        elif teardown_error is not None:
            status, kind = "error", "infrastructure"
            reasons.append(f"Teardown failed: {teardown_error}")
        else:
            status, kind = "pass", None

        if soft_failures and not isinstance(body_error, SoftAssertionFailures):
            reasons.append(str(SoftAssertionFailures(soft_failures)))

        passed_count = sum(1 for r in case.assertion_results if r.passed)
        return TestResult(
            test_id=tc.test_id,
            test_name=tc.name,
            category=tc.category,
            result=status,
            failure_kind=kind,
            failure_reason="; ".join(reasons) if reasons else None,
            duration_seconds=round(time.time() - test_start, 2),
            site_url=case.site_url,
            step_results=case.step_results,
            assertion_results=case.assertion_results,
            soft_failures=[r.describe() for r in soft_failures],
            visual_results=case.visual_results,
            screenshots=case.screenshots,
            console_logs=case.evidence.console_logs,
            assertions_passed=passed_count,
            assertions_failed=len(case.assertion_results) - passed_count,
        )
