"""Run orchestrator — builds suites, executes them and writes reports."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path

from demo_qa.executor.executor import Executor
from demo_qa.models.config import FrameworkConfig
from demo_qa.models.test_plan import TestSuite
from demo_qa.models.test_result import RunResult
from demo_qa.reporter.reporter import Reporter
from demo_qa.suites.demo_bank import build_suites

logger = logging.getLogger(__name__)


class Orchestrator:
    """Coordinates suite construction, execution and reporting."""

    def __init__(self, config: FrameworkConfig):
        self.config = config
        self.runs_dir = Path(config.runs_dir)
        self.runs_dir.mkdir(parents=True, exist_ok=True)

    def run_builtin(self, suite_names: list[str]) -> dict:
        """Run built-in suites by name."""
        return self.run_suites(build_suites(self.config, suite_names))

    def run_suites(self, suites: list[TestSuite]) -> dict:
        """Execute suites, persist the run result and generate reports."""
        start = time.time()
        logger.info("=== Running %s against %s ===",
                    ", ".join(s.suite_id for s in suites), self.config.base_url)

        run_result = asyncio.run(self._execute(suites))
        self._save_run_result(run_result)

        reporter = Reporter(self.config)
        reports = reporter.generate_reports(run_result, output_dir=Path(self.config.report_output_dir))

        duration = time.time() - start
        logger.info("=== Run complete in %.1fs ===", duration)
        return {
            "run_id": run_result.run_id,
            "duration": round(duration, 2),
            "run_result": run_result,
            "reports": reports,
        }

    async def _execute(self, suites: list[TestSuite]) -> RunResult:
        executor = Executor(self.config, self.runs_dir)
        return await executor.execute(suites)

    def _save_run_result(self, run_result: RunResult) -> None:
        path = self.runs_dir / run_result.run_id / "run_result.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Saving run result to %s", path)
        with open(path, "w") as f:
            json.dump(run_result.model_dump(), f, indent=2, default=str)
