"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from demo_qa.models.config import FrameworkConfig
from demo_qa.models.test_result import RunResult

from .json_report import generate_json_report

logger = logging.getLogger(__name__)


class Reporter:
    """Generates reports from test results."""

    def __init__(self, config: FrameworkConfig):
        self.config = config

    def generate_reports(self, run_result: RunResult, output_dir: Path | None = None) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        out_dir = output_dir or Path(self.config.report_output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        generated = {}
        logger.debug("Report output directory: %s", out_dir)

        if "json" in self.config.report_formats:
            path = out_dir / f"report_{run_result.run_id}.json"
            logger.debug("Generating JSON report...")
            generate_json_report(run_result, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        unsupported = [f for f in self.config.report_formats if f != "json"]
        if unsupported:
            logger.warning("Ignoring unsupported report format(s): %s", ", ".join(unsupported))

        return generated


def build_summary(run_result: RunResult) -> str:
    """One-paragraph plain text summary of a run."""
    parts = [
        f"Tested {run_result.base_url}: {run_result.total_tests} tests in {run_result.duration_seconds:.1f}s.",
        f"Results: {run_result.passed} passed, {run_result.failed} failed, {run_result.errors} errors.",
    ]
    failures = [r for r in run_result.test_results if r.result != "pass"]
    if failures:
        parts.append("Failures: " + ", ".join(
            f"{f.test_id} ({f.failure_kind})" for f in failures[:5]))
    visual = [v for r in run_result.test_results for v in r.visual_results]
    if visual:
        failed = sum(1 for v in visual if v.status == "failed")
        new = sum(1 for v in visual if v.status == "new")
        unresolved = sum(1 for v in visual if v.status == "unresolved")
        parts.append(f"Visual: {len(visual)} verdicts, {failed} failed, {new} new, {unresolved} unresolved.")
    return " ".join(parts)
