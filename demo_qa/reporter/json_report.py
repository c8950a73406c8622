"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from demo_qa.models.test_result import RunResult


def generate_json_report(run_result: RunResult, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    report = run_result.model_dump()
    report["success"] = run_result.success
    report["visual_summary"] = [
        {
            "test_id": r.test_id,
            "total": len(r.visual_results),
            "passed": sum(1 for v in r.visual_results if v.status == "passed"),
            "failed": sum(1 for v in r.visual_results if v.status == "failed"),
            "new": sum(1 for v in r.visual_results if v.status == "new"),
            "unresolved": sum(1 for v in r.visual_results if v.status == "unresolved"),
        }
        for r in run_result.test_results
        if r.visual_results
    ]

    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
