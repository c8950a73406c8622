"""Load suites from JSON plan files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from demo_qa.models.test_plan import TestSuite

logger = logging.getLogger(__name__)


def load_suites(path: str | Path) -> list[TestSuite]:
    """Load one suite object, or a list of them, from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Plan file not found: {path}")
    with open(path) as f:
        data = json.load(f)
    items = data if isinstance(data, list) else [data]
    suites = [TestSuite.model_validate(item) for item in items]
    logger.debug("Loaded %d suite(s) from %s", len(suites), path)
    return suites


def save_suites(suites: list[TestSuite], path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump([s.model_dump(exclude_none=True) for s in suites], f, indent=2)
