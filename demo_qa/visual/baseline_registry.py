"""Visual baseline registry — stores and looks up checkpoint baselines.

Baselines live under ``VisualConfig.baselines_dir``::

    registry.json
    images/<app>__<test>__<checkpoint>__<matrix key>.png

A checkpoint rendered on a matrix entry for the first time has no baseline;
its capture is stored here and every later run is compared against it.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import time
from pathlib import Path

from pydantic import ValidationError

from demo_qa.models.visual_baseline import BaselineEntry, VisualBaselineRegistry
from demo_qa.url_utils import slugify

logger = logging.getLogger(__name__)


class VisualBaselineRegistryManager:
    """Reads and writes baseline images and the registry that indexes them."""

    def __init__(self, baselines_dir: Path):
        self.baselines_dir = baselines_dir
        self.registry_path = baselines_dir / "registry.json"

    def load(self) -> VisualBaselineRegistry:
        """Read the registry, starting empty if it is missing or unreadable."""
        if not self.registry_path.exists():
            return VisualBaselineRegistry()
        try:
            return VisualBaselineRegistry.model_validate_json(self.registry_path.read_text())
        except ValidationError as e:
            logger.warning("Ignoring unreadable baseline registry %s: %s", self.registry_path, e)
            return VisualBaselineRegistry()

    def save(self, registry: VisualBaselineRegistry) -> None:
        self.baselines_dir.mkdir(parents=True, exist_ok=True)
        registry.last_updated = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        self.registry_path.write_text(registry.model_dump_json(indent=2))
        logger.debug("Wrote %d baseline(s) to %s", len(registry.baselines), self.registry_path)

    @staticmethod
    def baseline_key(app_name: str, test_name: str, checkpoint: str, matrix_key: str) -> str:
        return "__".join(slugify(part) for part in (app_name, test_name, checkpoint, matrix_key))

    def get_baseline(self, registry: VisualBaselineRegistry, key: str) -> BaselineEntry | None:
        """Registered baseline for ``key``, or None if absent or its image is gone."""
        entry = registry.baselines.get(key)
        if entry is not None and not self.get_baseline_image_path(entry).exists():
            logger.warning("Baseline %s is registered but its image is missing", key)
            return None
        return entry

    def get_baseline_image_path(self, entry: BaselineEntry) -> Path:
        return self.baselines_dir / entry.image_path

    def store_baseline(
        self,
        registry: VisualBaselineRegistry,
        key: str,
        app_name: str,
        test_name: str,
        checkpoint: str,
        matrix_key: str,
        width: int,
        height: int,
        source_image_path: Path,
        run_id: str,
    ) -> BaselineEntry:
        """Copy a capture into the baselines directory and register it under ``key``."""
        relative = Path("images") / f"{key}.png"
        target = self.baselines_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source_image_path, target)

        entry = BaselineEntry(
            app_name=app_name,
            test_name=test_name,
            checkpoint=checkpoint,
            matrix_key=matrix_key,
            width=width,
            height=height,
            image_path=relative.as_posix(),
            captured_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            run_id=run_id,
            image_hash=hashlib.sha256(target.read_bytes()).hexdigest(),
        )
        registry.baselines[key] = entry
        logger.info("New baseline %s (%dx%d)", key, width, height)
        return entry
