"""Tests for the visual baseline registry."""

import json

from conftest import write_image
from demo_qa.models.visual_baseline import VisualBaselineRegistry
from demo_qa.visual.baseline_registry import VisualBaselineRegistryManager


def _store(manager, registry, source, key="app__login__login-page__chrome-800x600"):
    return manager.store_baseline(
        registry, key, "Applitools Demo App", "Login", "Login page",
        "chrome-800x600", 800, 600, source, "run_test",
    )


class TestBaselineKey:
    def test_slugified_parts(self):
        key = VisualBaselineRegistryManager.baseline_key(
            "Applitools Demo App", "Login", "Main page", "ipad-pro-landscape")
        assert key == "applitools-demo-app__login__main-page__ipad-pro-landscape"


class TestRegistryManager:
    def test_load_missing_creates_empty(self, tmp_path):
        registry = VisualBaselineRegistryManager(tmp_path / "baselines").load()
        assert registry.baselines == {}

    def test_store_and_lookup(self, tmp_path):
        manager = VisualBaselineRegistryManager(tmp_path / "baselines")
        registry = manager.load()
        source = write_image(tmp_path / "capture.png")

        entry = _store(manager, registry, source)

        assert entry.image_path == "images/app__login__login-page__chrome-800x600.png"
        assert len(entry.image_hash) == 64
        assert manager.get_baseline(registry, "app__login__login-page__chrome-800x600") == entry
        assert manager.get_baseline_image_path(entry).exists()

    def test_missing_image_means_no_baseline(self, tmp_path):
        manager = VisualBaselineRegistryManager(tmp_path / "baselines")
        registry = manager.load()
        entry = _store(manager, registry, write_image(tmp_path / "capture.png"))
        manager.get_baseline_image_path(entry).unlink()

        assert manager.get_baseline(registry, "app__login__login-page__chrome-800x600") is None

    def test_save_and_reload(self, tmp_path):
        manager = VisualBaselineRegistryManager(tmp_path / "baselines")
        registry = manager.load()
        _store(manager, registry, write_image(tmp_path / "capture.png"))
        manager.save(registry)

        reloaded = manager.load()
        assert reloaded.last_updated
        assert list(reloaded.baselines) == ["app__login__login-page__chrome-800x600"]
        assert reloaded.baselines["app__login__login-page__chrome-800x600"].width == 800

    def test_corrupt_registry_starts_fresh(self, tmp_path):
        manager = VisualBaselineRegistryManager(tmp_path)
        manager.registry_path.write_text("{not json")
        assert isinstance(manager.load(), VisualBaselineRegistry)
        assert manager.load().baselines == {}

    def test_saved_file_is_json(self, tmp_path):
        manager = VisualBaselineRegistryManager(tmp_path)
        manager.save(manager.load())
        data = json.loads(manager.registry_path.read_text())
        assert data["baselines"] == {}
