"""Tests for image comparison."""

import pytest
from PIL import Image

from conftest import write_image
from demo_qa.visual.comparator import compare_images


def _paste(path, box, color=(0, 0, 0)):
    with Image.open(path) as img:
        edited = img.convert("RGB")
    edited.paste(color, box)
    edited.save(path)


@pytest.fixture
def baseline(tmp_path):
    return write_image(tmp_path / "baseline.png", box=(0, 0, 32, 32))


class TestStrict:
    def test_identical_images_pass(self, tmp_path, baseline):
        current = write_image(tmp_path / "current.png", box=(0, 0, 32, 32))
        result = compare_images(baseline, current, "strict")
        assert result.passed is True
        assert result.diff_ratio == 0.0

    def test_small_change_within_tolerance(self, tmp_path, baseline):
        current = write_image(tmp_path / "current.png", box=(0, 0, 32, 32))
        _paste(current, (40, 40, 48, 48))
        result = compare_images(baseline, current, "strict", tolerance=0.05)
        assert result.passed is True
        assert result.diff_ratio == pytest.approx(64 / 4096)

    def test_large_change_fails(self, tmp_path, baseline):
        current = write_image(tmp_path / "current.png")
        result = compare_images(baseline, current, "strict", tolerance=0.05)
        assert result.passed is False
        assert result.diff_ratio == pytest.approx(0.25)
        assert "Pixel diff" in result.message

    def test_rendering_noise_ignored(self, tmp_path):
        base = write_image(tmp_path / "a.png", color=(200, 200, 200))
        current = write_image(tmp_path / "b.png", color=(210, 210, 210))
        assert compare_images(base, current, "strict").diff_ratio == 0.0


class TestExact:
    def test_any_change_fails(self, tmp_path, baseline):
        current = write_image(tmp_path / "current.png", box=(0, 0, 32, 32))
        _paste(current, (63, 63, 64, 64), color=(254, 254, 254))
        result = compare_images(baseline, current, "exact")
        assert result.passed is False

    def test_size_change_fails(self, tmp_path, baseline):
        current = write_image(tmp_path / "current.png", size=(64, 80))
        result = compare_images(baseline, current, "exact")
        assert result.passed is False
        assert "Size changed" in result.message


class TestLayout:
    def test_recolored_content_passes(self, tmp_path, baseline):
        current = write_image(tmp_path / "current.png", box=(0, 0, 32, 32), box_color=(200, 0, 0))
        assert compare_images(baseline, current, "strict").passed is False
        result = compare_images(baseline, current, "layout")
        assert result.passed is True
        assert "Layout diff" in result.message

    def test_moved_content_fails(self, tmp_path, baseline):
        current = write_image(tmp_path / "current.png", box=(32, 32, 64, 64))
        result = compare_images(baseline, current, "layout", layout_tolerance=0.10)
        assert result.passed is False
        assert result.diff_ratio == pytest.approx(0.5)


def test_unknown_match_level(tmp_path, baseline):
    with pytest.raises(ValueError, match="Unknown match level"):
        compare_images(baseline, baseline, "fuzzy")
