"""Image comparison for visual checkpoints."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageChops

# Per-channel difference above which a pixel counts as changed (strict level).
# Forgiving enough for anti-aliasing and font rendering noise.
PIXEL_THRESHOLD = 40

# Side of the square cell used to sample page structure (layout level).
LAYOUT_CELL = 16

# Grayscale value under which a cell counts as occupied by content.
LAYOUT_INK_THRESHOLD = 245


class ComparisonResult:
    def __init__(self, passed: bool, diff_ratio: float, message: str = ""):
        self.passed = passed
        self.diff_ratio = diff_ratio
        self.message = message


def _changed_ratio(mask: Image.Image) -> float:
    """Fraction of 255-valued pixels in a binary L-mode mask."""
    total = mask.width * mask.height
    if total == 0:
        return 0.0
    return mask.histogram()[255] / total


def _channel_max_difference(baseline: Image.Image, current: Image.Image) -> Image.Image:
    diff = ImageChops.difference(baseline, current)
    r, g, b = diff.split()
    return ImageChops.lighter(ImageChops.lighter(r, g), b)


def _layout_mask(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    gray = image.convert("L").resize(size, Image.Resampling.BOX)
    return gray.point(lambda v: 255 if v < LAYOUT_INK_THRESHOLD else 0)


def compare_exact(baseline: Image.Image, current: Image.Image) -> ComparisonResult:
    if baseline.size != current.size:
        return ComparisonResult(False, 1.0, f"Size changed: {baseline.size} -> {current.size}")
    changed = _channel_max_difference(baseline, current).point(lambda v: 255 if v else 0)
    ratio = _changed_ratio(changed)
    return ComparisonResult(ratio == 0.0, ratio, f"Exact diff: {ratio:.2%}")


def compare_strict(baseline: Image.Image, current: Image.Image, tolerance: float) -> ComparisonResult:
    if baseline.size != current.size:
        current = current.resize(baseline.size)
    changed = _channel_max_difference(baseline, current).point(
        lambda v: 255 if v > PIXEL_THRESHOLD else 0
    )
    ratio = _changed_ratio(changed)
    return ComparisonResult(ratio <= tolerance, ratio,
                            f"Pixel diff: {ratio:.2%} (tolerance: {tolerance:.2%})")


def compare_layout(baseline: Image.Image, current: Image.Image, tolerance: float) -> ComparisonResult:
    """Compare where content sits, ignoring what the content is."""
    grid = (max(1, baseline.width // LAYOUT_CELL), max(1, baseline.height // LAYOUT_CELL))
    if baseline.size != current.size:
        current = current.resize(baseline.size)
    changed = ImageChops.difference(_layout_mask(baseline, grid), _layout_mask(current, grid))
    ratio = _changed_ratio(changed)
    return ComparisonResult(ratio <= tolerance, ratio,
                            f"Layout diff: {ratio:.2%} (tolerance: {tolerance:.2%})")


def compare_images(
    baseline_path: Path,
    current_path: Path,
    match_level: str = "strict",
    tolerance: float = 0.05,
    layout_tolerance: float = 0.10,
) -> ComparisonResult:
    """Compare a capture against its baseline under the given match level."""
    with Image.open(baseline_path) as b, Image.open(current_path) as c:
        baseline = b.convert("RGB")
        current = c.convert("RGB")

    match match_level:
        case "exact":
            return compare_exact(baseline, current)
        case "strict":
            return compare_strict(baseline, current, tolerance)
        case "layout":
            return compare_layout(baseline, current, layout_tolerance)
        case _:
            raise ValueError(f"Unknown match level: {match_level}")
