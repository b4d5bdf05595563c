"""Visual regression — compares route screenshots against stored baselines."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from autosmoke.url_utils import route_file_stem

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIFF_PIXELS = 100


class VisualCheck:
    def __init__(self, passed: bool, message: str, diff_pixels: int = 0, diff_ratio: Optional[float] = None):
        self.passed = passed
        self.message = message
        self.diff_pixels = diff_pixels
        self.diff_ratio = diff_ratio


def baseline_name(route_path: str) -> str:
    return "home.png" if route_path == "/" else f"{route_file_stem(route_path)}.png"


def count_diff_pixels(baseline_path: Path, current_path: Path, threshold: float) -> tuple[int, int]:
    """Count pixels whose channels differ by more than ``threshold`` (0-1).

    Returns ``(differing, total)``.
    """
    from PIL import Image

    with Image.open(baseline_path) as b, Image.open(current_path) as c:
        baseline = b.convert("RGB")
        current = c.convert("RGB")
    if baseline.size != current.size:
        current = current.resize(baseline.size)

    channel_limit = threshold * 255
    baseline_pixels = list(baseline.getdata())
    current_pixels = list(current.getdata())
    diff = 0
    for bp, cp in zip(baseline_pixels, current_pixels):
        if any(abs(a - b) > channel_limit for a, b in zip(bp, cp)):
            diff += 1
    return diff, len(baseline_pixels)


class VisualComparator:
    """Stores a baseline per route on first sight and diffs later screenshots."""

    def __init__(
        self,
        baselines_dir: Path,
        threshold: float = 0.2,
        max_diff_pixels: int = DEFAULT_MAX_DIFF_PIXELS,
    ):
        self.baselines_dir = baselines_dir
        self.threshold = threshold
        self.max_diff_pixels = max_diff_pixels

    def baseline_path(self, route_path: str) -> Path:
        return self.baselines_dir / baseline_name(route_path)

    def compare(self, route_path: str, screenshot_path: Path) -> VisualCheck:
        baseline = self.baseline_path(route_path)
        if not baseline.exists():
            baseline.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(screenshot_path, baseline)
            logger.info("Stored visual baseline for %s", route_path)
            return VisualCheck(True, "Baseline stored (first run)")

        diff, total = count_diff_pixels(baseline, screenshot_path, self.threshold)
        ratio = diff / total if total else 0.0
        passed = diff <= self.max_diff_pixels
        msg = f"{diff} pixels differ ({ratio:.2%}, limit {self.max_diff_pixels})"
        return VisualCheck(passed, msg, diff_pixels=diff, diff_ratio=ratio)
