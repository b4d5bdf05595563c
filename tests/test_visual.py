"""Tests for visual baseline comparison."""

from PIL import Image

from autosmoke.executor.visual import VisualComparator, baseline_name, count_diff_pixels


def _image(path, size=(20, 20), color=(255, 255, 255), patch=0, patch_color=(0, 0, 0)):
    img = Image.new("RGB", size, color)
    for i in range(patch):
        img.putpixel((i % size[0], i // size[0]), patch_color)
    img.save(path)
    return path


class TestBaselineName:
    def test_root_is_home(self):
        assert baseline_name("/") == "home.png"

    def test_nested(self):
        assert baseline_name("/users/42") == "_users_42.png"


class TestCountDiffPixels:
    def test_identical(self, tmp_path):
        a = _image(tmp_path / "a.png")
        b = _image(tmp_path / "b.png")
        assert count_diff_pixels(a, b, 0.2) == (0, 400)

    def test_small_changes_under_threshold_ignored(self, tmp_path):
        a = _image(tmp_path / "a.png")
        b = _image(tmp_path / "b.png", color=(250, 250, 250))
        assert count_diff_pixels(a, b, 0.2)[0] == 0

    def test_counts_changed_pixels(self, tmp_path):
        a = _image(tmp_path / "a.png")
        b = _image(tmp_path / "b.png", patch=30)
        assert count_diff_pixels(a, b, 0.2) == (30, 400)


class TestVisualComparator:
    def test_first_run_stores_baseline(self, tmp_path):
        comparator = VisualComparator(tmp_path / "baselines")
        shot = _image(tmp_path / "shot.png")

        check = comparator.compare("/", shot)

        assert check.passed
        assert "Baseline stored" in check.message
        assert (tmp_path / "baselines" / "home.png").exists()

    def test_within_pixel_limit_passes(self, tmp_path):
        comparator = VisualComparator(tmp_path / "baselines")
        comparator.compare("/about", _image(tmp_path / "first.png"))

        check = comparator.compare("/about", _image(tmp_path / "second.png", patch=50))

        assert check.passed
        assert check.diff_pixels == 50
        assert check.diff_ratio == 50 / 400

    def test_regression_fails(self, tmp_path):
        comparator = VisualComparator(tmp_path / "baselines", max_diff_pixels=10)
        comparator.compare("/about", _image(tmp_path / "first.png"))

        check = comparator.compare("/about", _image(tmp_path / "second.png", patch=50))

        assert not check.passed
        assert "50 pixels differ" in check.message
