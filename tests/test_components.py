"""Tests for connected-region labelling."""

from __future__ import annotations

import numpy as np

from sprite_pixelator.components import detect_components
from sprite_pixelator.raster import Raster


# ---------------------------------------------------------------------------
# Synthetic image helpers
# ---------------------------------------------------------------------------


def _make_canvas(width: int, height: int) -> Raster:
    return Raster.blank(width, height)


def _fill(raster: Raster, x0: int, y0: int, x1: int, y1: int,
          rgba=(200, 40, 40, 255)) -> None:
    """Fill the half-open box [x0, x1) x [y0, y1)."""
    raster.pixels[y0:y1, x0:x1] = rgba


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestDetectComponents:
    def test_none_returns_none(self):
        assert detect_components(None) is None

    def test_label_grid_matches_raster_dimensions(self):
        raster = _make_canvas(7, 5)
        _fill(raster, 1, 1, 3, 3)
        labels = detect_components(raster)
        assert labels.shape == (5, 7)

    def test_single_rectangle_is_one_region(self):
        raster = _make_canvas(20, 20)
        _fill(raster, 5, 5, 15, 15)
        labels = detect_components(raster)
        assert labels.max() == 1
        assert int((labels == 1).sum()) == 100
        assert labels[0, 0] == 0

    def test_fully_transparent_has_no_regions(self):
        labels = detect_components(_make_canvas(8, 8))
        assert not labels.any()

    def test_labels_are_dense_in_scan_order(self):
        raster = _make_canvas(16, 8)
        _fill(raster, 10, 0, 13, 3)   # first seen (row 0)
        _fill(raster, 0, 4, 3, 7)     # row 4, leftmost
        _fill(raster, 6, 4, 9, 7)     # row 4, further right
        labels = detect_components(raster)
        assert set(np.unique(labels).tolist()) == {0, 1, 2, 3}
        assert labels[0, 10] == 1
        assert labels[4, 0] == 2
        assert labels[4, 6] == 3

    def test_diagonal_pixels_are_separate_regions(self):
        raster = _make_canvas(4, 4)
        raster.pixels[0, 0] = (255, 255, 255, 255)
        raster.pixels[1, 1] = (255, 255, 255, 255)
        labels = detect_components(raster)
        assert labels.max() == 2

    def test_faint_pixels_join_but_never_seed(self):
        """Documented quirk: alpha 1..9 can grow a region but cannot start one."""
        raster = _make_canvas(10, 3)
        _fill(raster, 0, 0, 3, 1)                        # opaque seed
        _fill(raster, 3, 0, 6, 1, rgba=(10, 10, 10, 5))  # faint tail touching it
        raster.pixels[2, 9] = (10, 10, 10, 5)            # isolated faint pixel
        labels = detect_components(raster)
        assert labels[0, :6].tolist() == [1] * 6
        assert labels[2, 9] == 0
        assert labels.max() == 1

    def test_faint_bridge_connects_two_blocks(self):
        raster = _make_canvas(9, 3)
        _fill(raster, 0, 0, 4, 3)
        _fill(raster, 5, 0, 9, 3)
        raster.pixels[1, 4] = (0, 0, 0, 3)
        labels = detect_components(raster)
        assert labels.max() == 1
        assert int((labels == 1).sum()) == 25

    def test_alpha_ten_is_a_valid_seed(self):
        raster = _make_canvas(3, 3)
        raster.pixels[1, 1] = (1, 2, 3, 10)
        labels = detect_components(raster)
        assert labels[1, 1] == 1

    def test_faint_only_group_takes_no_label(self):
        raster = _make_canvas(10, 6)
        _fill(raster, 0, 0, 3, 1, rgba=(10, 10, 10, 5))  # never seeded
        _fill(raster, 0, 2, 3, 3)
        _fill(raster, 5, 4, 8, 5)
        labels = detect_components(raster)
        assert not labels[0].any()
        assert labels[2, 0] == 1
        assert labels[4, 5] == 2
        assert labels.max() == 2

    def test_numbering_follows_first_seed_not_first_pixel(self):
        raster = _make_canvas(8, 4)
        _fill(raster, 0, 0, 1, 3, rgba=(10, 10, 10, 5))  # faint column ...
        _fill(raster, 0, 3, 1, 4)                        # ... seeded only at the bottom
        _fill(raster, 5, 1, 6, 2)                        # seeded on row 1
        labels = detect_components(raster)
        assert labels[1, 5] == 1
        assert labels[:, 0].tolist() == [2, 2, 2, 2]

    def test_large_striped_raster(self):
        raster = _make_canvas(512, 512)
        raster.pixels[:, :] = (90, 90, 90, 255)
        raster.pixels[::16, :] = 0
        labels = detect_components(raster)
        assert labels.dtype == np.int32
        assert labels.max() == 32
        assert labels[1, 0] == 1
        assert labels[511, 511] == 32
        assert not labels[16].any()
