"""End-to-end tests for the sprite pipeline.

Runs isolate -> label -> extract -> normalise -> vectorise on synthetic
sheets and checks the in-memory results and the files written to disk.
"""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from sprite_pixelator.config import PixelatorConfig
from sprite_pixelator.raster import Raster
from sprite_pixelator.service import preprocess, process_image, run_pipeline
from sprite_pixelator.visualize import BBOX_COLOR, render_pixel_grid, visualize_components


# ---------------------------------------------------------------------------
# Synthetic image helpers
# ---------------------------------------------------------------------------


def _make_sheet(size: int = 64) -> Raster:
    """Opaque white sheet: red 20x20 block, blue 12x12 block, a 2x2 speck."""
    raster = Raster.blank(size, size)
    raster.pixels[:] = (255, 255, 255, 255)
    raster.pixels[4:24, 4:24] = (220, 30, 30, 255)
    raster.pixels[40:52, 36:48] = (30, 30, 220, 255)
    raster.pixels[60:62, 2:4] = (0, 200, 0, 255)
    return raster


def _make_red_block_sheet() -> Raster:
    """1024x1024 white sheet with a single 100x100 red block at (400, 400)."""
    raster = Raster.blank(1024, 1024)
    raster.pixels[:] = (255, 255, 255, 255)
    raster.pixels[400:500, 400:500] = (255, 0, 0, 255)
    return raster


# ---------------------------------------------------------------------------
# Tests: run_pipeline
# ---------------------------------------------------------------------------


class TestRunPipeline:
    def test_sprites_are_normalised(self):
        config = PixelatorConfig(top_n_sprites=2, target_width=32, target_height=32,
                                 output_formats=("png", "svg"))
        result = run_pipeline(_make_sheet(), config)

        # speck is below the noise floor
        assert [s.pixel_count for s in result.sprites] == [32 * 32, 32 * 32]
        assert len(result.rasters) == len(result.svgs) == 2
        for canvas, svg in zip(result.rasters, result.svgs):
            assert (canvas.width, canvas.height) == (32, 32)
            assert set(np.unique(canvas.alpha).tolist()) <= {0, 255}
            assert svg.count("<rect") == int((canvas.alpha == 255).sum())

        assert np.all(result.rasters[0].pixels[:, :, :3] == (220, 30, 30))
        assert result.labels.shape == (64, 64)
        assert result.labels.max() == 3

    def test_svgs_skipped_when_only_png(self):
        result = run_pipeline(_make_sheet(), PixelatorConfig(top_n_sprites=2))
        assert result.svgs == [None, None]

    def test_leftover_merge_limits_sprite_count(self):
        sheet = _make_sheet()
        sheet.pixels[26:30, 4:8] = (220, 30, 30, 255)  # fragment under the red block
        config = PixelatorConfig(top_n_sprites=1, enable_leftover_merge=True)
        result = run_pipeline(sheet, config)
        assert len(result.sprites) == 1

    def test_red_block_scenario(self):
        result = run_pipeline(_make_red_block_sheet(), PixelatorConfig())
        assert len(result.sprites) == 1
        sprite = result.sprites[0]
        assert np.all(result.rasters[0].to_argb_array() == 0xFFFF0000)
        assert sprite.center_x == pytest.approx(31.5)
        assert sprite.center_y == pytest.approx(31.5)

    def test_transparent_source_skips_isolation(self):
        source = _make_sheet()
        source.pixels[0, 0, 3] = 0
        assert preprocess(source, PixelatorConfig()) is source

    def test_tolerant_background_mode(self):
        source = _make_sheet()
        source.pixels[::2, ::2, :3] = (250, 250, 250)
        source.pixels[4:24, 4:24] = (220, 30, 30, 255)
        source.pixels[40:52, 36:48] = (30, 30, 220, 255)

        exact = run_pipeline(source, PixelatorConfig(top_n_sprites=2))
        tolerant = run_pipeline(source, PixelatorConfig(top_n_sprites=2,
                                                        background_mode="tolerant",
                                                        min_noise_size=20))
        # the mottled background defeats the exact match but not the tolerant path
        assert len(exact.sprites) == 1
        assert len(tolerant.sprites) == 2


# ---------------------------------------------------------------------------
# Tests: process_image
# ---------------------------------------------------------------------------


class TestProcessImage:
    def test_writes_stage_files(self, tmp_path):
        source_path = tmp_path / "sheet.png"
        _make_sheet().save(source_path)
        out = tmp_path / "out"

        config = PixelatorConfig(top_n_sprites=2, output_formats=("png", "svg"))
        written = process_image(source_path, out, config)

        names = sorted(p.name for p in written)
        assert names == sorted([
            "step1_preprocessed.png", "step2_components.png", "step3_sprites.png",
            "sprite_1.png", "sprite_1.svg", "sprite_2.png", "sprite_2.svg",
        ])
        assert all(p.exists() for p in written)
        with Image.open(out / "step1_preprocessed.png") as img:
            assert img.getpixel((0, 0))[3] == 0

    def test_user_id_subdirectory(self, tmp_path):
        source_path = tmp_path / "sheet.png"
        _make_sheet().save(source_path)
        config = PixelatorConfig(user_id="user-42")

        written = process_image(source_path, tmp_path / "out", config, grid_previews=True)
        assert all(p.parent == tmp_path / "out" / "user-42" for p in written)
        assert (tmp_path / "out" / "user-42" / "sprite_1_grid.png").exists()


# ---------------------------------------------------------------------------
# Tests: diagnostics
# ---------------------------------------------------------------------------


class TestDiagnostics:
    def test_components_view_is_transparent_on_background(self):
        labels = np.zeros((4, 4), dtype=np.int32)
        labels[1:3, 1:3] = 1
        vis = visualize_components(None, labels, seed=0)
        assert vis.alpha[0, 0] == 0
        assert vis.alpha[1, 1] == 255
        assert visualize_components(None, None) is None

    def test_pixel_grid_size(self):
        canvas = Raster.blank(4, 2)
        grid = render_pixel_grid(canvas, scale=8)
        assert grid.shape == (16, 32, 3)
        assert tuple(grid[0, 0]) == (255, 0, 0)

    def test_pixel_grid_outlines_opaque_bounding_box(self):
        canvas = Raster.blank(4, 4)
        canvas.pixels[1, 1] = (0, 0, 0, 255)
        grid = render_pixel_grid(canvas, scale=8)
        assert tuple(grid[8, 8]) == BBOX_COLOR
        assert tuple(grid[12, 8]) == BBOX_COLOR
        assert tuple(grid[12, 12]) == (0, 0, 0)
        # no outline when disabled; the cell border is a grid line again
        plain = render_pixel_grid(canvas, scale=8, bbox_color=None)
        assert tuple(plain[12, 8]) == (255, 0, 0)

    def test_pixel_grid_backdrop(self):
        grid = render_pixel_grid(Raster.blank(2, 2), scale=8, backdrop=100.0)
        assert tuple(grid[4, 4]) == (100, 100, 100)


class TestDiagnosticsInPipeline:
    def test_overview_skipped_by_default(self):
        result = run_pipeline(_make_sheet(), PixelatorConfig(top_n_sprites=2))
        assert result.sprite_overview is None

    def test_overview_is_reproducible(self):
        config = PixelatorConfig(top_n_sprites=2)
        first = run_pipeline(_make_sheet(), config, diagnostics=True)
        second = run_pipeline(_make_sheet(), config, diagnostics=True)
        assert first.sprite_overview is not None
        assert np.array_equal(first.sprite_overview.pixels, second.sprite_overview.pixels)
        # painted from the extracted (absolute) coordinates
        assert first.sprite_overview.alpha[10, 10] == 255
        assert first.sprite_overview.alpha[0, 0] == 0

    def test_saved_diagnostics_are_reproducible(self, tmp_path):
        source_path = tmp_path / "sheet.png"
        _make_sheet().save(source_path)
        config = PixelatorConfig(top_n_sprites=2)
        process_image(source_path, tmp_path / "a", config)
        process_image(source_path, tmp_path / "b", config)
        for name in ("step2_components.png", "step3_sprites.png"):
            with Image.open(tmp_path / "a" / name) as a, Image.open(tmp_path / "b" / name) as b:
                assert np.array_equal(np.array(a), np.array(b))
