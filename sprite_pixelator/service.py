"""End-to-end sprite pipeline: isolate → label → extract → normalise → vectorise.

``run_pipeline`` works purely in memory; ``process_image`` loads a file,
runs the pipeline and writes each stage's artefacts to an output directory.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
from PIL import Image

from .background import isolate_background, remove_background_tolerant
from .color_utils import has_transparent_pixel
from .components import detect_components
from .config import PixelatorConfig
from .extractor import extract_sprites
from .normalizer import trim_and_scale_sprite
from .raster import Raster
from .sprite import Sprite
from .vectorizer import vectorize_sprite
from .visualize import render_pixel_grid, visualize_components, visualize_sprites

logger = logging.getLogger(__name__)

# Palette seed for the step2/step3 diagnostic images
DIAGNOSTIC_SEED = 0


@dataclass
class PipelineResult:
    """Everything produced for one source image."""
    preprocessed: Raster
    labels: np.ndarray
    sprites: List[Sprite]                      # normalised, canvas-local pixels
    rasters: List[Raster] = field(default_factory=list)
    svgs: List[Optional[str]] = field(default_factory=list)
    sprite_overview: Optional[Raster] = None   # only with diagnostics=True


def preprocess(raster: Raster, config: PixelatorConfig) -> Raster:
    """Background stage; images that already carry transparency pass through."""
    if has_transparent_pixel(raster):
        logger.info("Source already has transparent pixels; skipping background isolation.")
        return raster
    if config.background_mode == "tolerant":
        return remove_background_tolerant(raster, min_noise_size=config.min_noise_size)
    return isolate_background(raster)


def run_pipeline(raster: Raster, config: PixelatorConfig,
                 diagnostics: bool = False) -> PipelineResult:
    """Run every stage in memory.

    With ``diagnostics`` the extracted sprites are also painted (before
    normalising replaces their pixels) into ``sprite_overview``, using fixed
    colours so repeated runs give identical images.
    """
    pre = preprocess(raster, config)
    labels = detect_components(pre)
    sprites = extract_sprites(pre, labels, config.top_n_sprites, config)
    overview = visualize_sprites(pre, sprites, seed=DIAGNOSTIC_SEED) if diagnostics else None

    result = PipelineResult(preprocessed=pre, labels=labels, sprites=sprites,
                            sprite_overview=overview)
    for sprite in sprites:
        canvas = trim_and_scale_sprite(sprite, config)
        result.rasters.append(canvas)
        result.svgs.append(vectorize_sprite(sprite) if config.wants_svg else None)

    logger.info("Pipeline produced %d sprites at %dx%d.",
                len(sprites), config.target_width, config.target_height)
    return result


def process_image(
    input_path: Union[str, Path],
    output_dir: Union[str, Path],
    config: PixelatorConfig,
    grid_previews: bool = False,
) -> List[Path]:
    """Run the pipeline on one image file and write its artefacts.

    Files written (1-based sprite index), under ``output_dir/<user_id>`` when
    a user id is configured:
        step1_preprocessed.png, step2_components.png, step3_sprites.png,
        sprite_<i>.png, sprite_<i>.svg (if "svg" requested),
        sprite_<i>_grid.png (if ``grid_previews``).

    Returns:
        Paths of every file written.
    """
    input_path = Path(input_path)
    output_dir = Path(output_dir)
    if config.user_id:
        output_dir = output_dir / config.user_id
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Processing %s → %s", input_path.name, output_dir)
    source = Raster.load(input_path)
    result = run_pipeline(source, config, diagnostics=True)

    written: List[Path] = [result.preprocessed.save(output_dir / "step1_preprocessed.png")]

    components_vis = visualize_components(result.preprocessed, result.labels,
                                          seed=DIAGNOSTIC_SEED)
    if components_vis is not None:
        written.append(components_vis.save(output_dir / "step2_components.png"))
    if result.sprite_overview is not None:
        written.append(result.sprite_overview.save(output_dir / "step3_sprites.png"))

    for i, (canvas, svg) in enumerate(zip(result.rasters, result.svgs), start=1):
        written.append(canvas.save(output_dir / f"sprite_{i}.png"))
        if svg is not None:
            svg_path = output_dir / f"sprite_{i}.svg"
            svg_path.write_text(svg, encoding="utf-8")
            written.append(svg_path)
        if grid_previews:
            grid_path = output_dir / f"sprite_{i}_grid.png"
            Image.fromarray(render_pixel_grid(canvas)).save(grid_path)
            written.append(grid_path)

    logger.info("Wrote %d files for %s", len(written), input_path.name)
    return written
