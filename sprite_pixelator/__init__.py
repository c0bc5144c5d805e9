"""Sprite pixelator: turn noisy generated pixel art into clean, uniform sprites.

Background isolation, connected-region labelling, sprite extraction with
fragment merging, trim/scale/centre normalisation and SVG rendering.
"""

from __future__ import annotations

from .background import isolate_background, remove_background_tolerant
from .components import detect_components
from .config import PixelatorConfig, load_config
from .extractor import extract_sprites
from .normalizer import trim_and_scale_sprite
from .raster import Raster
from .service import PipelineResult, process_image, run_pipeline
from .sprite import Sprite, SpritePixel
from .vectorizer import raster_to_svg, vectorize_sprite

__all__ = [
    "PipelineResult",
    "PixelatorConfig",
    "Raster",
    "Sprite",
    "SpritePixel",
    "detect_components",
    "extract_sprites",
    "isolate_background",
    "load_config",
    "process_image",
    "raster_to_svg",
    "remove_background_tolerant",
    "run_pipeline",
    "trim_and_scale_sprite",
    "vectorize_sprite",
]
