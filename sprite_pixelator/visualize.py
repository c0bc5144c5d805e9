"""Diagnostic images for inspecting pipeline stages.

  - Label grid painted with one random colour per region
  - Extracted sprites painted with one random colour per sprite
  - Blown-up normalised sprite with a pixel grid and its opaque bounding box
"""

import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from .raster import Raster
from .sprite import Sprite

logger = logging.getLogger(__name__)

# Grid line colour (red), sprite bounding box outline (cyan) and the
# backdrop shown under transparent pixels
GRID_COLOR = (255, 0, 0)
BBOX_COLOR = (0, 200, 255)
BACKDROP_GREY = 220.0


def _random_colors(count: int, seed: Optional[int]) -> np.ndarray:
    """``count`` random opaque RGBA colours."""
    rng = np.random.default_rng(seed)
    colors = np.empty((count, 4), dtype=np.uint8)
    colors[:, :3] = rng.integers(0, 256, size=(count, 3), dtype=np.uint8)
    colors[:, 3] = 255
    return colors


def visualize_components(base: Optional[Raster], labels: Optional[np.ndarray],
                         seed: Optional[int] = None) -> Optional[Raster]:
    """Paint each labelled region in its own colour; background stays transparent."""
    if labels is None or labels.ndim != 2 or labels.size == 0:
        logger.error("Cannot visualize components: invalid labels array provided.")
        return None
    height, width = labels.shape
    if base is not None and (base.width != width or base.height != height):
        logger.warning("Base image dims (%dx%d) differ from labels dims (%dx%d). Using label dims.",
                       base.width, base.height, width, height)

    max_label = int(labels.max())
    logger.debug("Visualizing %d components.", max_label)
    palette = np.zeros((max_label + 1, 4), dtype=np.uint8)
    if max_label > 0:
        palette[1:] = _random_colors(max_label, seed)

    out = Raster.blank(width, height)
    valid = labels >= 0
    if not np.all(valid):
        logger.warning("%d negative labels found. Setting them transparent.", int((~valid).sum()))
    out.pixels[valid] = palette[labels[valid]]
    return out


def visualize_sprites(base: Optional[Raster], sprites: Optional[Sequence[Sprite]],
                      seed: Optional[int] = None) -> Optional[Raster]:
    """Paint every sprite's pixels in its own colour on a canvas the size of ``base``."""
    if base is None or sprites is None:
        logger.error("Cannot visualize sprites: base image or sprite list is None.")
        return None
    width, height = base.width, base.height
    out = Raster.blank(width, height)
    colors = _random_colors(len(sprites), seed)
    logger.debug("Visualizing %d sprites on a %dx%d canvas.", len(sprites), width, height)

    for i, sprite in enumerate(sprites):
        if sprite is None:
            logger.warning("Skipping None sprite at index %d.", i)
            continue
        if not sprite.pixels:
            continue
        coords = np.array([(p.x, p.y) for p in sprite.pixels], dtype=np.int64)
        xs, ys = coords[:, 0], coords[:, 1]
        inside = (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)
        if not np.all(inside):
            logger.warning("%d pixels of sprite %d fall outside %dx%d; skipped.",
                           int((~inside).sum()), sprite.label_id, width, height)
        out.pixels[ys[inside], xs[inside]] = colors[i]
    return out


def _opaque_bounding_box(image: Raster) -> Optional[Tuple[int, int, int, int]]:
    ys, xs = np.nonzero(image.alpha)
    if len(xs) == 0:
        return None
    return int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max())


def render_pixel_grid(
    image: Raster,
    scale: int = 8,
    grid_color: Tuple[int, int, int] = GRID_COLOR,
    backdrop: float = BACKDROP_GREY,
    bbox_color: Optional[Tuple[int, int, int]] = BBOX_COLOR,
) -> np.ndarray:
    """Blow up a normalised canvas so each pixel becomes a ``scale`` x ``scale`` cell.

    Pixels are composited on a flat ``backdrop`` grey before upscaling, cell
    borders are drawn in ``grid_color`` and the opaque bounding box of the
    sprite is outlined in ``bbox_color`` (None to skip), which makes any
    leftover margin or off-centre placement easy to spot.

    Returns:
        RGB numpy array of size ``(height * scale, width * scale, 3)``.
    """
    h, w = image.height, image.width
    alpha = image.pixels[:, :, 3:4].astype(np.float32) / 255.0
    flat = image.pixels[:, :, :3] * alpha + backdrop * (1.0 - alpha)
    big = cv2.resize(flat.astype(np.uint8), (w * scale, h * scale),
                     interpolation=cv2.INTER_NEAREST)

    big[::scale, :] = grid_color
    big[-1, :] = grid_color
    big[:, ::scale] = grid_color
    big[:, -1] = grid_color

    bbox = _opaque_bounding_box(image) if bbox_color is not None else None
    if bbox is not None:
        x0, y0, x1, y1 = bbox
        cv2.rectangle(big, (x0 * scale, y0 * scale),
                      ((x1 + 1) * scale - 1, (y1 + 1) * scale - 1),
                      tuple(int(c) for c in bbox_color), 1)
    return big
