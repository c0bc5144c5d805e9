"""Trim, scale, centre and clean a sprite onto a fixed-size canvas.

Steps:
  1. Crop to the sprite's bounding box
  2. Pick a uniform scale (configured override, or fit-to-canvas)
  3. Nearest-neighbour resample, no blending
  4. Centre on a transparent target canvas (offset clamped, overflow clipped)
  5. Optional near-white edge fuzz removal (regions reachable from the border)
  6. Optional glow removal against the corner colour (discouraged)
  7. Alpha threshold + solidify, leaving alpha strictly 0 or 255
  8. Replace the sprite's pixels with the canvas
"""

import logging
import math
from typing import Tuple

import cv2
import numpy as np

from .color_utils import rgb_to_hsb
from .config import PixelatorConfig
from .raster import Raster
from .sprite import Sprite

logger = logging.getLogger(__name__)

EDGE_FUZZ_MIN_BRIGHTNESS = np.float32(0.80)
EDGE_FUZZ_MAX_SATURATION = np.float32(0.20)

GLOW_MAX_HUE_DISTANCE = np.float32(0.10)
GLOW_MAX_SATURATION_DISTANCE = np.float32(0.25)
GLOW_MAX_BRIGHTNESS_DISTANCE = np.float32(0.25)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_scale(box_w: int, box_h: int, config: PixelatorConfig) -> float:
    """Uniform scale factor for a bounding box of the given size."""
    if config.uniform_scale > 0:
        return float(config.uniform_scale)
    return min(config.target_width / box_w, config.target_height / box_h)


def scale_nearest(raster: Raster, width: int, height: int) -> Raster:
    """Nearest-neighbour resample sampling each destination pixel's centre."""
    scaled = cv2.resize(raster.pixels, (width, height), interpolation=cv2.INTER_NEAREST_EXACT)
    return Raster(scaled)


def center_on_canvas(image: Raster, canvas_w: int, canvas_h: int) -> Tuple[Raster, Tuple[int, int]]:
    """Paste ``image`` centred on a transparent canvas; returns (canvas, offset)."""
    canvas = Raster.blank(canvas_w, canvas_h)
    sw, sh = image.width, image.height

    offset_x = max(0, min((canvas_w - sw) // 2, canvas_w - sw))
    offset_y = max(0, min((canvas_h - sh) // 2, canvas_h - sh))

    copy_w = min(sw, canvas_w - offset_x)
    copy_h = min(sh, canvas_h - offset_y)
    canvas.pixels[offset_y:offset_y + copy_h, offset_x:offset_x + copy_w] = \
        image.pixels[:copy_h, :copy_w]
    # fully transparent pixels carry no colour
    canvas.pixels[canvas.alpha == 0] = 0
    return canvas, (offset_x, offset_y)


def _border_component_ids(components: np.ndarray) -> np.ndarray:
    border = np.concatenate([
        components[0, :], components[-1, :], components[:, 0], components[:, -1],
    ])
    ids = np.unique(border)
    return ids[ids != 0]


def _clear_from_border(image: Raster, removable: np.ndarray) -> int:
    """Clear removable opaque pixels reachable from the canvas border.

    Transparent pixels and removable pixels form the passable area; opaque
    pixels that are not removable block it.  Every 4-connected passable
    component touching the border is cleared.  Returns the count cleared.
    """
    h, w = image.height, image.width
    if w == 0 or h == 0:
        return 0

    opaque = image.alpha != 0
    passable = ~opaque | removable
    _, components = cv2.connectedComponents(passable.astype(np.uint8), connectivity=4,
                                            ltype=cv2.CV_32S)
    reached = np.isin(components, _border_component_ids(components))

    to_clear = reached & opaque
    image.pixels[to_clear] = 0
    return int(to_clear.sum())


def remove_near_white_edges(image: Raster) -> int:
    """Clear near-white / near-grey halo pixels reachable from the border."""
    hsb = rgb_to_hsb(image.pixels[:, :, :3])
    removable = (hsb[:, :, 2] >= EDGE_FUZZ_MIN_BRIGHTNESS) & \
                (hsb[:, :, 1] <= EDGE_FUZZ_MAX_SATURATION)
    removed = _clear_from_border(image, removable)
    if removed:
        logger.debug("Edge fuzz removal cleared %d near-white pixels.", removed)
    return removed


def estimate_background_hsb_from_corners(image: Raster) -> np.ndarray:
    """Mean HSB of the four corner pixels (alpha ignored)."""
    h, w = image.height, image.width
    if w == 0 or h == 0:
        return np.zeros(3, dtype=np.float32)
    corners = image.pixels[[0, 0, h - 1, h - 1], [0, w - 1, 0, w - 1], :3]
    return rgb_to_hsb(corners).mean(axis=0).astype(np.float32)


def remove_glow_from_edges(image: Raster) -> int:
    """Clear border-connected pixels close in HSB to the estimated background."""
    logger.warning("Executing glow removal from edges - generally discouraged.")
    bg = estimate_background_hsb_from_corners(image)
    hsb = rgb_to_hsb(image.pixels[:, :, :3])

    dh = np.abs(hsb[:, :, 0] - bg[0])
    dh = np.minimum(dh, np.float32(1.0) - dh)
    removable = (dh <= GLOW_MAX_HUE_DISTANCE) & \
                (np.abs(hsb[:, :, 1] - bg[1]) <= GLOW_MAX_SATURATION_DISTANCE) & \
                (np.abs(hsb[:, :, 2] - bg[2]) <= GLOW_MAX_BRIGHTNESS_DISTANCE)
    removed = _clear_from_border(image, removable)
    logger.warning("Finished glow removal from edges: %d pixels cleared.", removed)
    return removed


def apply_alpha_threshold(image: Raster, cutoff: int) -> Tuple[int, int]:
    """Alpha below ``cutoff`` -> fully transparent, otherwise fully opaque.

    Returns (made_transparent, made_opaque) counts over non-transparent pixels.
    """
    alpha = image.alpha
    visible = alpha != 0
    to_clear = visible & (alpha < cutoff)
    to_solidify = visible & ~to_clear

    image.pixels[to_clear] = 0
    image.pixels[:, :, 3][to_solidify] = 255

    counts = int(to_clear.sum()), int(to_solidify.sum())
    logger.debug("Alpha threshold done: %d => transparent, %d => opaque.", *counts)
    return counts


def _replace_with_empty(sprite: Sprite, config: PixelatorConfig) -> Raster:
    empty = Raster.blank(config.target_width, config.target_height)
    sprite.replace_pixels(empty)
    sprite.calculate_center_of_mass()
    return empty


def trim_and_scale_sprite(sprite: Sprite, config: PixelatorConfig) -> Raster:
    """Normalise ``sprite`` in place onto a ``target_width x target_height`` canvas.

    The sprite's pixels are replaced by every canvas pixel in canvas-local
    coordinates and its centre of mass is recomputed.

    Returns:
        The final canvas raster.
    """
    logger.debug("Trimming/scaling sprite %d", sprite.label_id)
    tw, th = config.target_width, config.target_height

    cropped = sprite.to_raster()
    if cropped is None or cropped.width == 0 or cropped.height == 0:
        logger.warning("Sprite %d has empty bounding box. Returning a transparent %dx%d image.",
                       sprite.label_id, tw, th)
        return _replace_with_empty(sprite, config)
    if not np.any(cropped.alpha != 0):
        logger.warning("Sprite %d: all pixels are transparent after bounding box. Returning empty.",
                       sprite.label_id)
        return _replace_with_empty(sprite, config)

    box_w, box_h = cropped.width, cropped.height
    scale = compute_scale(box_w, box_h, config)
    scaled_w = max(1, _round_half_up(box_w * scale))
    scaled_h = max(1, _round_half_up(box_h * scale))
    logger.debug("Sprite %d bounding box %dx%d, scale %.3f => %dx%d",
                 sprite.label_id, box_w, box_h, scale, scaled_w, scaled_h)

    scaled = scale_nearest(cropped, scaled_w, scaled_h)
    canvas, offset = center_on_canvas(scaled, tw, th)
    logger.debug("Sprite %d placed at offset %s", sprite.label_id, offset)

    if config.enable_edge_trim:
        remove_near_white_edges(canvas)

    if not config.disable_glow_removal:
        logger.warning("Applying secondary glow removal (discouraged) for sprite %d...",
                       sprite.label_id)
        remove_glow_from_edges(canvas)

    if config.alpha_cutoff > 0:
        apply_alpha_threshold(canvas, config.alpha_cutoff)

    sprite.replace_pixels(canvas)
    sprite.calculate_center_of_mass()
    logger.info("Trim/scale done. Sprite %d => final %dx%d", sprite.label_id, tw, th)
    return canvas
