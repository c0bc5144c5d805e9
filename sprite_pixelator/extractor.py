"""Group labelled pixels into sprites, drop noise, fold leftovers into the top N.

Leftover merging happens in two passes:
  1. Leftovers whose centres of mass are close are unified with each other
     (greedy: merge the first close pair found, then rescan from the start).
  2. Each unified leftover is folded into the nearest of the top-N sprites.
"""

import logging
import math
from typing import Dict, List, Optional

import numpy as np

from .config import LEFTOVER_UNIFY_DISTANCE, MIN_PIXEL_COUNT_THRESHOLD, PixelatorConfig
from .raster import Raster
from .sprite import Sprite

logger = logging.getLogger(__name__)


def _group_pixels(raster: Raster, labels: np.ndarray) -> Dict[int, Sprite]:
    argb_rows = raster.to_argb_array().tolist()
    sprites: Dict[int, Sprite] = {}

    ys, xs = np.nonzero(labels > 0)
    for y, x in zip(ys.tolist(), xs.tolist()):
        label = int(labels[y, x])
        sprite = sprites.get(label)
        if sprite is None:
            sprite = sprites[label] = Sprite(label)
        try:
            argb = argb_rows[y][x]
        except IndexError:
            logger.error("Coordinate (%d, %d) out of bounds while reading colour for label %d",
                         x, y, label)
            continue
        sprite.add_pixel(x, y, argb)
    return sprites


def _find_closest_sprite(candidates: List[Sprite], x: float, y: float) -> Optional[Sprite]:
    closest = None
    min_dist = math.inf
    for sprite in candidates:
        dx = sprite.center_x - x
        dy = sprite.center_y - y
        dist_sq = dx * dx + dy * dy
        if dist_sq < min_dist:
            min_dist = dist_sq
            closest = sprite
    return closest


def unify_close_sprites(leftovers: List[Sprite],
                        max_distance: float = LEFTOVER_UNIFY_DISTANCE) -> List[Sprite]:
    """Merge leftovers whose centres of mass are closer than ``max_distance``.

    Repeatedly scans pairs (i, j > i) in list order; the first close pair is
    merged (j into i), and the scan restarts.  Stops when no pair is close.
    """
    working = list(leftovers)
    merged_something = True
    while merged_something:
        merged_something = False
        for i in range(len(working)):
            s1 = working[i]
            for j in range(i + 1, len(working)):
                s2 = working[j]
                dist = math.hypot(s1.center_x - s2.center_x, s1.center_y - s2.center_y)
                if dist < max_distance:
                    s1.absorb(s2)
                    s1.calculate_center_of_mass()
                    del working[j]
                    merged_something = True
                    break
            if merged_something:
                break
    return working


def extract_sprites(
    raster: Optional[Raster],
    labels: Optional[np.ndarray],
    expected_count: int,
    config: PixelatorConfig,
) -> List[Sprite]:
    """Build sprites from a label grid.

    Args:
        raster: Source image the labels were computed on (colour lookup).
        labels: (H, W) label grid, 0 = background.
        expected_count: Number of principal sprites to keep when merging.
        config: Supplies ``enable_leftover_merge``.

    Returns:
        Sprites sorted by descending pixel count (ties by label id).  Without
        leftover merging every sprite that survives the noise floor is
        returned, which may be more than ``expected_count``.
    """
    logger.info("Starting sprite extraction...")
    if raster is None or labels is None or labels.ndim != 2 or labels.size == 0:
        logger.error("Invalid input provided (None or empty image/labels).")
        return []

    sprites = _group_pixels(raster, labels)
    for sprite in sprites.values():
        sprite.calculate_center_of_mass()

    all_sprites = [s for s in sprites.values() if s.pixel_count >= MIN_PIXEL_COUNT_THRESHOLD]
    all_sprites.sort(key=lambda s: (-s.pixel_count, s.label_id))
    logger.debug("Extracted %d sprites after noise filtering (%d regions before).",
                 len(all_sprites), len(sprites))

    if len(all_sprites) <= expected_count or not config.enable_leftover_merge:
        logger.info("Sprite extraction complete; no merging required (%d sprites).",
                    len(all_sprites))
        return all_sprites

    main_sprites = all_sprites[:expected_count]
    leftovers = unify_close_sprites(all_sprites[expected_count:])
    logger.debug("Unified %d leftovers into %d clusters.",
                 len(all_sprites) - expected_count, len(leftovers))

    for leftover in leftovers:
        leftover.calculate_center_of_mass()
        closest = _find_closest_sprite(main_sprites, leftover.center_x, leftover.center_y)
        if closest is None:
            logger.warning("No main sprite found for leftover %d", leftover.label_id)
            continue
        closest.absorb(leftover)
        closest.calculate_center_of_mass()

    logger.info("Merging complete. Returning %d final sprites.", len(main_sprites))
    return main_sprites
