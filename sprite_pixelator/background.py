"""Background isolation.

Two strategies:
  1. Exact corner-colour removal (default).  The pixel at (0, 0) names the
     background; every pixel with exactly that RGB becomes transparent.
  2. Tolerant removal (opt-in).  HSV border flood fill, colour-distance
     expansion, morphological cleanup and small-component removal.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from .raster import Raster

logger = logging.getLogger(__name__)

# 3x3 rectangular kernel for open/close cleanup of the tolerant mask
MORPH_KERNEL_SIZE = (3, 3)


# ---- Strategy 1: exact corner colour ----

def isolate_background(raster: Optional[Raster]) -> Optional[Raster]:
    """Make every pixel matching the RGB of pixel (0, 0) fully transparent.

    Alpha of the reference pixel is ignored.  Non-matching pixels are copied
    unchanged, including their alpha.  The input raster is not modified.
    """
    if raster is None:
        logger.error("Input image is None; nothing to isolate.")
        return None
    logger.info("Starting background isolation on %dx%d image...", raster.width, raster.height)

    result = raster.copy()
    if raster.width == 0 or raster.height == 0:
        return result

    reference = raster.pixels[0, 0, :3]
    matches = np.all(raster.pixels[:, :, :3] == reference, axis=2)
    result.pixels[matches] = 0

    logger.info("Background isolation complete: %d pixels cleared (reference RGB %02X%02X%02X).",
                int(matches.sum()), *(int(c) for c in reference))
    return result


# ---- Strategy 2: tolerant HSV flood fill ----

def _dominant_border_hsv(hsv: np.ndarray) -> np.ndarray:
    """Mean HSV over every border pixel (each counted once)."""
    rows, cols = hsv.shape[:2]
    if rows < 2 or cols < 2:
        return np.zeros(3, dtype=np.float64)
    strips = [
        hsv[0, :, :],
        hsv[rows - 1, :, :],
        hsv[1:rows - 1, 0, :],
        hsv[1:rows - 1, cols - 1, :],
    ]
    border = np.concatenate([s.reshape(-1, 3) for s in strips], axis=0).astype(np.float64)
    return border.mean(axis=0)


def _flood_fill_background(hsv: np.ndarray, h_tol: int, s_tol: int, v_tol: int) -> np.ndarray:
    """Flood the background from every border pixel; returns a 0/255 foreground mask."""
    rows, cols = hsv.shape[:2]
    flood_mask = np.zeros((rows + 2, cols + 2), dtype=np.uint8)
    tolerance = (h_tol, s_tol, v_tol)
    flags = 4 | cv2.FLOODFILL_FIXED_RANGE | cv2.FLOODFILL_MASK_ONLY | (1 << 8)

    seeds = []
    for x in range(cols):
        seeds.append((x, 0))
        seeds.append((x, rows - 1))
    for y in range(rows):
        seeds.append((0, y))
        seeds.append((cols - 1, y))

    for x, y in seeds:
        if flood_mask[y + 1, x + 1] == 0:
            cv2.floodFill(hsv, flood_mask, (x, y), 0, tolerance, tolerance, flags)

    filled = flood_mask[1:rows + 1, 1:cols + 1]
    return np.where(filled == 0, 255, 0).astype(np.uint8)


def _expand_background(mask: np.ndarray, hsv: np.ndarray, bg_hsv: np.ndarray,
                       h_tol: int, s_tol: int, v_tol: int) -> None:
    """Clear foreground pixels that are within tolerance of the background colour."""
    h = hsv[:, :, 0].astype(np.int32)
    s = hsv[:, :, 1].astype(np.int32)
    v = hsv[:, :, 2].astype(np.int32)
    bg_h, bg_s, bg_v = (int(c) for c in bg_hsv)

    dh = np.abs(h - bg_h)
    # OpenCV 8-bit hue wraps at 180
    hue_close = (dh <= h_tol) | (dh >= 180 - h_tol)
    close = hue_close & (np.abs(s - bg_s) <= s_tol) & (np.abs(v - bg_v) <= v_tol)
    mask[(mask == 255) & close] = 0


def _refine_mask_morphology(mask: np.ndarray) -> np.ndarray:
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, MORPH_KERNEL_SIZE)
    mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel)
    return cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel)


def _remove_small_noise(mask: np.ndarray, min_size: int) -> None:
    if min_size <= 0:
        return
    num_labels, labels, stats, _ = cv2.connectedComponentsWithStats(mask, connectivity=8)
    if num_labels <= 1:
        return
    small = np.where(stats[:, cv2.CC_STAT_AREA] < min_size)[0]
    small = small[small != 0]
    if len(small):
        mask[np.isin(labels, small)] = 0
        logger.debug("Removed %d noise components smaller than %d px", len(small), min_size)


def remove_background_tolerant(
    raster: Optional[Raster],
    min_noise_size: int = 0,
    hue_tol: int = 10,
    sat_tol: int = 40,
    val_tol: int = 40,
) -> Optional[Raster]:
    """Remove a roughly uniform background touching the image border.

    Args:
        raster: Source image.
        min_noise_size: Foreground components smaller than this are dropped.
        hue_tol, sat_tol, val_tol: Tolerances in OpenCV 8-bit HSV units
            (hue 0-179, saturation and value 0-255).

    Returns:
        A new raster whose alpha is 0 or 255; cleared pixels are 0x00000000.
    """
    if raster is None:
        logger.error("Input image is None; nothing to isolate.")
        return None
    if raster.width == 0 or raster.height == 0:
        return raster.copy()
    logger.info("Starting tolerant background removal on %dx%d image...",
                raster.width, raster.height)

    rgb = np.ascontiguousarray(raster.pixels[:, :, :3])
    hsv = cv2.cvtColor(rgb, cv2.COLOR_RGB2HSV)
    bg_hsv = _dominant_border_hsv(hsv)
    logger.debug("Dominant background HSV: (%.1f, %.1f, %.1f)", *bg_hsv)

    mask = _flood_fill_background(hsv, hue_tol, sat_tol, val_tol)
    _expand_background(mask, hsv, bg_hsv, hue_tol, sat_tol, val_tol)
    mask = _refine_mask_morphology(mask)
    _remove_small_noise(mask, min_noise_size)

    result = Raster(np.dstack([rgb, mask]))
    result.pixels[mask == 0] = 0
    logger.info("Tolerant background removal complete: %d foreground pixels kept.",
                int(np.count_nonzero(mask)))
    return result
