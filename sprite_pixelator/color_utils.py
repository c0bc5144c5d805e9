"""Colour helpers: binning, HSB conversion, hue distance."""

import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from .raster import Raster

logger = logging.getLogger(__name__)


class InvalidHSBError(ValueError):
    """Raised when an HSB triple is missing or empty."""


def bin_color_argb(argb: int, bin_size: int) -> int:
    """Quantise the RGB channels of an ARGB value down to multiples of ``bin_size``.

    Alpha is left untouched; ``bin_size <= 1`` returns the value unchanged.
    """
    if bin_size <= 1:
        return argb
    a = (argb >> 24) & 0xFF
    r = min(255, (((argb >> 16) & 0xFF) // bin_size) * bin_size)
    g = min(255, (((argb >> 8) & 0xFF) // bin_size) * bin_size)
    b = min(255, ((argb & 0xFF) // bin_size) * bin_size)
    return (a << 24) | (r << 16) | (g << 8) | b


def bin_raster_colors(raster: Raster, bin_size: int) -> Raster:
    """Apply :func:`bin_color_argb` to every pixel of a raster (returns a copy)."""
    out = raster.copy()
    if bin_size <= 1:
        return out
    rgb = out.pixels[:, :, :3].astype(np.int32)
    out.pixels[:, :, :3] = np.minimum(255, (rgb // bin_size) * bin_size).astype(np.uint8)
    return out


def rgb_to_hsb(rgb: np.ndarray) -> np.ndarray:
    """Convert uint8 RGB values (shape ``(..., 3)``) to HSB floats in [0, 1]."""
    rgb = np.asarray(rgb, dtype=np.uint8)
    lead_shape = rgb.shape[:-1]
    flat = rgb.reshape(1, -1, 3)
    if flat.shape[1] == 0:
        return np.zeros(lead_shape + (3,), dtype=np.float32)
    hsv = cv2.cvtColor(flat.astype(np.float32) / 255.0, cv2.COLOR_RGB2HSV)
    # float input gives hue in degrees
    hsv[:, :, 0] /= 360.0
    return hsv.reshape(lead_shape + (3,))


def argb_to_hsb(argb: int) -> Tuple[float, float, float]:
    """HSB of a single ARGB value; alpha is ignored."""
    rgb = np.array([(argb >> 16) & 0xFF, (argb >> 8) & 0xFF, argb & 0xFF], dtype=np.uint8)
    h, s, b = rgb_to_hsb(rgb)
    return float(h), float(s), float(b)


def hue_distance(hsb1: Optional[Sequence[float]], hsb2: Optional[Sequence[float]]) -> float:
    """Cyclic distance between two hues on the unit circle, in [0, 0.5]."""
    if hsb1 is None or hsb2 is None or len(hsb1) < 1 or len(hsb2) < 1:
        logger.warning("Invalid HSB input for hue distance calculation.")
        raise InvalidHSBError("Invalid HSB input for hue distance calculation.")
    dh = abs(float(hsb1[0]) - float(hsb2[0])) % 1.0
    return min(dh, 1.0 - dh)


def has_transparent_pixel(raster: Optional[Raster]) -> bool:
    if raster is None:
        return False
    return bool(np.any(raster.alpha == 0))
