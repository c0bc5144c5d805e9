"""Sprite entity: an owned list of absolute-coordinate pixel records."""

import logging
from typing import Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from .raster import Raster

logger = logging.getLogger(__name__)


class SpritePixel(NamedTuple):
    x: int
    y: int
    argb: int


class Sprite:
    """A set of pixels extracted from one labelled region (plus anything merged in).

    The centre of mass is cached and recomputed on demand after the pixel list
    changes.  The bounding box is always derived from the pixels.
    """

    def __init__(self, label_id: int, pixels: Optional[Iterable[SpritePixel]] = None):
        self.label_id = label_id
        self.pixels: List[SpritePixel] = list(pixels) if pixels is not None else []
        self._center: Optional[Tuple[float, float]] = None

    def __repr__(self) -> str:
        cx, cy = self.center
        return (f"Sprite(label_id={self.label_id}, pixel_count={self.pixel_count}, "
                f"center=({cx:.2f}, {cy:.2f}))")

    @property
    def pixel_count(self) -> int:
        return len(self.pixels)

    # ---- mutation ----

    def add_pixel(self, x: int, y: int, argb: int) -> None:
        self.pixels.append(SpritePixel(int(x), int(y), int(argb) & 0xFFFFFFFF))
        self._center = None

    def absorb(self, other: "Sprite") -> None:
        """Copy every pixel record of ``other`` onto the end of this sprite."""
        self.pixels.extend(other.pixels)
        self._center = None
        logger.debug("Sprite %d absorbed %d pixels from sprite %d",
                     self.label_id, other.pixel_count, other.label_id)

    def replace_pixels(self, raster: Raster) -> None:
        """Replace the pixel set with every pixel of ``raster`` in local coordinates."""
        h, w = raster.height, raster.width
        argb = raster.to_argb_array().ravel().tolist()
        self.pixels = [SpritePixel(i % w, i // w, v) for i, v in enumerate(argb)] if w else []
        self._center = None
        logger.debug("Replaced pixels for sprite %d with %dx%d canvas", self.label_id, w, h)

    # ---- derived geometry ----

    def calculate_center_of_mass(self) -> Tuple[float, float]:
        if not self.pixels:
            self._center = (0.0, 0.0)
        else:
            n = len(self.pixels)
            self._center = (
                sum(p.x for p in self.pixels) / n,
                sum(p.y for p in self.pixels) / n,
            )
        return self._center

    @property
    def center(self) -> Tuple[float, float]:
        if self._center is None:
            return self.calculate_center_of_mass()
        return self._center

    @property
    def center_x(self) -> float:
        return self.center[0]

    @property
    def center_y(self) -> float:
        return self.center[1]

    def bounding_box(self) -> Optional[Tuple[int, int, int, int]]:
        """(min_x, min_y, width, height) of the pixel set, or None when empty."""
        if not self.pixels:
            return None
        xs = [p.x for p in self.pixels]
        ys = [p.y for p in self.pixels]
        min_x, min_y = min(xs), min(ys)
        return min_x, min_y, max(xs) - min_x + 1, max(ys) - min_y + 1

    def to_raster(self) -> Optional[Raster]:
        """Materialise the sprite cropped to its bounding box.

        When several records share a coordinate the last one in pixel order wins.
        """
        bbox = self.bounding_box()
        if bbox is None:
            logger.warning("to_raster called on sprite %d with no pixels", self.label_id)
            return None
        min_x, min_y, w, h = bbox

        data = np.array(self.pixels, dtype=np.int64)
        flat = (data[:, 1] - min_y) * w + (data[:, 0] - min_x)
        # keep the last occurrence of each coordinate
        _, first_in_reversed = np.unique(flat[::-1], return_index=True)
        keep = len(flat) - 1 - first_in_reversed

        argb = np.zeros(w * h, dtype=np.uint32)
        argb[flat[keep]] = data[keep, 2].astype(np.uint32)
        return Raster.from_argb_array(argb.reshape(h, w))
