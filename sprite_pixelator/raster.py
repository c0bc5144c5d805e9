"""RGBA raster with ARGB pixel access.

Pixels live in an ``(height, width, 4)`` uint8 numpy array in RGBA order, the
same layout Pillow hands back from ``np.array(img)``.  Individual pixels are
read and written as packed 32-bit ARGB integers (alpha in the top byte).
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

TRANSPARENT = 0x00000000


def argb_to_rgba(argb: int) -> tuple:
    """Unpack a 32-bit ARGB value into an (r, g, b, a) tuple."""
    argb &= 0xFFFFFFFF
    return (
        (argb >> 16) & 0xFF,
        (argb >> 8) & 0xFF,
        argb & 0xFF,
        (argb >> 24) & 0xFF,
    )


def rgba_to_argb(r: int, g: int, b: int, a: int) -> int:
    return ((int(a) & 0xFF) << 24) | ((int(r) & 0xFF) << 16) | ((int(g) & 0xFF) << 8) | (int(b) & 0xFF)


class Raster:
    """Mutable RGBA image addressed by (x, y)."""

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected an (H, W, 4) array, got shape {pixels.shape}")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    # ---- construction ----

    @classmethod
    def blank(cls, width: int, height: int) -> "Raster":
        """Fully transparent raster of the given size."""
        return cls(np.zeros((max(0, height), max(0, width), 4), dtype=np.uint8))

    @classmethod
    def from_argb_array(cls, argb: np.ndarray) -> "Raster":
        """Build a raster from an (H, W) array of packed ARGB integers."""
        packed = np.asarray(argb, dtype=np.uint32)
        rgba = np.stack(
            [
                (packed >> 16) & 0xFF,
                (packed >> 8) & 0xFF,
                packed & 0xFF,
                (packed >> 24) & 0xFF,
            ],
            axis=-1,
        ).astype(np.uint8)
        return cls(rgba)

    @classmethod
    def from_image(cls, image: Image.Image) -> "Raster":
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Raster":
        with Image.open(path) as img:
            return cls.from_image(img)

    # ---- geometry ----

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    def __repr__(self) -> str:
        return f"Raster({self.width}x{self.height})"

    # ---- pixel access ----

    def _check_bounds(self, x: int, y: int) -> None:
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            raise IndexError(
                f"Coordinate ({x}, {y}) out of bounds for {self.width}x{self.height} raster"
            )

    def get_argb(self, x: int, y: int) -> int:
        self._check_bounds(x, y)
        r, g, b, a = self.pixels[y, x]
        return rgba_to_argb(r, g, b, a)

    def set_argb(self, x: int, y: int, argb: int) -> None:
        self._check_bounds(x, y)
        self.pixels[y, x] = argb_to_rgba(argb)

    def to_argb_array(self) -> np.ndarray:
        """Packed ARGB values as an (H, W) uint32 array."""
        p = self.pixels.astype(np.uint32)
        return (p[:, :, 3] << 24) | (p[:, :, 0] << 16) | (p[:, :, 1] << 8) | p[:, :, 2]

    def copy(self) -> "Raster":
        return Raster(self.pixels.copy())

    # ---- I/O ----

    def to_image(self) -> Image.Image:
        # (H, W, 4) uint8 is inferred as RGBA
        return Image.fromarray(self.pixels)

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_image().save(path)
        return path
