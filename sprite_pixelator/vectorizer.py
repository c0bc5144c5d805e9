"""Render a normalised sprite as an SVG of unit-square rectangles.

One ``<rect>`` per fully opaque pixel, in row-major order.  Partially
transparent pixels are skipped; after alpha solidify there are none.
"""

import logging
from typing import List, Optional

import numpy as np

from .raster import Raster
from .sprite import Sprite

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"


def empty_svg(width: int = 0, height: int = 0) -> str:
    return f'<svg xmlns="{SVG_NS}" width="{width}" height="{height}"></svg>'


def raster_to_svg(raster: Optional[Raster]) -> str:
    """SVG document with the raster's dimensions and a rect per opaque pixel."""
    if raster is None:
        return empty_svg()
    width, height = raster.width, raster.height
    if width == 0 or height == 0:
        return empty_svg(width, height)

    parts: List[str] = [
        f'<svg xmlns="{SVG_NS}" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}" shape-rendering="crispEdges">'
    ]
    ys, xs = np.nonzero(raster.alpha == 255)
    rgb = raster.pixels[ys, xs, :3].tolist()
    for x, y, (r, g, b) in zip(xs.tolist(), ys.tolist(), rgb):
        parts.append(
            f'<rect x="{x}" y="{y}" width="1" height="1" fill="#{r:02X}{g:02X}{b:02X}"/>'
        )
    parts.append("</svg>")
    logger.debug("Generated SVG %dx%d with %d opaque pixel rectangles.", width, height, len(ys))
    return "".join(parts)


def vectorize_sprite(sprite: Optional[Sprite]) -> str:
    """Vectorise a sprite (normally one already run through the normaliser)."""
    if sprite is None:
        logger.warning("Cannot vectorize None sprite. Returning empty SVG.")
        return empty_svg()

    image = sprite.to_raster()
    if image is None or image.width == 0 or image.height == 0:
        logger.warning("Sprite %d has no pixels. Returning empty SVG.", sprite.label_id)
        return empty_svg()

    logger.debug("Vectorizing sprite %d (%dx%d)", sprite.label_id, image.width, image.height)
    return raster_to_svg(image)
