"""Pixelator configuration: thresholds, target canvas, output formats."""

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fixed pipeline constants
# ---------------------------------------------------------------------------

# Regions with fewer pixels than this never become sprites.
MIN_PIXEL_COUNT_THRESHOLD = 10

# Leftover fragments whose centres of mass are closer than this are unified.
LEFTOVER_UNIFY_DISTANCE = 20.0

SUPPORTED_FORMATS = ("png", "svg")
BACKGROUND_MODES = ("exact", "tolerant")


@dataclass(frozen=True)
class PixelatorConfig:
    """Immutable settings shared by every pipeline stage."""

    # Preprocessing
    erosion_neighbors_threshold: int = 0     # reserved
    dilation_neighbors_threshold: int = 0    # reserved
    min_noise_size: int = 0                  # tolerant background path only
    color_binning_size: int = 0              # bin_raster_colors only
    background_mode: str = "exact"           # "exact" | "tolerant"

    # Sprite extraction
    top_n_sprites: int = 1
    enable_leftover_merge: bool = False

    # Trim / scale
    target_width: int = 64
    target_height: int = 64
    uniform_scale: float = 0.0               # <= 0 means fit to canvas
    alpha_cutoff: int = 120                  # 0 disables solidify
    enable_edge_trim: bool = False
    disable_glow_removal: bool = True

    # Output
    output_formats: Tuple[str, ...] = ("png",)
    user_id: str = ""
    log_level: str = "INFO"

    def __post_init__(self):
        formats = tuple(str(f).lower() for f in self.output_formats)
        object.__setattr__(self, "output_formats", formats)

        if self.target_width <= 0 or self.target_height <= 0:
            raise ValueError(
                f"Target size must be positive, got {self.target_width}x{self.target_height}"
            )
        if self.top_n_sprites < 0:
            raise ValueError(f"top_n_sprites must be >= 0, got {self.top_n_sprites}")
        if not 0 <= self.alpha_cutoff <= 255:
            raise ValueError(f"alpha_cutoff must be in 0..255, got {self.alpha_cutoff}")
        unknown = [f for f in formats if f not in SUPPORTED_FORMATS]
        if unknown:
            raise ValueError(f"Unsupported output format(s): {', '.join(unknown)}")
        if self.background_mode not in BACKGROUND_MODES:
            raise ValueError(f"Unknown background mode: {self.background_mode!r}")

    @property
    def wants_svg(self) -> bool:
        return "svg" in self.output_formats

    def with_overrides(self, **overrides) -> "PixelatorConfig":
        """Return a copy with the given fields replaced (None values ignored)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["output_formats"] = list(self.output_formats)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "PixelatorConfig":
        known = {f.name for f in fields(cls)}
        ignored = sorted(k for k in d if k not in known)
        if ignored:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(ignored))
        kwargs = {k: v for k, v in d.items() if k in known}
        if "output_formats" in kwargs:
            value = kwargs["output_formats"]
            if isinstance(value, str):
                value = [s.strip() for s in value.split(",") if s.strip()]
            kwargs["output_formats"] = tuple(value)
        return cls(**kwargs)


def load_config(path: Union[str, Path]) -> PixelatorConfig:
    """Read a PixelatorConfig from a JSON file."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    logger.debug("Loaded config from %s", path)
    return PixelatorConfig.from_dict(data)
