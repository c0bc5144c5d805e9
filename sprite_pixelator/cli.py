"""Command line interface for the sprite pixelator.

Usage:
    python -m sprite_pixelator.cli <inputs...> -o <output>  [--size 64x64] [--top 4]
                                   [--formats png,svg] [--config cfg.json]

Each input image gets its own ``<output>/<stem>/`` directory containing the
stage diagnostics and one ``sprite_<i>.png`` (and ``.svg``) per sprite.

Examples
--------

Extract the four largest sprites of every image in ``in/`` at 64x64::

    python -m sprite_pixelator.cli in -o out --top 4 --formats png,svg

Merge stray fragments into the main sprites and trim white halos::

    python -m sprite_pixelator.cli in/sheet.png -o out --merge-leftovers --edge-trim
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .config import BACKGROUND_MODES, PixelatorConfig, load_config

logger = logging.getLogger("sprite_pixelator")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}


def _setup_logging(level_name: str = "INFO", debug: bool = False):
    level = logging.DEBUG if debug else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _gather_images(inputs: Sequence[str], recursive: bool = False) -> List[Path]:
    """Collect image paths from file/directory arguments."""
    paths = []
    for inp in inputs:
        p = Path(inp)
        if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS:
            paths.append(p)
        elif p.is_dir():
            pattern = p.rglob("*") if recursive else p.glob("*")
            paths.extend(sorted(c for c in pattern
                                if c.is_file() and c.suffix.lower() in IMAGE_EXTENSIONS))
        else:
            logger.warning("Skipping input %s (not an image file or directory)", inp)
    return paths


def _parse_size(value: str) -> Tuple[int, int]:
    parts = value.lower().split("x")
    try:
        w = int(parts[0])
        h = int(parts[1]) if len(parts) > 1 else w
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid size {value!r}, expected WxH")
    return w, h


def build_config(args) -> PixelatorConfig:
    """Config file (if any) with command line overrides applied on top."""
    config = load_config(args.config) if args.config else PixelatorConfig()

    width, height = args.size if args.size else (None, None)
    formats = None
    if args.formats:
        formats = tuple(f.strip() for f in args.formats.split(",") if f.strip())

    return config.with_overrides(
        target_width=width,
        target_height=height,
        top_n_sprites=args.top,
        min_noise_size=args.min_noise,
        output_formats=formats,
        uniform_scale=args.uniform_scale,
        alpha_cutoff=args.alpha_cutoff,
        enable_edge_trim=True if args.edge_trim else None,
        enable_leftover_merge=True if args.merge_leftovers else None,
        disable_glow_removal=False if args.glow_removal else None,
        background_mode=args.background,
        user_id=args.user_id,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sprite_pixelator",
        description="Extract, normalise and vectorise sprites from noisy pixel-art images.",
    )
    parser.add_argument("inputs", nargs="+", help="Image files or directories")
    parser.add_argument("-o", "--output-dir", required=True, help="Output directory")
    parser.add_argument("-r", "--recursive", action="store_true",
                        help="Recurse into input directories")
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--size", type=_parse_size, default=None,
                        help="Target canvas, e.g. 64x64")
    parser.add_argument("--top", type=int, default=None,
                        help="Number of sprites to keep")
    parser.add_argument("--min-noise", type=int, default=None,
                        help="Minimum component size for tolerant background removal")
    parser.add_argument("--formats", default=None,
                        help="Comma-separated output formats (png,svg)")
    parser.add_argument("--uniform-scale", type=float, default=None,
                        help="Fixed scale factor instead of fit-to-canvas")
    parser.add_argument("--alpha-cutoff", type=int, default=None,
                        help="Alpha below this becomes transparent (0 disables)")
    parser.add_argument("--edge-trim", action="store_true",
                        help="Remove near-white fuzz connected to the canvas border")
    parser.add_argument("--merge-leftovers", action="store_true",
                        help="Fold fragments beyond --top into the nearest sprite")
    parser.add_argument("--glow-removal", action="store_true",
                        help="Enable secondary glow removal (discouraged)")
    parser.add_argument("--background", choices=BACKGROUND_MODES, default=None,
                        help="Background removal strategy (default: exact)")
    parser.add_argument("--user-id", default=None,
                        help="Write outputs under <output>/<stem>/<user-id>/")
    parser.add_argument("--grid-previews", action="store_true",
                        help="Also save blown-up sprite previews with a pixel grid")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    from .service import process_image

    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        _setup_logging(debug=args.debug)
        logger.error("Invalid configuration: %s", e)
        return 2
    _setup_logging(config.log_level, args.debug)

    image_paths = _gather_images(args.inputs, recursive=args.recursive)
    if not image_paths:
        logger.error("No images found in %s", args.inputs)
        return 1

    output_dir = Path(args.output_dir)
    failures = 0
    for img_path in image_paths:
        try:
            written = process_image(img_path, output_dir / img_path.stem, config,
                                    grid_previews=args.grid_previews)
        except OSError as e:
            logger.error("Failed to process %s: %s", img_path, e)
            failures += 1
            continue
        logger.info("  → %s: %d files", img_path.name, len(written))

    logger.info("Processed %d images (%d failed)", len(image_paths), failures)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
