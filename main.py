#!/usr/bin/env python3
"""
tinysam command line

Segments an image from clicks and writes the mask as an RGBA PNG
(transparent background, opaque foreground).

Usage:
    python main.py IMAGE --click X,Y[:include|exclude] [--click ...] [--output MASK]

Examples:
    python main.py photo.jpg --click 320,240
    python main.py photo.jpg --click 320,240 --click 40,40:exclude -o mask.png
    python main.py photo.jpg --click 320,240 --encoder-model models/encoder.onnx
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

import tinysam
from tinysam import Click, ClickType, InitOptions, SegmentationError, SourceImage
from tinysam.backends import BackendLoader
from tinysam.core.config import load_config


DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "settings.yaml"


# ============================================================
# LOGGING CONFIGURATION
# ============================================================

def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging."""
    logger.remove()  # Remove default handler

    # Console output with colors
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        colorize=True,
    )

    # File output
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {module}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )


# ============================================================
# ARGUMENT PARSING
# ============================================================

def parse_click(value: str) -> Click:
    """Parse "X,Y" or "X,Y:include|exclude"."""
    coords, _, kind = value.partition(":")
    try:
        x_text, y_text = coords.split(",")
        x, y = float(x_text), float(y_text)
        return Click(x, y, ClickType.parse(kind or "include"))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid click '{value}': {e}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Click-driven image segmentation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("image", type=str, help="Image file to segment")

    parser.add_argument(
        "--click",
        type=parse_click,
        action="append",
        default=[],
        dest="clicks",
        help="Prompt point X,Y with optional :include/:exclude (repeatable)",
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Mask output path (default: <image>_mask.png)",
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH.name} if present)",
    )

    parser.add_argument("--encoder-model", type=str, default=None, help="Encoder model path or URL")
    parser.add_argument("--decoder-model", type=str, default=None, help="Decoder model path or URL")

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file path",
    )

    return parser


# ============================================================
# ENTRY POINT
# ============================================================

async def run(args: argparse.Namespace, backend_loader: Optional[BackendLoader] = None) -> int:
    config_path = args.config or (DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None)
    segmenter = tinysam.configure(load_config(config_path), backend_loader=backend_loader)

    overrides = None
    if args.encoder_model or args.decoder_model:
        overrides = InitOptions(
            encoder_model_path=args.encoder_model,
            decoder_model_path=args.decoder_model,
        )
    await segmenter.initialize(overrides)

    image = SourceImage.from_file(args.image)
    session = segmenter.create_session(image)
    try:
        for click in args.clicks:
            session.add_click(click.x, click.y, click.kind)

        mask = await session.segment(image)
        if mask is None:
            logger.warning("No clicks given, nothing to segment")
            return 1

        output = Path(args.output) if args.output else Path(args.image).with_name(
            f"{Path(args.image).stem}_mask.png"
        )
        mask.save(output)
        logger.info(f"Wrote {mask.width}x{mask.height} mask ({mask.area} px) to {output}")
        return 0
    finally:
        session.dispose()


def main(argv: Optional[List[str]] = None, backend_loader: Optional[BackendLoader] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    try:
        return asyncio.run(run(args, backend_loader))
    except SegmentationError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
