#!/usr/bin/env python3
"""
Command-line batch watermarking.

Tiles a text watermark across every image in a folder and writes the results
under the same filenames into an output folder. Settings can come from flags,
from a JSON file (``--settings-json``), or both; flags win.
"""

import argparse
import logging
import sys
from dataclasses import fields
from pathlib import Path
from typing import List, Optional

from tilemark.batch import ProgressEvent, process_folder
from tilemark.errors import SettingsError
from tilemark.imaging import DEFAULT_QUALITY
from tilemark.settings import WatermarkSettings, format_color, load_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    defaults = WatermarkSettings()
    parser = argparse.ArgumentParser(
        prog="tilemark",
        description="Tile a text watermark across every image in a folder.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-i", "--input", type=Path, required=True, default=argparse.SUPPRESS, help="Folder containing source images."
    )
    parser.add_argument(
        "-o", "--output", type=Path, required=True, default=argparse.SUPPRESS,
        help="Folder to write watermarked images.",
    )
    # Flags left unset are absent from the namespace; the given ones override the settings file.
    group = parser.add_argument_group("watermark settings")
    unset = argparse.SUPPRESS
    group.add_argument("-t", "--text", default=unset, help=f"Watermark text (default: {defaults.text}).")
    group.add_argument(
        "--font-size", type=int, default=unset, help=f"Font size in pixels (default: {defaults.font_size})."
    )
    group.add_argument(
        "--color", default=unset, help=f"Text colour as #RRGGBB (default: {format_color(defaults.color)})."
    )
    group.add_argument(
        "--rotation", type=int, default=unset,
        help=f"Grid rotation in degrees, -180..180 (default: {defaults.rotation}).",
    )
    group.add_argument(
        "--h-spacing", type=int, default=unset,
        help=f"Horizontal spacing per 1000px of short side (default: {defaults.h_spacing}).",
    )
    group.add_argument(
        "--v-spacing", type=int, default=unset,
        help=f"Vertical spacing per 1000px of short side (default: {defaults.v_spacing}).",
    )
    group.add_argument(
        "--opacity", type=int, default=unset, help=f"Text opacity percent, 0..100 (default: {defaults.opacity})."
    )
    group.add_argument(
        "--density", type=int, default=unset,
        help=f"Tiling density, 1 (sparse) .. 10 (dense) (default: {defaults.density}).",
    )

    parser.add_argument(
        "--settings-json",
        type=Path,
        default=argparse.SUPPRESS,
        help='JSON file with watermark settings, e.g. {"text": "SAMPLE", "fontSize": 40, "color": "#FF0000"}.',
    )
    parser.add_argument("--quality", type=int, default=DEFAULT_QUALITY, help="JPEG/WebP quality for output.")
    parser.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        default="INFO",
        help="Logging verbosity.",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> WatermarkSettings:
    settings = WatermarkSettings()
    if hasattr(args, "settings_json"):
        settings = load_settings(args.settings_json, base=settings)
    overrides = {f.name: getattr(args, f.name) for f in fields(WatermarkSettings) if hasattr(args, f.name)}
    return WatermarkSettings.from_mapping(overrides, base=settings)


def print_progress(event: ProgressEvent) -> None:
    status = "ok" if event.ok else "FAILED"
    print(f"[{event.processed}/{event.total}] {event.filename} {status}", flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = settings_from_args(args)
        settings.require_text()
        result = process_folder(args.input, args.output, settings, progress=print_progress, quality=args.quality)
    except SettingsError as exc:
        logger.error("%s", exc)
        return 2

    if not result.success:
        print(f"Batch failed: {result.message}")
        return 1

    print(f"Processed {result.processed}/{result.total} image(s) into {args.output}")
    for filename, error in result.errors:
        print(f"  failed: {filename}: {error}")
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
