"""Command line interface for uhd_slideshow."""
from __future__ import annotations

import argparse
import logging
import os
import sys

import yaml

from .compositor import COLLISION_POLICIES
from .config import DEFAULT_DURATION, DEFAULT_SLIDESHOW, JPEG_QUALITY, OUTPUT_DIR
from .converter import convert_images, discover_images, print_summary
from .errors import AssemblyError, WriteError
from .slideshow import ENGINES, generate_slideshow
from .validate import validate_args


def _positive_int(x: str) -> int:
    v = int(x)
    if v < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return v


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uhd-slideshow",
        description="Convert photos to UHD canvases and build slideshows",
    )
    parser.add_argument(
        "folder",
        nargs="?",
        default=".",
        help="Folder with the photos to convert (default: current directory)",
    )
    parser.add_argument(
        "--slideshow",
        action="store_true",
        help="Build a slideshow from the converted images only",
    )
    parser.add_argument(
        "--all",
        "-a",
        action="store_true",
        help="Convert images and build the slideshow in one run",
    )
    parser.add_argument(
        "--duration",
        "-d",
        type=float,
        default=DEFAULT_DURATION,
        metavar="SECONDS",
        help="Seconds each image stays on screen",
    )
    parser.add_argument(
        "--output",
        "-o",
        default=DEFAULT_SLIDESHOW,
        metavar="FILE",
        help="Slideshow output file",
    )
    parser.add_argument(
        "--converted-dir",
        default=OUTPUT_DIR,
        help="Directory receiving the converted images",
    )
    parser.add_argument("--quality", type=int, default=JPEG_QUALITY, help="JPEG quality (1-100)")
    parser.add_argument(
        "--on-collision",
        choices=COLLISION_POLICIES,
        default="overwrite",
        help="What to do when two photos resolve to the same name",
    )
    parser.add_argument("--jobs", "-j", type=_positive_int, default=1, help="Parallel conversions")
    parser.add_argument("--engine", choices=ENGINES, default="ffmpeg", help="Slideshow encoder")
    parser.add_argument(
        "--profile",
        choices=["preview", "standard", "quality"],
        default="standard",
        help="Encoder quality profile",
    )
    parser.add_argument("--codec", choices=["h264", "hevc"], default="h264")
    parser.add_argument("--ffmpeg", help="Path to ffmpeg binary")
    parser.add_argument(
        "--preset",
        action="append",
        default=[],
        help="Path to YAML preset overriding defaults",
    )
    parser.add_argument("--validate", action="store_true", help="Validate arguments and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    prelim, _ = parser.parse_known_args(argv)
    for path in prelim.preset:
        with open(path, "r", encoding="utf8") as fh:
            data = yaml.safe_load(fh) or {}
        parser.set_defaults(**{k.replace("-", "_"): v for k, v in data.items()})
    return parser.parse_args(argv)


def _run_conversion(args: argparse.Namespace) -> None:
    print("🔄 Converting images to UHD...")
    if not os.path.isdir(args.folder):
        print(f"❌ Input folder not found: {args.folder}", file=sys.stderr)
        raise SystemExit(1)
    paths = discover_images(args.folder)
    if not paths:
        print(f"⚠️ No JPEG images found in {args.folder}")
    report = convert_images(
        paths,
        args.converted_dir,
        quality=args.quality,
        on_collision=args.on_collision,
        jobs=args.jobs,
    )
    print_summary(report, args.converted_dir)


def _run_slideshow(args: argparse.Namespace) -> None:
    print("🎬 Building slideshow...")
    generate_slideshow(
        args.duration,
        args.output,
        directory=args.converted_dir,
        engine=args.engine,
        profile=args.profile,
        codec=args.codec,
        ffmpeg=args.ffmpeg,
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    errs = validate_args(args)
    if errs:
        for e in errs:
            print(f"validation error: {e}", file=sys.stderr)
        raise SystemExit(1)
    if args.validate:
        return

    try:
        if not args.slideshow:
            _run_conversion(args)
        if args.slideshow or args.all:
            _run_slideshow(args)
    except WriteError as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(1) from e
    except AssemblyError as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
