"""Slideshow assembly from converted UHD images.

Encoding is delegated to ffmpeg: either directly through its concat demuxer
or through MoviePy's ``ImageSequenceClip``. This module only selects and
orders the frames.
"""
from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .bin_config import resolve_ffmpeg
from .config import IMAGE_EXTS, OUTPUT_DIR, OUTPUT_TAG
from .errors import AssemblyError
from .metadata import PathLike

ENGINES = ("ffmpeg", "moviepy")


def export_profile(profile: str = "standard", codec: str = "h264") -> Dict[str, object]:
    """Return encoder settings for given *profile* and *codec*."""
    base = {
        "preview": {"crf": "31", "preset": "veryfast", "fps": 24},
        "standard": {"crf": "23", "preset": "medium", "fps": 25},
        "quality": {"crf": "18", "preset": "slow", "fps": 30},
    }[profile]
    codec_map = {"h264": "libx264", "hevc": "libx265"}
    ffmpeg_params = ["-crf", base["crf"], "-pix_fmt", "yuv420p"]
    if codec == "hevc":
        ffmpeg_params.extend(["-tag:v", "hvc1"])
    return {
        "fps": base["fps"],
        "crf": base["crf"],
        "preset": base["preset"],
        "codec": codec_map[codec],
        "ffmpeg_params": ffmpeg_params,
    }


def collect_uhd_images(directory: PathLike = OUTPUT_DIR) -> List[Path]:
    """Return converted JPEGs in *directory* in file name order.

    Names start with a zero-padded timestamp, so name order is chronological.
    """
    folder = Path(directory)
    if not folder.is_dir():
        raise AssemblyError(
            f"Directory '{folder}' does not exist. Convert the images first."
        )
    images = sorted(
        p
        for p in folder.iterdir()
        if p.suffix.lower() in IMAGE_EXTS and OUTPUT_TAG in p.name and p.is_file()
    )
    if not images:
        raise AssemblyError(f"No UHD images found in directory '{folder}'.")
    return images


def _quote(path: Path) -> str:
    return "'" + str(path).replace("'", "'\\''") + "'"


def build_concat_list(images: Sequence[Path], duration: float) -> str:
    """Return an ffmpeg concat script showing each image for *duration* s.

    The last image is listed once more without a duration, otherwise the
    concat demuxer drops its display time.
    """
    lines: List[str] = []
    for img in images:
        lines.append(f"file {_quote(Path(img).resolve())}")
        lines.append(f"duration {duration}")
    if images:
        lines.append(f"file {_quote(Path(images[-1]).resolve())}")
    return "\n".join(lines) + "\n"


def build_ffmpeg_command(
    binary: str,
    list_file: PathLike,
    output: PathLike,
    profile: str = "standard",
    codec: str = "h264",
) -> List[str]:
    prof = export_profile(profile, codec)
    cmd = [
        binary,
        "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", str(list_file),
        "-vsync", "vfr",
        "-pix_fmt", "yuv420p",
        "-c:v", str(prof["codec"]),
        "-preset", str(prof["preset"]),
        "-crf", str(prof["crf"]),
    ]
    if codec == "hevc":
        cmd.extend(["-tag:v", "hvc1"])
    cmd.append(str(output))
    return cmd


def _encode_with_ffmpeg(
    images: Sequence[Path],
    duration: float,
    output: str,
    profile: str,
    codec: str,
    ffmpeg: Optional[str],
) -> None:
    binary = resolve_ffmpeg(ffmpeg)
    if not binary:
        raise AssemblyError(
            "ffmpeg binary not found. Install ffmpeg or set FFMPEG_BINARY / --ffmpeg."
        )
    fd, list_file = tempfile.mkstemp(prefix="uhd_concat_", suffix=".txt")
    try:
        with os.fdopen(fd, "w", encoding="utf8") as fh:
            fh.write(build_concat_list(images, duration))
        cmd = build_ffmpeg_command(binary, list_file, output, profile, codec)
        logging.info("running %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise AssemblyError(f"cannot run ffmpeg: {e}") from e
    finally:
        if os.path.exists(list_file):
            os.remove(list_file)
    if proc.returncode != 0:
        raise AssemblyError(
            f"ffmpeg error (exit {proc.returncode}): {proc.stderr}", stderr=proc.stderr
        )


def _encode_with_moviepy(
    images: Sequence[Path],
    duration: float,
    output: str,
    profile: str,
    codec: str,
) -> None:
    try:
        from moviepy.editor import ImageSequenceClip
    except ModuleNotFoundError:  # moviepy >=2.0
        from moviepy import ImageSequenceClip

    prof = export_profile(profile, codec)
    clip = ImageSequenceClip([str(p) for p in images], durations=[duration] * len(images))
    try:
        clip.write_videofile(
            output,
            fps=prof["fps"],
            codec=prof["codec"],
            preset=prof["preset"],
            ffmpeg_params=prof["ffmpeg_params"],
            audio=False,
        )
    except (OSError, ValueError) as e:
        raise AssemblyError(f"moviepy export failed: {e}", stderr=str(e)) from e
    finally:
        clip.close()


def generate_slideshow(
    duration: float,
    output: PathLike,
    directory: PathLike = OUTPUT_DIR,
    engine: str = "ffmpeg",
    profile: str = "standard",
    codec: str = "h264",
    ffmpeg: Optional[str] = None,
) -> str:
    """Build a slideshow video from the ``_uhd`` images in *directory*.

    Returns the output path. Raises :class:`AssemblyError` when there is
    nothing to assemble or the encoder fails. An output directory that
    cannot be created is reported the same way.
    """
    if engine not in ENGINES:
        raise ValueError(f"unknown engine: {engine}")
    images = collect_uhd_images(directory)
    out = str(output)

    print(f"🖼️ Found {len(images)} UHD images for the slideshow")
    print(f"⏱️ Duration per image: {duration} seconds")
    print(f"🎞️ Output file: {out}")

    parent = os.path.dirname(out)
    if parent:
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise AssemblyError(f"cannot create output directory {parent}: {e}") from e

    if engine == "moviepy":
        _encode_with_moviepy(images, duration, out, profile, codec)
    else:
        _encode_with_ffmpeg(images, duration, out, profile, codec, ffmpeg)

    print("✅ Slideshow generated successfully!")
    return out
