"""Configuration constants for uhd_slideshow."""
from __future__ import annotations

import os

# Fixed output geometry (width, height)
CANVAS_SIZE = (3840, 2160)
CANVAS_FILL = (0, 0, 0, 255)

OUTPUT_DIR = os.environ.get("UHD_OUTPUT_DIR") or "converted"
OUTPUT_TAG = "_uhd"
OUTPUT_EXT = ".jpg"
JPEG_QUALITY = 95

IMAGE_EXTS = {".jpg", ".jpeg"}

TIMESTAMP_FORMATS = (
    "%Y:%m:%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)
STEM_FORMAT = "%Y%m%d_%H%M%S"

DEFAULT_DURATION = 3.0
DEFAULT_SLIDESHOW = "slideshow.mp4"
