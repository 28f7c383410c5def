"""Canvas compositing: one UHD JPEG per input photo."""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from .config import CANVAS_FILL, CANVAS_SIZE, JPEG_QUALITY, OUTPUT_EXT, OUTPUT_TAG
from .errors import DecodeError, WriteError
from .metadata import PathLike, PhotoSource, read_exif, resolve_metadata
from .orientation import apply_orientation

COLLISION_POLICIES = ("overwrite", "suffix")
SUFFIX_DIGITS = 3


@dataclass(frozen=True)
class FitGeometry:
    scale: float
    new_w: int
    new_h: int
    x_offset: int
    y_offset: int


def compute_fit(w: int, h: int, canvas: Tuple[int, int] = CANVAS_SIZE) -> FitGeometry:
    """Return scale-to-fit geometry for a ``w`` x ``h`` image on *canvas*.

    Upscaling is allowed. Pixel counts are truncated; the small tolerance only
    absorbs float error on the side that limits the scale, so a 6000 px edge
    fitted to 2160 lands on 2160 rather than 2159.
    """
    if w <= 0 or h <= 0:
        raise ValueError(f"invalid image size {w}x{h}")
    cw, ch = canvas
    scale = min(cw / w, ch / h)
    new_w = min(cw, max(1, int(w * scale + 1e-6)))
    new_h = min(ch, max(1, int(h * scale + 1e-6)))
    return FitGeometry(scale, new_w, new_h, (cw - new_w) // 2, (ch - new_h) // 2)


def decode_image(source: Union[PhotoSource, PathLike]) -> Tuple[np.ndarray, Dict[str, object]]:
    """Decode *source* to an RGBA array and return it with its EXIF tags.

    The file extension is not trusted; anything Pillow cannot parse raises
    :class:`DecodeError`. Only the first frame is used.
    """
    src = PhotoSource.of(source)
    try:
        with Image.open(src.path) as img:
            img.load()
            tags = read_exif(img)
            arr = np.asarray(img.convert("RGBA"))
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"{src.path}: {e}") from e
    return arr, tags


def resize_lanczos(arr: np.ndarray, new_w: int, new_h: int) -> np.ndarray:
    h, w = arr.shape[:2]
    if (w, h) == (new_w, new_h):
        return arr
    return cv2.resize(arr, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)


def compose_canvas(
    arr: np.ndarray, orientation: int = 1, canvas_size: Tuple[int, int] = CANVAS_SIZE
) -> Tuple[np.ndarray, FitGeometry]:
    """Orient, fit and centre an RGBA array on an opaque black canvas."""
    oriented = apply_orientation(arr, orientation)
    h, w = oriented.shape[:2]
    fit = compute_fit(w, h, canvas_size)
    resized = resize_lanczos(oriented, fit.new_w, fit.new_h)

    cw, ch = canvas_size
    canvas = np.empty((ch, cw, 4), dtype=np.uint8)
    canvas[:] = CANVAS_FILL
    x, y = fit.x_offset, fit.y_offset
    canvas[y : y + fit.new_h, x : x + fit.new_w] = resized
    return canvas, fit


def output_path(out_dir: PathLike, stem: str, on_collision: str = "overwrite") -> Path:
    """Return the destination for *stem* inside *out_dir*.

    ``overwrite`` returns ``<stem>_uhd.jpg`` even if it exists. ``suffix``
    claims the first free name among ``<stem>_uhd.jpg``, ``<stem>_uhd_002.jpg``,
    ... with an exclusive create, so concurrent workers never share a name.
    The counter is zero padded to keep name order equal to claim order.
    """
    base = Path(out_dir) / f"{stem}{OUTPUT_TAG}{OUTPUT_EXT}"
    if on_collision == "overwrite":
        return base
    if on_collision != "suffix":
        raise ValueError(f"unknown collision policy: {on_collision}")
    cand = base
    i = 1
    while True:
        try:
            fd = os.open(cand, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            i += 1
            cand = base.with_name(f"{stem}{OUTPUT_TAG}_{i:0{SUFFIX_DIGITS}d}{OUTPUT_EXT}")
            continue
        os.close(fd)
        return cand


def encode_canvas(canvas: np.ndarray, path: PathLike, quality: int = JPEG_QUALITY) -> None:
    """Write *canvas* as JPEG to *path*.

    The image is encoded to a temporary file beside *path* and moved into
    place with :func:`os.replace`, so concurrent writers of the same name
    leave one complete file behind.
    """
    dst = Path(path)
    img = Image.fromarray(canvas).convert("RGB")
    try:
        fd, tmp = tempfile.mkstemp(prefix=".partial-", suffix=".tmp", dir=dst.parent)
    except OSError as e:
        raise WriteError(f"{dst}: {e}") from e
    try:
        with os.fdopen(fd, "wb") as fh:
            img.save(fh, "JPEG", quality=quality)
        os.chmod(tmp, 0o644)
        os.replace(tmp, dst)
    except (OSError, ValueError) as e:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise WriteError(f"{dst}: {e}") from e


def prepare_output_dir(path: PathLike) -> Path:
    """Create the output directory if needed; safe to call concurrently."""
    out = Path(path)
    try:
        out.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"cannot create output directory {out}: {e}") from e
    return out


def convert_photo(
    source: Union[PhotoSource, PathLike],
    out_dir: PathLike,
    quality: int = JPEG_QUALITY,
    on_collision: str = "overwrite",
) -> Path:
    """Convert one photo to a UHD canvas JPEG and return the written path.

    Raises :class:`DecodeError` or :class:`WriteError`; metadata problems are
    resolved silently through the timestamp fallback chain.
    """
    src = PhotoSource.of(source)
    arr, tags = decode_image(src)
    meta = resolve_metadata(src, tags)
    canvas, fit = compose_canvas(arr, meta.orientation)
    try:
        dst = output_path(out_dir, meta.stem, on_collision)
    except OSError as e:
        raise WriteError(f"{out_dir}: {e}") from e
    try:
        encode_canvas(canvas, dst, quality)
    except WriteError:
        if on_collision == "suffix":
            dst.unlink(missing_ok=True)
        raise
    logging.debug(
        "%s -> %s (orientation=%d, name from %s, scale=%.4f, %dx%d at %d,%d)",
        src.path.name,
        dst.name,
        meta.orientation,
        meta.source,
        fit.scale,
        fit.new_w,
        fit.new_h,
        fit.x_offset,
        fit.y_offset,
    )
    return dst
