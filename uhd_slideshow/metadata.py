"""Orientation and capture-time resolution from embedded photo metadata.

The capture time decides the output file name, so the resolution chain is
total: it always ends in a timestamp or a literal token and never raises.
Order of attempts:

1. ``DateTimeOriginal``
2. ``DateTimeDigitized``
3. ``DateTime``
4. filesystem modification time (local time)
5. file base name without extension
6. ``"unknown"``
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

from PIL import ExifTags, Image

from .config import STEM_FORMAT, TIMESTAMP_FORMATS
from .errors import MetadataReadError, TimestampParseError

EXIF_IFD = 0x8769
DATETIME_FIELDS = ("DateTimeOriginal", "DateTimeDigitized", "DateTime")
UNKNOWN_TOKEN = "unknown"

PathLike = Union[str, os.PathLike]


@dataclass(frozen=True)
class PhotoSource:
    """Read-only reference to one input image."""

    path: Path

    @classmethod
    def of(cls, value: Union["PhotoSource", PathLike]) -> "PhotoSource":
        if isinstance(value, PhotoSource):
            return value
        return cls(Path(value))

    @property
    def stem(self) -> str:
        return self.path.stem

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


@dataclass(frozen=True)
class PhotoMetadata:
    orientation: int
    timestamp: Optional[datetime]
    source: str
    token: str

    @property
    def stem(self) -> str:
        """File name stem: ``YYYYMMDD_HHMMSS`` or the literal fallback token."""
        return self.token


def _load_exif(img: Image.Image) -> Dict[str, object]:
    try:
        exif = img.getexif()
        tags: Dict[str, object] = {
            ExifTags.TAGS.get(k, str(k)): v for k, v in exif.items()
        }
        sub = exif.get_ifd(EXIF_IFD)
    except Exception as e:  # Pillow raises a wide range on corrupt segments
        raise MetadataReadError(f"unreadable EXIF: {e}") from e
    for k, v in sub.items():
        tags[ExifTags.TAGS.get(k, str(k))] = v
    return tags


def read_exif(img: Image.Image) -> Dict[str, object]:
    """Return tag-name -> value for the base IFD merged with the Exif IFD.

    Missing or corrupt metadata yields an empty mapping.
    """
    try:
        return _load_exif(img)
    except MetadataReadError as e:
        logging.debug("read_exif: %s", e)
        return {}


def orientation_from_exif(tags: Dict[str, object]) -> int:
    """Return the EXIF orientation code (1..8); anything else maps to 1."""
    raw = tags.get("Orientation")
    if isinstance(raw, (tuple, list)) and raw:
        raw = raw[0]
    try:
        code = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 1
    return code if 1 <= code <= 8 else 1


def parse_exif_datetime(value: object) -> datetime:
    """Parse an EXIF style date-time string.

    Surrounding whitespace, NUL padding and quote characters are removed
    first. Raises :class:`TimestampParseError` if no layout matches.
    """
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    text = str(value).strip(" \t\r\n\x00\"'")
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise TimestampParseError(f"unrecognised date-time {text!r}")


def _field_attempt(tags: Dict[str, object], field: str, label: str) -> Optional[datetime]:
    raw = tags.get(field)
    if raw is None or raw == "" or raw == b"":
        return None
    try:
        return parse_exif_datetime(raw)
    except TimestampParseError as e:
        logging.warning("%s: %s %s, trying next source", label, field, e)
        return None


def _mtime_attempt(path: Optional[Path]) -> Optional[datetime]:
    if path is None:
        return None
    try:
        return datetime.fromtimestamp(os.path.getmtime(path))
    except (OSError, ValueError, OverflowError):
        return None


def _attempts(
    tags: Dict[str, object], path: Optional[Path]
) -> Iterable[Tuple[str, Callable[[], Optional[datetime]]]]:
    label = path.name if path is not None else "<bytes>"
    for field in DATETIME_FIELDS:
        yield field, lambda field=field: _field_attempt(tags, field, label)
    yield "mtime", lambda: _mtime_attempt(path)


def resolve_timestamp(
    tags: Dict[str, object], path: Optional[PathLike] = None
) -> Tuple[Optional[datetime], str, str]:
    """Run the fallback chain and return ``(timestamp, source, token)``."""
    p = Path(path) if path is not None else None
    for source, attempt in _attempts(tags, p):
        ts = attempt()
        if ts is not None:
            return ts, source, ts.strftime(STEM_FORMAT)
    name = p.stem if p is not None else ""
    if name:
        return None, "filename", name
    return None, UNKNOWN_TOKEN, UNKNOWN_TOKEN


def resolve_metadata(
    source: Union[PhotoSource, PathLike],
    tags: Optional[Dict[str, object]] = None,
) -> PhotoMetadata:
    """Resolve orientation and output name token for *source*.

    When *tags* is not supplied the file header is read for metadata only;
    an unreadable file still resolves through mtime or the file name.
    """
    src = PhotoSource.of(source)
    if tags is None:
        try:
            with Image.open(src.path) as img:
                tags = read_exif(img)
        except (OSError, SyntaxError, ValueError) as e:
            logging.debug("resolve_metadata: cannot open %s: %s", src.path, e)
            tags = {}
    ts, origin, token = resolve_timestamp(tags, src.path)
    return PhotoMetadata(
        orientation=orientation_from_exif(tags),
        timestamp=ts,
        source=origin,
        token=token,
    )
