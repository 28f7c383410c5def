"""Helpers to resolve the external ffmpeg binary.

Discovery honours an explicit CLI argument, the ``FFMPEG_BINARY`` environment
variable, the binary MoviePy is configured with and finally a search on
``PATH``.
"""
from __future__ import annotations

import logging
import os
import shutil
from typing import Optional


def _validate_binary(path: str | None) -> Optional[str]:
    """Return *path* if it points to an existing executable."""
    if not path:
        return None
    if os.path.isfile(path) or shutil.which(path):
        return path
    return None


def _moviepy_ffmpeg() -> Optional[str]:
    """Return the ffmpeg binary MoviePy resolved at import time, if any."""
    try:
        from moviepy import config as mpy_config
    except (ImportError, OSError, RuntimeError) as e:
        logging.debug("moviepy ffmpeg lookup failed: %s", e)
        return None
    return getattr(mpy_config, "FFMPEG_BINARY", None)


def resolve_ffmpeg(cli_path: str | None = None) -> Optional[str]:
    """Resolve path to the ``ffmpeg`` executable.

    Resolution order:
    1. explicit ``cli_path`` argument (e.g. ``--ffmpeg``)
    2. ``FFMPEG_BINARY`` environment variable
    3. MoviePy's configured ``FFMPEG_BINARY``
    4. ``ffmpeg`` discovered on ``PATH``
    The returned path is validated and stored in ``os.environ``. Returns
    ``None`` if no candidate is found.
    """
    candidates = [
        lambda: cli_path,
        lambda: os.environ.get("FFMPEG_BINARY"),
        _moviepy_ffmpeg,
        lambda: shutil.which("ffmpeg"),
    ]
    for cand in candidates:
        path = _validate_binary(cand())
        if path:
            os.environ["FFMPEG_BINARY"] = path
            return path
    return None
