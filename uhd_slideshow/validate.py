"""Argument validation helpers for the uhd_slideshow CLI."""
from __future__ import annotations

import os
from argparse import Namespace
from typing import List

from .compositor import COLLISION_POLICIES
from .slideshow import ENGINES

VIDEO_EXTS = {".mp4", ".mkv", ".mov", ".m4v"}


def validate_args(args: Namespace) -> List[str]:
    """Validate parsed CLI arguments.

    Returns a list of human readable error messages. The caller should abort
    if the list is non-empty.
    """
    errors: List[str] = []
    if args.duration <= 0:
        errors.append(f"--duration must be > 0 (got {args.duration})")
    if not (1 <= args.quality <= 100):
        errors.append("--quality must be within [1,100]")
    if args.jobs < 1:
        errors.append("--jobs must be >= 1")
    if args.on_collision not in COLLISION_POLICIES:
        errors.append(f"--on-collision must be one of {', '.join(COLLISION_POLICIES)}")
    if args.engine not in ENGINES:
        errors.append(f"--engine must be one of {', '.join(ENGINES)}")
    ext = os.path.splitext(args.output)[1].lower()
    if (args.slideshow or args.all) and ext not in VIDEO_EXTS:
        errors.append(f"--output should end with one of {sorted(VIDEO_EXTS)}")
    return errors
