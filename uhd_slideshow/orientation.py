"""EXIF orientation correction on ``numpy`` image arrays."""
from __future__ import annotations

from typing import Callable, Dict, Tuple

import numpy as np

Transform = Callable[[np.ndarray], np.ndarray]


def flip_h(arr: np.ndarray) -> np.ndarray:
    return np.fliplr(arr)


def flip_v(arr: np.ndarray) -> np.ndarray:
    return np.flipud(arr)


def rot90(arr: np.ndarray) -> np.ndarray:
    """Rotate 90 degrees clockwise."""
    return np.rot90(arr, k=-1)


def rot180(arr: np.ndarray) -> np.ndarray:
    return np.rot90(arr, k=2)


def rot270(arr: np.ndarray) -> np.ndarray:
    """Rotate 270 degrees clockwise (90 counter-clockwise)."""
    return np.rot90(arr, k=1)


# steps are applied left to right
ORIENTATION_STEPS: Dict[int, Tuple[Transform, ...]] = {
    1: (),
    2: (flip_h,),
    3: (rot180,),
    4: (flip_v,),
    5: (rot90, flip_h),
    6: (rot90,),
    7: (rot270, flip_h),
    8: (rot270,),
}


def apply_orientation(arr: np.ndarray, code: int) -> np.ndarray:
    """Return *arr* transformed for EXIF orientation *code*.

    Unknown codes are treated as 1 (identity). The result is contiguous so it
    can be handed straight to OpenCV.
    """
    for step in ORIENTATION_STEPS.get(code, ()):
        arr = step(arr)
    return np.ascontiguousarray(arr)
