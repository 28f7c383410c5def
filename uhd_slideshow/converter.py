"""Batch conversion of a folder of photos into UHD canvases."""
from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .compositor import convert_photo, prepare_output_dir
from .config import IMAGE_EXTS, JPEG_QUALITY, OUTPUT_DIR, OUTPUT_TAG
from .errors import DecodeError, WriteError
from .metadata import PathLike


@dataclass
class BatchReport:
    attempted: int = 0
    succeeded: int = 0
    outputs: List[Path] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def failed(self) -> int:
        return len(self.failures)


def discover_images(folder: PathLike = ".", exts: Iterable[str] = IMAGE_EXTS) -> List[Path]:
    """Return photos directly inside *folder*, sorted by name.

    Files already carrying the ``_uhd`` tag are skipped so re-running in the
    output folder does not convert its own results.
    """
    wanted = {e.lower() for e in exts}
    paths = [
        Path(folder) / f
        for f in os.listdir(folder)
        if os.path.splitext(f)[1].lower() in wanted
        and OUTPUT_TAG not in f
        and os.path.isfile(os.path.join(folder, f))
    ]
    paths.sort(key=lambda p: p.name.lower())
    return paths


def _convert_one(path: Path, out_dir: Path, quality: int, on_collision: str):
    try:
        return convert_photo(path, out_dir, quality=quality, on_collision=on_collision), None
    except (DecodeError, WriteError) as e:
        return None, e


def convert_images(
    paths: Sequence[PathLike],
    out_dir: PathLike = OUTPUT_DIR,
    quality: int = JPEG_QUALITY,
    on_collision: str = "overwrite",
    jobs: int = 1,
) -> BatchReport:
    """Convert every photo in *paths* into *out_dir*.

    A photo that cannot be decoded or written is reported and skipped; only a
    failure to create *out_dir* itself aborts the batch (:class:`WriteError`).
    """
    start = time.perf_counter()
    out = prepare_output_dir(out_dir)
    items = [Path(p) for p in paths]
    report = BatchReport(attempted=len(items))

    if jobs > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            results = list(
                pool.map(lambda p: _convert_one(p, out, quality, on_collision), items)
            )
    else:
        results = (_convert_one(p, out, quality, on_collision) for p in items)

    for i, (path, (dst, err)) in enumerate(zip(items, results), 1):
        if err is not None:
            kind = "decode" if isinstance(err, DecodeError) else "write"
            logging.warning("skipping %s (%s error): %s", path, kind, err)
            print(f"❌ [{i}/{report.attempted}] {path.name}: {err}")
            report.failures.append((str(path), str(err)))
            continue
        report.succeeded += 1
        report.outputs.append(dst)
        print(f"✅ [{i}/{report.attempted}] {path.name} -> {dst}")

    report.elapsed = time.perf_counter() - start
    return report


def print_summary(report: BatchReport, out: Optional[PathLike] = None) -> None:
    where = f" into {out}" if out is not None else ""
    print(
        f"🏁 Converted {report.succeeded}/{report.attempted} images{where} "
        f"in {report.elapsed:.2f}s"
    )
    if report.failures:
        print(f"⚠️ {report.failed} image(s) failed:")
        for path, msg in report.failures:
            print(f"   - {path}: {msg}")
