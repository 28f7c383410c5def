import os
import subprocess
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from uhd_slideshow import slideshow
from uhd_slideshow.errors import AssemblyError
from uhd_slideshow.slideshow import (
    build_concat_list,
    build_ffmpeg_command,
    collect_uhd_images,
    export_profile,
    generate_slideshow,
)


def _touch(folder: Path, *names: str) -> None:
    folder.mkdir(parents=True, exist_ok=True)
    for name in names:
        (folder / name).write_bytes(b"\xff\xd8")


def test_missing_directory_is_reported(tmp_path):
    with pytest.raises(AssemblyError) as exc:
        collect_uhd_images(tmp_path / "converted")
    assert "does not exist" in str(exc.value)


def test_no_uhd_images_is_reported(tmp_path):
    _touch(tmp_path, "holiday.jpg", "20230101_100000_uhd.png")
    with pytest.raises(AssemblyError) as exc:
        collect_uhd_images(tmp_path)
    assert "No UHD images" in str(exc.value)


def test_collect_filters_and_sorts(tmp_path):
    _touch(
        tmp_path,
        "20230101_110000_uhd.jpg",
        "20230101_090000_uhd.JPEG",
        "20230101_100000_uhd.jpg",
        "20230101_100000_uhd_002.jpg",
        "raw.jpg",
        "clip_uhd.mp4",
    )
    names = [p.name for p in collect_uhd_images(tmp_path)]
    assert names == [
        "20230101_090000_uhd.JPEG",
        "20230101_100000_uhd.jpg",
        "20230101_100000_uhd_002.jpg",
        "20230101_110000_uhd.jpg",
    ]


def test_concat_list_repeats_last_frame(tmp_path):
    images = [tmp_path / "a_uhd.jpg", tmp_path / "b_uhd.jpg"]
    lines = build_concat_list(images, 2.5).splitlines()
    assert lines == [
        f"file '{images[0].resolve()}'",
        "duration 2.5",
        f"file '{images[1].resolve()}'",
        "duration 2.5",
        f"file '{images[1].resolve()}'",
    ]


def test_concat_list_escapes_quotes(tmp_path):
    img = tmp_path / "it's_uhd.jpg"
    text = build_concat_list([img], 3.0)
    assert "it'\\''s_uhd.jpg'" in text


def test_ffmpeg_command_defaults():
    cmd = build_ffmpeg_command("ffmpeg", "list.txt", "out.mp4")
    assert cmd[:8] == ["ffmpeg", "-y", "-f", "concat", "-safe", "0", "-i", "list.txt"]
    assert cmd[cmd.index("-c:v") + 1] == "libx264"
    assert cmd[cmd.index("-crf") + 1] == "23"
    assert cmd[cmd.index("-preset") + 1] == "medium"
    assert cmd[cmd.index("-pix_fmt") + 1] == "yuv420p"
    assert cmd[-1] == "out.mp4"


def test_hevc_profile_tags_output():
    prof = export_profile("quality", "hevc")
    assert prof["codec"] == "libx265"
    assert "hvc1" in prof["ffmpeg_params"]
    cmd = build_ffmpeg_command("ffmpeg", "l.txt", "o.mp4", "quality", "hevc")
    assert cmd[cmd.index("-tag:v") + 1] == "hvc1"
    assert cmd[cmd.index("-crf") + 1] == "18"


def test_generate_runs_ffmpeg_and_cleans_up(tmp_path, monkeypatch):
    conv = tmp_path / "converted"
    _touch(conv, "20230101_100000_uhd.jpg", "20230101_090000_uhd.jpg")
    seen = {}

    def fake_run(cmd, capture_output, text):
        list_file = cmd[cmd.index("-i") + 1]
        seen["cmd"] = cmd
        seen["list_file"] = list_file
        seen["content"] = Path(list_file).read_text(encoding="utf8")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(slideshow, "resolve_ffmpeg", lambda path=None: "ffmpeg")
    monkeypatch.setattr(slideshow.subprocess, "run", fake_run)

    out = generate_slideshow(1.5, tmp_path / "video" / "show.mp4", directory=conv)
    assert out == str(tmp_path / "video" / "show.mp4")
    assert (tmp_path / "video").is_dir()
    assert seen["cmd"][-1] == out
    assert not os.path.exists(seen["list_file"])
    files = [l for l in seen["content"].splitlines() if l.startswith("file")]
    assert files[0].endswith("20230101_090000_uhd.jpg'")
    assert files[1] == files[2]
    assert seen["content"].count("duration 1.5") == 2


def test_generate_surfaces_encoder_stderr(tmp_path, monkeypatch):
    conv = tmp_path / "converted"
    _touch(conv, "20230101_100000_uhd.jpg")
    seen = {}

    def fake_run(cmd, capture_output, text):
        seen["list_file"] = cmd[cmd.index("-i") + 1]
        return subprocess.CompletedProcess(cmd, 1, "", "Unknown encoder 'libx264'")

    monkeypatch.setattr(slideshow, "resolve_ffmpeg", lambda path=None: "ffmpeg")
    monkeypatch.setattr(slideshow.subprocess, "run", fake_run)

    with pytest.raises(AssemblyError) as exc:
        generate_slideshow(3.0, tmp_path / "show.mp4", directory=conv)
    assert exc.value.stderr == "Unknown encoder 'libx264'"
    assert "Unknown encoder 'libx264'" in str(exc.value)
    assert not os.path.exists(seen["list_file"])


def test_generate_without_ffmpeg(tmp_path, monkeypatch):
    conv = tmp_path / "converted"
    _touch(conv, "20230101_100000_uhd.jpg")
    monkeypatch.setattr(slideshow, "resolve_ffmpeg", lambda path=None: None)
    with pytest.raises(AssemblyError) as exc:
        generate_slideshow(3.0, tmp_path / "show.mp4", directory=conv)
    assert "ffmpeg" in str(exc.value)


def test_generate_reports_unusable_output_parent(tmp_path, monkeypatch):
    conv = tmp_path / "converted"
    _touch(conv, "20230101_100000_uhd.jpg")
    blocker = tmp_path / "video"
    blocker.write_text("not a directory")
    calls = []
    monkeypatch.setattr(slideshow, "resolve_ffmpeg", lambda path=None: "ffmpeg")
    monkeypatch.setattr(slideshow.subprocess, "run", lambda *a, **k: calls.append(a))

    with pytest.raises(AssemblyError) as exc:
        generate_slideshow(3.0, blocker / "show.mp4", directory=conv)
    assert "cannot create output directory" in str(exc.value)
    assert calls == []


def test_generate_rejects_unknown_engine(tmp_path):
    with pytest.raises(ValueError):
        generate_slideshow(3.0, tmp_path / "show.mp4", directory=tmp_path, engine="gstreamer")


def test_moviepy_engine_passes_durations(tmp_path, monkeypatch):
    try:
        from moviepy.editor import ImageSequenceClip
    except ModuleNotFoundError:  # moviepy >=2.0
        from moviepy import ImageSequenceClip

    conv = tmp_path / "converted"
    conv.mkdir()
    for name in ("20230101_090000_uhd.jpg", "20230101_100000_uhd.jpg"):
        Image.fromarray(np.zeros((36, 64, 3), dtype=np.uint8)).save(conv / name)
    seen = {}

    def fake_write(self, filename, **kwargs):
        seen["duration"] = self.duration
        seen["filename"] = filename
        seen["kwargs"] = kwargs

    monkeypatch.setattr(ImageSequenceClip, "write_videofile", fake_write)
    generate_slideshow(1.5, tmp_path / "show.mp4", directory=conv, engine="moviepy")
    assert seen["duration"] == pytest.approx(3.0)
    assert seen["filename"] == str(tmp_path / "show.mp4")
    assert seen["kwargs"]["codec"] == "libx264"
    assert seen["kwargs"]["audio"] is False
