"""Shared pytest fixtures for dronerecon tests.

External binaries are replaced by small POSIX shell scripts that behave like
the real tools as far as the pipeline can observe: they write the files the
real tool would write and exit with a controllable status.
"""

import os
import stat
import textwrap
from pathlib import Path

import pytest

from dronerecon.core.contracts import ToolPaths

posix_only = pytest.mark.skipif(os.name == "nt", reason="stand-in tools are POSIX shell scripts")


def write_tool(directory: Path, name: str, body: str) -> Path:
    path = directory / name
    path.write_text("#!/bin/sh\n" + textwrap.dedent(body))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def read_calls(tool: Path) -> list[str]:
    """Argument lines a stand-in tool recorded, one per invocation."""
    calls = tool.parent / f"{tool.name}.calls"
    if not calls.exists():
        return []
    return calls.read_text().splitlines()


def make_video(directory: Path, name: str, frames: int | str = 5) -> Path:
    """A fake video; the stand-in ffmpeg reads the frame count from its content."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(f"{frames}\n")
    return path


FFMPEG = r'''
for last; do :; done
prev=""
for a in "$@"; do
  if [ "$prev" = "-i" ]; then video="$a"; fi
  prev="$a"
done
echo "$*" >> "$0.calls"
n=$(head -n 1 "$video")
if [ "$n" = "fail" ]; then
  echo "ffmpeg: cannot decode $video" >&2
  exit 1
fi
echo "ffmpeg stand-in: $video"
i=1
while [ "$i" -le "$n" ]; do
  printf 'jpeg' > "$(printf "$last" "$i")"
  i=$((i + 1))
done
exit 0
'''

EXIFTOOL = r'''
echo "$*" >> "$0.calls"
exit ${FAKE_EXIFTOOL_EXIT:-0}
'''

COLMAP = r'''
echo "$*" >> "$0.calls"
prev=""
for a in "$@"; do
  if [ "$prev" = "--output_path" ]; then out="$a"; fi
  prev="$a"
done
echo "colmap $1 running"
if [ "$1" = "${FAKE_COLMAP_FAIL:-none}" ]; then
  echo "colmap $1: error" >&2
  exit 1
fi
if [ "$1" = "mapper" ]; then
  mkdir -p "$out/0"
  printf '# Image list\n1 1 0 0 0 0 0 0 1 a.jpg\n10 20 -1\n2 1 0 0 0 0 0 0 1 b.jpg\n30 40 -1\n' > "$out/0/images.txt"
fi
exit 0
'''

METASHAPE = r'''
echo "$*" >> "$0.calls"
code=${FAKE_METASHAPE_EXIT:-0}
if [ "$code" != "0" ]; then
  i=1
  while [ "$i" -le 15 ]; do
    echo "log line $i"
    i=$((i + 1))
  done
  exit "$code"
fi
echo "Aligned 5 cameras"
exit 0
'''

REALITYSCAN = r'''
echo "$*" >> "$0.calls"
prev=""
for a in "$@"; do
  if [ "$prev" = "-exportRegistration" ]; then reg="$a"; fi
  if [ "$prev" = "-exportUndistortedImages" ]; then images="$a"; fi
  prev="$a"
done
mode=${FAKE_RS_MODE:-ok}
if [ "$mode" = "fail" ]; then
  echo "RealityScan: alignment failed" >&2
  exit 2
fi
if [ "$mode" != "no_registration" ]; then
  mkdir -p "$(dirname "$reg")"
  printf '# registration\n' > "$reg"
  printf '# cameras\n' > "$(dirname "$reg")/cameras.txt"
fi
if [ "$mode" != "no_images" ]; then
  mkdir -p "$images"
  printf 'jpeg' > "$images/a.jpg"
fi
exit 0
'''


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    d = tmp_path / "bin"
    d.mkdir()
    return d


@pytest.fixture
def fake_ffmpeg(bin_dir: Path) -> Path:
    return write_tool(bin_dir, "ffmpeg", FFMPEG)


@pytest.fixture
def fake_exiftool(bin_dir: Path) -> Path:
    return write_tool(bin_dir, "exiftool", EXIFTOOL)


@pytest.fixture
def fake_colmap(bin_dir: Path) -> Path:
    return write_tool(bin_dir, "colmap", COLMAP)


@pytest.fixture
def fake_metashape(bin_dir: Path) -> Path:
    return write_tool(bin_dir, "metashape", METASHAPE)


@pytest.fixture
def fake_realityscan(bin_dir: Path) -> Path:
    return write_tool(bin_dir, "RealityScan", REALITYSCAN)


@pytest.fixture
def tools(
    bin_dir: Path,
    fake_ffmpeg: Path,
    fake_exiftool: Path,
    fake_colmap: Path,
    fake_metashape: Path,
    fake_realityscan: Path,
) -> ToolPaths:
    """Every tool present, all pointing at stand-ins."""
    return ToolPaths(
        ffmpeg=fake_ffmpeg,
        exiftool=fake_exiftool,
        colmap=fake_colmap,
        metashape=fake_metashape,
        realityscan=fake_realityscan,
    )


@pytest.fixture
def frames_dir(tmp_path: Path) -> Path:
    """Five extracted frames."""
    d = tmp_path / "frames" / "clip"
    d.mkdir(parents=True)
    for i in range(1, 6):
        (d / f"clip_frame_{i:04d}.jpg").write_bytes(b"jpeg")
    return d


@pytest.fixture
def srt_three_fixes() -> str:
    """DJI-style log with fixes at 0.0, 1.0 and 2.0 seconds."""
    return (
        "1\n"
        "00:00:00,000 --> 00:00:01,000\n"
        "<font size=\"28\">FrameCnt: 1, DiffTime: 1000ms\n"
        "[latitude: 47.000000] [longitude: 8.000000] [rel_alt: 30.000 abs_alt: 500.000] </font>\n"
        "\n"
        "2\n"
        "00:00:01,000 --> 00:00:02,000\n"
        "<font size=\"28\">FrameCnt: 2, DiffTime: 1000ms\n"
        "[latitude: 47.000100] [longitude: 8.000100] [rel_alt: 31.000 abs_alt: 501.000] </font>\n"
        "\n"
        "3\n"
        "00:00:02,000 --> 00:00:03,000\n"
        "<font size=\"28\">FrameCnt: 3, DiffTime: 1000ms\n"
        "[latitude: 47.000200] [longitude: 8.000200] [rel_alt: 32.000 abs_alt: 502.000] </font>\n"
    )
