"""I/O utilities: frame listing and merging, COLMAP sparse model helpers, log tails."""

from __future__ import annotations

import logging
import shutil
import struct
from collections import deque
from pathlib import Path

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".tif", ".tiff")

POINTS3D_HEADER = (
    "# 3D point list with one line of data per point:\n"
    "#   POINT3D_ID, X, Y, Z, R, G, B, ERROR, TRACK[] as (IMAGE_ID, POINT2D_IDX)\n"
    "# Number of points: 0\n"
)


# ── Frames ───────────────────────────────────────────────────────────

def list_frames(frames_dir: Path, ext: str = "jpg") -> list[Path]:
    """Frame files in ``frames_dir`` sorted by name (== extraction order)."""
    frames_dir = Path(frames_dir)
    if not frames_dir.is_dir():
        return []
    suffix = "." + ext.lower().lstrip(".")
    return sorted(p for p in frames_dir.iterdir() if p.is_file() and p.suffix.lower() == suffix)


def copy_frames(src_dir: Path, dest_dir: Path, ext: str = "jpg") -> list[Path]:
    """Copy every frame of ``src_dir`` into ``dest_dir``, overwriting.

    A frame that fails to copy is logged and skipped.
    """
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    copied = []
    for frame in list_frames(src_dir, ext):
        dest = dest_dir / frame.name
        try:
            shutil.copy2(frame, dest)
        except OSError as e:
            logger.warning(f"Failed to copy frame {frame.name}: {e}")
            continue
        copied.append(dest)
    return copied


def list_images(images_dir: Path) -> list[Path]:
    """Image files in ``images_dir``, whatever their extension; model files are skipped."""
    images_dir = Path(images_dir)
    if not images_dir.is_dir():
        return []
    return sorted(p for p in images_dir.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES)


# ── COLMAP sparse model ──────────────────────────────────────────────

def write_empty_points3d(path: Path) -> Path:
    """Write a points3D.txt with the COLMAP header and no points."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(POINTS3D_HEADER, encoding="utf-8")
    return path


def count_registered_images(sparse_dir: Path) -> int | None:
    """Number of images in a COLMAP model (images.bin or images.txt).

    Returns None when the model has neither file.
    """
    sparse_dir = Path(sparse_dir)

    images_bin = sparse_dir / "images.bin"
    if images_bin.exists():
        with open(images_bin, "rb") as f:
            header = f.read(8)
        if len(header) == 8:
            return struct.unpack("<Q", header)[0]
        return 0

    images_txt = sparse_dir / "images.txt"
    if images_txt.exists():
        lines = images_txt.read_text(encoding="utf-8", errors="replace").splitlines()
        # images.txt format: comment lines start with #, then pairs of lines per image
        data_lines = [l for l in lines if not l.startswith("#") and l.strip()]
        return len(data_lines) // 2

    return None


def copy_model_files(src_dir: Path, dest_dir: Path, overwrite: bool = True) -> list[str]:
    """Copy the .txt/.bin files of a sparse model directory (not recursive)."""
    src_dir, dest_dir = Path(src_dir), Path(dest_dir)
    copied = []
    if not src_dir.is_dir():
        return copied
    for entry in sorted(src_dir.iterdir()):
        if not entry.is_file() or entry.suffix.lower() not in (".txt", ".bin"):
            continue
        dest = dest_dir / entry.name
        if dest.exists() and not overwrite:
            continue
        shutil.copy2(entry, dest)
        copied.append(entry.name)
    return copied


# ── Logs ─────────────────────────────────────────────────────────────

def tail_lines(path: Path, n: int = 10) -> list[str]:
    """Last ``n`` lines of a text file; empty if it cannot be read."""
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return [line.rstrip("\r\n") for line in deque(f, maxlen=n)]
    except OSError:
        return []
