"""DJI-style SRT telemetry: parse GPS fixes and match them to frame times.

An SRT log is a sequence of blocks separated by blank lines::

    12
    00:00:11,000 --> 00:00:12,000
    <font size="28">FrameCnt: 12 ... [latitude: 47.123456] [longitude: 8.123456]
    [rel_alt: 30.100 abs_alt: 512.300] </font>

Older firmware writes ``GPS: (lon, lat)`` and ``H: 30.1m`` instead of the
bracketed tags, and some firmware spells the longitude key ``longtitude``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence

from dronerecon.core.contracts import GPSFix

logger = logging.getLogger(__name__)

_NUM = r"(-?\d+(?:\.\d+)?)"

BLOCK_SEP_RE = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)*")
TIME_RE = re.compile(r"(\d{2}):(\d{2}):(\d{2}),(\d{3})")
GPS_PAIR_RE = re.compile(rf"GPS:\s*\(\s*{_NUM}\s*,\s*{_NUM}")
LAT_RE = re.compile(rf"\[latitude\s*:\s*{_NUM}\s*\]", re.IGNORECASE)
LON_RE = re.compile(rf"\[longt?itude\s*:\s*{_NUM}\s*\]", re.IGNORECASE)
ALT_RES = (
    re.compile(rf"\bH:\s*{_NUM}\s*m"),
    re.compile(rf"\[altitude\s*:\s*{_NUM}\s*\]", re.IGNORECASE),
    re.compile(rf"\babs_alt\s*:\s*{_NUM}", re.IGNORECASE),
)


def parse_timestamp(line: str) -> float | None:
    """Seconds for the first ``HH:MM:SS,mmm`` in ``line`` (the start time)."""
    m = TIME_RE.search(line)
    if m is None:
        return None
    hours, minutes, seconds, millis = (int(g) for g in m.groups())
    return hours * 3600 + minutes * 60 + seconds + millis / 1000.0


def _parse_block(block: str) -> GPSFix | None:
    lines = [ln.strip() for ln in block.split("\n")]
    lines = [ln for ln in lines if ln]
    if len(lines) < 3:
        return None

    timestamp = parse_timestamp(lines[1])
    if timestamp is None:
        return None

    metadata = " ".join(lines[2:])

    pair = GPS_PAIR_RE.search(metadata)
    if pair:
        longitude, latitude = float(pair.group(1)), float(pair.group(2))
    else:
        lat = LAT_RE.search(metadata)
        lon = LON_RE.search(metadata)
        if lat is None or lon is None:
            return None
        latitude, longitude = float(lat.group(1)), float(lon.group(1))

    altitude = 0.0
    for pattern in ALT_RES:
        alt = pattern.search(metadata)
        if alt:
            altitude = float(alt.group(1))
            break

    return GPSFix(
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        timestamp=timestamp,
        valid=True,
    )


def parse_srt_text(content: str) -> list[GPSFix]:
    """Parse SRT text into valid fixes, in file order.

    Blocks without coordinates or without a timestamp are dropped.
    """
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    fixes = []
    for block in BLOCK_SEP_RE.split(content):
        fix = _parse_block(block)
        if fix is not None:
            fixes.append(fix)
    return fixes


def parse_srt(srt_path: Path) -> list[GPSFix]:
    """Parse an SRT file. An unreadable file yields no fixes."""
    try:
        content = Path(srt_path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning(f"Could not read telemetry file {srt_path}: {e}")
        return []
    return parse_srt_text(content)


def nearest_fix(fixes: Sequence[GPSFix], timestamp: float) -> GPSFix:
    """Fix closest in time to ``timestamp``; the first one wins a tie.

    Times outside the log's span clamp to the first/last fix. An empty
    sequence gives ``GPSFix.invalid()``.
    """
    if not fixes:
        return GPSFix.invalid()

    best = fixes[0]
    best_diff = abs(best.timestamp - timestamp)
    for fix in fixes[1:]:
        diff = abs(fix.timestamp - timestamp)
        if diff < best_diff:
            best, best_diff = fix, diff
    return best


def find_telemetry_file(video_path: Path) -> Path | None:
    """Sibling ``<stem>.srt`` of a video, matching the extension case-insensitively."""
    video_path = Path(video_path)
    for suffix in (".SRT", ".srt"):
        candidate = video_path.with_suffix(suffix)
        if candidate.is_file():
            return candidate
    parent = video_path.parent
    if not parent.is_dir():
        return None
    for candidate in sorted(parent.iterdir()):
        if (
            candidate.is_file()
            and candidate.stem == video_path.stem
            and candidate.suffix.lower() == ".srt"
        ):
            return candidate
    return None
