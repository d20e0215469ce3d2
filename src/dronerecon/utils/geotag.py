"""GPS → EXIF/XMP geotag encoding and the exiftool command that writes it.

EXIF wants degrees/minutes/seconds plus a hemisphere letter, XMP wants signed
decimal degrees. Both are written in one exiftool call so every viewer finds
a position.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from dronerecon.core.contracts import GPSFix
from dronerecon.utils.subprocess_utils import join_command

GPS_VERSION_ID = "2.3.0.0"
GPS_MAP_DATUM = "WGS-84"

_DMS_RE = re.compile(r"^\s*(\d+)\s+(\d+)\s+(\d+(?:\.\d+)?)\s*$")


def decimal_to_dms(value: float) -> str:
    """``-45.5`` → ``"45 30 0.0000"``. The sign is dropped; see hemisphere()."""
    total = round(abs(value) * 3600.0, 4)
    degrees = int(total // 3600)
    remainder = total - degrees * 3600
    minutes = int(remainder // 60)
    seconds = remainder - minutes * 60
    return f"{degrees} {minutes} {seconds:.4f}"


def dms_to_decimal(dms: str, ref: str) -> float:
    """Inverse of decimal_to_dms() + hemisphere()."""
    m = _DMS_RE.match(dms)
    if m is None:
        raise ValueError(f"Not a DMS string: {dms!r}")
    degrees, minutes, seconds = int(m.group(1)), int(m.group(2)), float(m.group(3))
    value = degrees + minutes / 60.0 + seconds / 3600.0
    return -value if ref.upper() in ("S", "W") else value


def hemisphere(value: float, axis: str) -> str:
    """Reference letter for latitude (``"lat"``) or longitude (``"lon"``)."""
    if axis == "lat":
        return "N" if value >= 0 else "S"
    if axis == "lon":
        return "E" if value >= 0 else "W"
    raise ValueError(f"Unknown axis: {axis}")


def geotag_args(fix: GPSFix) -> list[str]:
    """exiftool tag assignments for one fix (no executable, no file)."""
    args = [
        f"-EXIF:GPSLatitude={decimal_to_dms(fix.latitude)}",
        f"-EXIF:GPSLatitudeRef={hemisphere(fix.latitude, 'lat')}",
        f"-EXIF:GPSLongitude={decimal_to_dms(fix.longitude)}",
        f"-EXIF:GPSLongitudeRef={hemisphere(fix.longitude, 'lon')}",
        f"-EXIF:GPSVersionID={GPS_VERSION_ID}",
        f"-EXIF:GPSMapDatum={GPS_MAP_DATUM}",
    ]
    # altitude 0 means the log had none
    if fix.altitude != 0.0:
        args += [
            f"-EXIF:GPSAltitude={abs(fix.altitude):.3f}",
            f"-EXIF:GPSAltitudeRef={0 if fix.altitude >= 0 else 1}",
        ]
    args += [
        f"-XMP:GPSLatitude={fix.latitude:.8f}",
        f"-XMP:GPSLongitude={fix.longitude:.8f}",
    ]
    if fix.altitude != 0.0:
        args.append(f"-XMP:GPSAltitude={abs(fix.altitude):.3f}")
    return args


def build_exiftool_command(exiftool: Path | str, image: Path | str, fix: GPSFix) -> str:
    """One exiftool command line tagging ``image`` in place."""
    return join_command(
        [os.fspath(exiftool), *geotag_args(fix), "-overwrite_original", os.fspath(image)]
    )
