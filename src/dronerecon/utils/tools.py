"""Locate external executables: explicit path, bundled vendor dir, then PATH."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from dronerecon.core.contracts import ReconMethod, ToolPaths
from dronerecon.core.errors import MissingToolError

logger = logging.getLogger(__name__)

# Layout of a bundled vendor directory, relative to ToolPaths.vendor_dir.
VENDOR_LAYOUT: dict[str, list[str]] = {
    "ffmpeg": ["ffmpeg/bin/ffmpeg.exe", "ffmpeg/bin/ffmpeg"],
    "exiftool": ["exiftool/exiftool.exe", "exiftool/exiftool"],
    "colmap": ["colmap/bin/colmap.bat", "colmap/bin/colmap.exe", "colmap/bin/colmap"],
}

# Executable names searched on PATH.
PATH_NAMES: dict[str, list[str]] = {
    "ffmpeg": ["ffmpeg"],
    "exiftool": ["exiftool"],
    "colmap": ["colmap"],
    "metashape": ["metashape", "metashape.sh"],
    "realityscan": ["RealityScan", "realityscan"],
}

BACKEND_TOOL: dict[ReconMethod, str] = {
    ReconMethod.COLMAP: "colmap",
    ReconMethod.METASHAPE: "metashape",
    ReconMethod.REALITYSCAN: "realityscan",
}


def find_tool(name: str, tools: ToolPaths) -> Path | None:
    """Return the path of tool ``name`` or None.

    An explicitly configured path is authoritative: if it does not exist the
    tool counts as missing, no fallback search happens.
    """
    explicit = getattr(tools, name)
    if explicit is not None:
        return Path(explicit) if Path(explicit).is_file() else None

    if tools.vendor_dir is not None:
        for rel in VENDOR_LAYOUT.get(name, []):
            candidate = Path(tools.vendor_dir) / rel
            if candidate.is_file():
                return candidate

    for exe in PATH_NAMES.get(name, [name]):
        found = shutil.which(exe)
        if found:
            return Path(found)
    return None


def require_tool(name: str, tools: ToolPaths) -> Path:
    """Like find_tool(), but raise MissingToolError when absent."""
    path = find_tool(name, tools)
    if path is None:
        explicit = getattr(tools, name)
        searched = os.fspath(explicit) if explicit is not None else None
        raise MissingToolError(name, searched)
    return path


def backend_tool_name(method: ReconMethod) -> str:
    return BACKEND_TOOL[method]
