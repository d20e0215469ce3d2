"""Common Pydantic models shared across pipeline steps."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReconMethod(str, Enum):
    """Reconstruction backend selector."""

    COLMAP = "colmap"
    METASHAPE = "metashape"
    REALITYSCAN = "realityscan"

    @property
    def display_name(self) -> str:
        return {
            ReconMethod.COLMAP: "COLMAP",
            ReconMethod.METASHAPE: "Metashape",
            ReconMethod.REALITYSCAN: "RealityScan",
        }[self]


class ToolPaths(BaseModel):
    """Locations of the external executables.

    Unset entries are looked up in ``vendor_dir`` and then on ``PATH``.
    """

    model_config = ConfigDict(frozen=True)

    vendor_dir: Path | None = None
    ffmpeg: Path | None = None
    exiftool: Path | None = None
    colmap: Path | None = None
    metashape: Path | None = None
    realityscan: Path | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PipelineConfig(BaseModel):
    """One run's configuration. Built once, never mutated."""

    model_config = ConfigDict(frozen=True)

    source_path: Path | None = Field(None, description="Video file or folder of videos")
    output_dir: Path | None = Field(None, description="Output root directory")
    frame_rate: float = Field(1.0, gt=0, description="Frames per second to extract")
    method: ReconMethod = ReconMethod.COLMAP
    tools: ToolPaths = Field(default_factory=ToolPaths)

    @field_validator("source_path", "output_dir", mode="before")
    @classmethod
    def _blank_path_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class VideoSource(BaseModel):
    """A single input video."""

    model_config = ConfigDict(frozen=True)

    path: Path

    @classmethod
    def from_path(cls, path: Path | str) -> VideoSource:
        return cls(path=Path(path).absolute())

    @property
    def stem(self) -> str:
        return self.path.stem


class GPSFix(BaseModel):
    """One timestamped GPS sample recovered from a telemetry log."""

    model_config = ConfigDict(frozen=True)

    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    timestamp: float = Field(0.0, description="Seconds since start of the recording")
    valid: bool = False

    @classmethod
    def invalid(cls) -> GPSFix:
        return cls()


class FrameSet(BaseModel):
    """Frames handed to reconstruction, with how they were gathered."""

    frames_dir: Path
    frames: list[Path] = Field(default_factory=list)
    merge_policy: Literal["in_place", "combined"] = "in_place"

    @property
    def frame_count(self) -> int:
        return len(self.frames)


class ReconstructionResult(BaseModel):
    """Terminal artifact of a reconstruction backend."""

    success: bool
    method: ReconMethod
    output_dir: Path
    images_dir: Path = Field(..., description="Frames (possibly undistorted)")
    sparse_dir: Path = Field(..., description="Camera poses and 3D points")
    artifacts: dict[str, Path] = Field(default_factory=dict)
    num_registered: int | None = None
    warnings: list[str] = Field(default_factory=list)
    diagnostics: list[str] = Field(default_factory=list)

    @property
    def diagnostic_text(self) -> str:
        return "\n".join(self.diagnostics)


class PipelineReport(BaseModel):
    """What a caller gets back from one pipeline run."""

    success: bool
    frame_set: FrameSet | None = None
    result: ReconstructionResult | None = None
    log: list[str] = Field(default_factory=list)
    failed_stage: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def log_text(self) -> str:
        return "\n".join(self.log)
