"""I/O contracts for Step 01: Video to Frames extraction."""

from pathlib import Path
from pydantic import BaseModel, Field


class ExtractFramesInput(BaseModel):
    video_path: Path = Field(..., description="Path to input video file")
    output_dir: Path = Field(..., description="Parent directory; frames go to <output_dir>/<video stem>")


class ExtractFramesOutput(BaseModel):
    frames_dir: Path = Field(..., description="Directory containing extracted frames")
    frame_count: int = Field(..., description="Number of frames extracted")
    fps_used: float = Field(..., description="Effective FPS used for extraction")
    frame_list: list[str] = Field(default_factory=list, description="List of frame filenames")
    telemetry_file: Path | None = Field(None, description="Telemetry log used for geotagging")
    gps_fixes: int = Field(0, description="Valid GPS fixes parsed from telemetry")
    frames_tagged: int = Field(0, description="Frames successfully geotagged")
