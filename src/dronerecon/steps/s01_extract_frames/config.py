"""Configuration for Step 01: Video to Frames."""

from pydantic import BaseModel, Field


class ExtractFramesConfig(BaseModel):
    target_fps: float = Field(1.0, gt=0, description="Target frames per second to extract")
    quality: int = Field(2, ge=1, le=31, description="ffmpeg -q:v JPEG quality (lower is better)")
    output_format: str = Field("jpg", description="Frame image format")
    embed_gps: bool = Field(True, description="Geotag frames from a sibling .srt telemetry log")
