"""Configuration for Step 02: 3D reconstruction."""

from pydantic import BaseModel, Field

from dronerecon.core.contracts import ReconMethod


class ReconstructConfig(BaseModel):
    method: ReconMethod = Field(ReconMethod.COLMAP, description="Backend: colmap|metashape|realityscan")
    image_ext: str = Field("jpg", description="Frame image extension handed to the backend")
    single_camera: bool = Field(True, description="COLMAP: share intrinsics across all images")
    log_tail_lines: int = Field(10, ge=0, description="Metashape: log lines surfaced on failure")
