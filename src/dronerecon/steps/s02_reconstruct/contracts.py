"""I/O contracts for Step 02: 3D reconstruction."""

from pathlib import Path
from pydantic import BaseModel, Field

from dronerecon.core.contracts import ReconstructionResult


class ReconstructInput(BaseModel):
    frames_dir: Path = Field(..., description="Directory of extracted frames")
    output_dir: Path = Field(..., description="Output root for the reconstruction")


ReconstructOutput = ReconstructionResult
