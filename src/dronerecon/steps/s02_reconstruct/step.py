"""Step 02: 3D reconstruction through the configured backend."""

from __future__ import annotations

import logging
from typing import ClassVar

from dronerecon.core.step_base import BaseStep
from dronerecon.utils.io import list_frames
from .backends import get_backend
from .config import ReconstructConfig
from .contracts import ReconstructInput, ReconstructOutput

logger = logging.getLogger(__name__)


class ReconstructStep(BaseStep[ReconstructInput, ReconstructOutput, ReconstructConfig]):
    name: ClassVar[str] = "reconstruct"
    input_type: ClassVar = ReconstructInput
    output_type: ClassVar = ReconstructOutput
    config_type: ClassVar = ReconstructConfig

    def validate_inputs(self, inputs: ReconstructInput) -> bool:
        if not inputs.frames_dir.is_dir():
            logger.error(f"Frames directory not found: {inputs.frames_dir}")
            return False
        if not list_frames(inputs.frames_dir, self.config.image_ext):
            logger.error(f"No .{self.config.image_ext} frames in {inputs.frames_dir}")
            return False
        return True

    def run(self, inputs: ReconstructInput) -> ReconstructOutput:
        backend = get_backend(self.config.method, self.tools, self.config)
        inputs.output_dir.mkdir(parents=True, exist_ok=True)
        return backend.reconstruct(inputs.frames_dir, inputs.output_dir)
