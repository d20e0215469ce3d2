"""Step 01: Extract frames from a video with ffmpeg and geotag them from SRT telemetry."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from dronerecon.core.contracts import GPSFix
from dronerecon.core.errors import ExtractionError, ToolFailedError
from dronerecon.core.step_base import BaseStep
from dronerecon.utils.geotag import build_exiftool_command
from dronerecon.utils.io import list_frames
from dronerecon.utils.subprocess_utils import join_command, run_command
from dronerecon.utils.telemetry import find_telemetry_file, nearest_fix, parse_srt
from dronerecon.utils.tools import find_tool, require_tool
from .config import ExtractFramesConfig
from .contracts import ExtractFramesInput, ExtractFramesOutput

logger = logging.getLogger(__name__)


class ExtractFramesStep(BaseStep[ExtractFramesInput, ExtractFramesOutput, ExtractFramesConfig]):
    name: ClassVar[str] = "extract_frames"
    input_type: ClassVar = ExtractFramesInput
    output_type: ClassVar = ExtractFramesOutput
    config_type: ClassVar = ExtractFramesConfig

    def validate_inputs(self, inputs: ExtractFramesInput) -> bool:
        if not inputs.video_path.is_file():
            logger.error(f"Video not found: {inputs.video_path}")
            return False
        return True

    def build_command(self, ffmpeg: Path, video_path: Path, output_pattern: Path) -> str:
        return join_command([
            ffmpeg,
            "-y",
            "-i", video_path,
            "-vf", f"fps={self.config.target_fps:g}",
            "-q:v", str(self.config.quality),
            output_pattern,
        ])

    def run(self, inputs: ExtractFramesInput) -> ExtractFramesOutput:
        ffmpeg = require_tool("ffmpeg", self.tools)
        logger.info(f"Using FFmpeg: {ffmpeg}")

        stem = inputs.video_path.stem
        frames_dir = inputs.output_dir / stem
        frames_dir.mkdir(parents=True, exist_ok=True)
        pattern = frames_dir / f"{stem}_frame_%04d.{self.config.output_format}"

        logger.info(f"Extracting frames at {self.config.target_fps:g} fps...")
        cmd = self.build_command(ffmpeg, inputs.video_path, pattern)
        result = run_command(cmd)
        if result.returncode != 0:
            raise ToolFailedError("FFmpeg", result.returncode, cmd)

        frames = list_frames(frames_dir, self.config.output_format)
        if not frames:
            raise ExtractionError(f"FFmpeg produced no frames for {inputs.video_path.name}")
        logger.info(f"Extracted {len(frames)} frames to: {frames_dir}")

        output = ExtractFramesOutput(
            frames_dir=frames_dir,
            frame_count=len(frames),
            fps_used=self.config.target_fps,
            frame_list=[f.name for f in frames],
        )
        if self.config.embed_gps:
            self._embed_telemetry(inputs.video_path, frames, output)
        return output

    def _embed_telemetry(self, video_path: Path, frames: list[Path], output: ExtractFramesOutput) -> None:
        """Best effort: nothing here can fail the step."""
        srt_path = find_telemetry_file(video_path)
        if srt_path is None:
            logger.info(f"No telemetry (.srt) file found for {video_path.name} - skipping GPS embedding")
            return

        exiftool = find_tool("exiftool", self.tools)
        if exiftool is None:
            logger.info("No exiftool found - skipping GPS embedding")
            return

        logger.info(f"Found telemetry file: {srt_path.name}")
        fixes = parse_srt(srt_path)
        output.telemetry_file = srt_path
        output.gps_fixes = len(fixes)
        if not fixes:
            logger.warning(f"No GPS data found in {srt_path.name}")
            return

        logger.info(f"Parsed {len(fixes)} GPS entries; embedding into frames with exiftool...")
        tagged = 0
        for index, frame in enumerate(frames):
            fix = nearest_fix(fixes, self.frame_timestamp(index))
            if fix.valid and self._tag_frame(exiftool, frame, fix):
                tagged += 1
        output.frames_tagged = tagged
        logger.info(f"Embedded GPS data into {tagged}/{len(frames)} frames")

    def frame_timestamp(self, index: int) -> float:
        """Assumed capture time of the ``index``-th extracted frame."""
        return index / self.config.target_fps

    def _tag_frame(self, exiftool: Path, frame: Path, fix: GPSFix) -> bool:
        cmd = build_exiftool_command(exiftool, frame, fix)
        result = run_command(cmd, on_line=logger.debug)
        if result.returncode != 0:
            logger.debug(f"exiftool failed on {frame.name} (exit {result.returncode})")
            return False
        return True
