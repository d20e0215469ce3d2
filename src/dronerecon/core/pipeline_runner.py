"""Pipeline orchestrator: VALIDATE → EXTRACT → RECONSTRUCT → REPORT."""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable

import yaml
from pydantic import BaseModel

from .contracts import FrameSet, PipelineConfig, PipelineReport, ReconstructionResult, VideoSource
from .errors import ConfigurationError, ExtractionError, PipelineError
from .logging import RunLogCollector

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi")
BANNER = "=" * 55


def load_pipeline_config(config_path: Path) -> PipelineConfig:
    """Load and validate pipeline.yaml."""
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return PipelineConfig(**raw)


def load_step_config(config_path: Path, config_class: type[BaseModel]) -> BaseModel:
    """Load a step-specific YAML config into its Pydantic model."""
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return config_class(**raw)


def discover_videos(source: Path) -> list[VideoSource]:
    """The video itself, or every video directly inside a folder (sorted)."""
    source = Path(source)
    if source.is_dir():
        return [
            VideoSource.from_path(p)
            for p in sorted(source.iterdir())
            if p.is_file() and p.suffix.lower() in VIDEO_EXTENSIONS
        ]
    return [VideoSource.from_path(source)]


def validate_config(config: PipelineConfig) -> None:
    """Fail before any process is spawned if the run cannot work."""
    from dronerecon.utils.tools import backend_tool_name, require_tool

    if config.source_path is None:
        raise ConfigurationError("Video path is required")
    if config.output_dir is None:
        raise ConfigurationError("Output directory is required")
    if not config.source_path.exists():
        raise ConfigurationError(f"Video path not found: {config.source_path}")

    ffmpeg = require_tool("ffmpeg", config.tools)
    backend_exe = require_tool(backend_tool_name(config.method), config.tools)
    logger.info(f"Tools OK: FFmpeg ({ffmpeg}), {config.method.display_name} ({backend_exe})")

    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create output directory {config.output_dir}: {e}") from e


def extract_all(config: PipelineConfig) -> FrameSet:
    """Run frame extraction per video and gather the frames in one directory.

    One video keeps its frames in ``frames/<stem>``. Several videos are each
    extracted into their own temporary directory under ``frames/``, copied
    into ``frames/combined`` and the temporary directory removed, whatever
    the video stems are. A video that fails is skipped.
    """
    from dronerecon.steps.s01_extract_frames.config import ExtractFramesConfig
    from dronerecon.steps.s01_extract_frames.contracts import ExtractFramesInput
    from dronerecon.steps.s01_extract_frames.step import ExtractFramesStep
    from dronerecon.utils.io import copy_frames

    videos = discover_videos(config.source_path)
    if not videos:
        raise ExtractionError(f"No video files found in folder: {config.source_path}")

    frames_root = config.output_dir / "frames"
    multi = len(videos) > 1
    if multi:
        logger.info(f"Found {len(videos)} video file(s)")
        for video in videos:
            logger.info(f"  - {video.path.name}")
        frame_set = FrameSet(frames_dir=frames_root / "combined", merge_policy="combined")
        frame_set.frames_dir.mkdir(parents=True, exist_ok=True)
    else:
        frame_set = FrameSet(frames_dir=frames_root / videos[0].stem, merge_policy="in_place")

    step = ExtractFramesStep(
        config=ExtractFramesConfig(target_fps=config.frame_rate),
        tools=config.tools,
    )
    for i, video in enumerate(videos, 1):
        target = frames_root
        if multi:
            logger.info(f"Processing video {i}/{len(videos)}: {video.path.name}")
            target = Path(tempfile.mkdtemp(prefix="_extract_", dir=frames_root))

        try:
            out = step.execute(ExtractFramesInput(video_path=video.path, output_dir=target))
        except PipelineError as e:
            logger.warning(f"Frame extraction failed for {video.path}: {e}")
            out = None

        if multi:
            if out is not None:
                frame_set.frames.extend(copy_frames(out.frames_dir, frame_set.frames_dir, step.config.output_format))
            shutil.rmtree(target, ignore_errors=True)
        elif out is not None:
            frame_set.frames = [out.frames_dir / name for name in out.frame_list]

    if not frame_set.frames:
        raise ExtractionError("No frames were extracted")

    logger.info("Frame extraction completed successfully")
    logger.info(f"Total frames extracted: {frame_set.frame_count}")
    return frame_set


def reconstruct(config: PipelineConfig, frame_set: FrameSet) -> ReconstructionResult:
    from dronerecon.steps.s02_reconstruct.config import ReconstructConfig
    from dronerecon.steps.s02_reconstruct.contracts import ReconstructInput
    from dronerecon.steps.s02_reconstruct.step import ReconstructStep

    step = ReconstructStep(config=ReconstructConfig(method=config.method), tools=config.tools)
    return step.execute(ReconstructInput(frames_dir=frame_set.frames_dir, output_dir=config.output_dir))


def _section(title: str) -> None:
    logger.info(BANNER)
    logger.info(title)
    logger.info(BANNER)


def _log_configuration(config: PipelineConfig) -> None:
    logger.info("Configuration:")
    label = "Video Folder" if config.source_path.is_dir() else "Video"
    logger.info(f"  {label}: {config.source_path}")
    logger.info(f"  Output:     {config.output_dir}")
    logger.info(f"  Frame Rate: {config.frame_rate:g} fps")
    logger.info(f"  Method:     {config.method.display_name}")


def run_pipeline(
    config: PipelineConfig | Path,
    on_log: Callable[[str], None] | None = None,
) -> PipelineReport:
    """Execute the full pipeline.

    Never raises for pipeline failures: the report carries ``success`` and the
    full log, including which stage and which command failed. Files already
    written stay on disk.
    """
    if not isinstance(config, PipelineConfig):
        config = load_pipeline_config(Path(config))

    t0 = time.time()
    report = PipelineReport(success=False)
    stage = "validate"
    with RunLogCollector(on_log) as collector:
        _section("   Drone Reconstruction Pipeline")
        try:
            validate_config(config)
            _log_configuration(config)

            stage = "extract"
            _section("STEP 1: Frame Extraction")
            report.frame_set = extract_all(config)

            stage = "reconstruct"
            _section("STEP 2: 3D Reconstruction")
            report.result = reconstruct(config, report.frame_set)
            if not report.result.success:
                raise PipelineError("3D reconstruction failed")

            stage = "report"
            logger.info("3D reconstruction completed successfully")
            _section("Pipeline completed successfully!")
            logger.info(f"Output directory: {config.output_dir}")
            logger.info("Ready for Gaussian Splatting!")
            report.success = True
        except PipelineError as e:
            logger.error(f"ERROR [{stage}]: {e}")
            report.failed_stage = stage

    report.log = collector.lines
    report.elapsed_seconds = time.time() - t0
    return report


def submit_pipeline(
    config: PipelineConfig,
    on_log: Callable[[str], None] | None = None,
    executor: Executor | None = None,
) -> Future[PipelineReport]:
    """Run a whole pipeline off the caller's thread; the future yields the report."""
    if executor is not None:
        return executor.submit(run_pipeline, config, on_log)
    own = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dronerecon")
    future = own.submit(run_pipeline, config, on_log)
    own.shutdown(wait=False)
    return future
