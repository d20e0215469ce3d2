"""dronerecon core: contracts, base step, run logging, pipeline orchestrator."""

from .contracts import (
    FrameSet,
    GPSFix,
    PipelineConfig,
    PipelineReport,
    ReconMethod,
    ReconstructionResult,
    ToolPaths,
    VideoSource,
)
from .errors import (
    ConfigurationError,
    ExtractionError,
    MissingToolError,
    PipelineError,
    ToolFailedError,
)
from .step_base import BaseStep
from .logging import RunLogCollector, setup_logging
from .pipeline_runner import load_pipeline_config, run_pipeline, submit_pipeline

__all__ = [
    "BaseStep",
    "ConfigurationError",
    "ExtractionError",
    "FrameSet",
    "GPSFix",
    "MissingToolError",
    "PipelineConfig",
    "PipelineError",
    "PipelineReport",
    "ReconMethod",
    "ReconstructionResult",
    "RunLogCollector",
    "ToolFailedError",
    "ToolPaths",
    "VideoSource",
    "load_pipeline_config",
    "run_pipeline",
    "setup_logging",
    "submit_pipeline",
]
