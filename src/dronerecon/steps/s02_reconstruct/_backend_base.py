"""Common contract for reconstruction backends."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from dronerecon.core.contracts import ReconMethod, ReconstructionResult, ToolPaths
from dronerecon.core.errors import MissingToolError
from dronerecon.utils.tools import backend_tool_name, require_tool
from .config import ReconstructConfig

logger = logging.getLogger(__name__)


class ReconstructionBackend(ABC):
    """Turns a frame directory into an ``images/`` + ``sparse/0/`` dataset.

    Subclasses compose and run their own external commands. Expected failures
    (missing executable, non-zero exit, missing outputs) come back as a result
    with ``success=False`` and diagnostics, never as exceptions.
    """

    method: ClassVar[ReconMethod]

    def __init__(self, tools: ToolPaths, config: ReconstructConfig | None = None):
        self.tools = tools
        self.config = config or ReconstructConfig(method=self.method)

    @property
    def display_name(self) -> str:
        return self.method.display_name

    def locate_executable(self) -> Path:
        """Path of this backend's executable; MissingToolError if absent."""
        return require_tool(backend_tool_name(self.method), self.tools)

    def reconstruct(self, frames_dir: Path, output_dir: Path) -> ReconstructionResult:
        frames_dir, output_dir = Path(frames_dir), Path(output_dir)
        try:
            executable = self.locate_executable()
        except MissingToolError as e:
            msg = f"{self.display_name} executable not found: {e.searched or e.tool}"
            logger.error(msg)
            result = self.empty_result(output_dir)
            result.diagnostics.append(msg)
            return result

        logger.info(f"Using {self.display_name}: {executable}")
        logger.info(f"Input frames: {frames_dir}")
        logger.info(f"Output: {output_dir}")
        return self._reconstruct(executable, frames_dir, output_dir)

    @abstractmethod
    def _reconstruct(self, executable: Path, frames_dir: Path, output_dir: Path) -> ReconstructionResult:
        ...

    @abstractmethod
    def layout(self, output_dir: Path) -> tuple[Path, Path]:
        """(images_dir, sparse_dir) this backend produces under ``output_dir``."""
        ...

    def empty_result(self, output_dir: Path, success: bool = False) -> ReconstructionResult:
        images_dir, sparse_dir = self.layout(output_dir)
        return ReconstructionResult(
            success=success,
            method=self.method,
            output_dir=output_dir,
            images_dir=images_dir,
            sparse_dir=sparse_dir,
        )

    def fail(self, result: ReconstructionResult, message: str, command: str = "") -> ReconstructionResult:
        logger.error(message)
        result.success = False
        result.diagnostics.append(message)
        if command:
            logger.error(f"Failed command: {command}")
            result.diagnostics.append(f"Failed command: {command}")
        return result
