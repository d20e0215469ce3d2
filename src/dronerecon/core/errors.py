"""Exception hierarchy for pipeline failures."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures that end a pipeline stage."""


class ConfigurationError(PipelineError):
    """Configuration is empty, inconsistent or points at missing inputs."""


class MissingToolError(PipelineError):
    """A required external executable could not be located."""

    def __init__(self, tool: str, searched: str | None = None):
        self.tool = tool
        self.searched = searched
        msg = f"{tool} not found"
        if searched:
            msg += f" at: {searched}"
        super().__init__(msg)


class ToolFailedError(PipelineError):
    """An external command exited with a non-zero status."""

    def __init__(self, description: str, returncode: int, command: str = ""):
        self.description = description
        self.returncode = returncode
        self.command = command
        msg = f"{description} failed with exit code {returncode}"
        if command:
            msg += f": {command}"
        super().__init__(msg)


class ExtractionError(PipelineError):
    """Frame extraction finished but produced nothing usable."""
