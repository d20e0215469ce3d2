"""Backend registry: one ReconstructionBackend per ReconMethod."""

from __future__ import annotations

from dronerecon.core.contracts import ReconMethod, ToolPaths
from ._backend_base import ReconstructionBackend
from ._colmap import ColmapBackend
from ._metashape import MetashapeBackend
from ._realityscan import RealityScanBackend
from .config import ReconstructConfig

BACKENDS: dict[ReconMethod, type[ReconstructionBackend]] = {
    ReconMethod.COLMAP: ColmapBackend,
    ReconMethod.METASHAPE: MetashapeBackend,
    ReconMethod.REALITYSCAN: RealityScanBackend,
}


def get_backend(
    method: ReconMethod | str,
    tools: ToolPaths,
    config: ReconstructConfig | None = None,
) -> ReconstructionBackend:
    method = ReconMethod(method)
    config = config or ReconstructConfig(method=method)
    return BACKENDS[method](tools=tools, config=config)


__all__ = [
    "BACKENDS",
    "ReconstructionBackend",
    "ColmapBackend",
    "MetashapeBackend",
    "RealityScanBackend",
    "get_backend",
]
