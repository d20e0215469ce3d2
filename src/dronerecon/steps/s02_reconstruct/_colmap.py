"""Backend-A: COLMAP command-line reconstruction."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from dronerecon.core.contracts import ReconMethod, ReconstructionResult
from dronerecon.utils.io import count_registered_images
from dronerecon.utils.subprocess_utils import join_command, run_command
from ._backend_base import ReconstructionBackend

logger = logging.getLogger(__name__)

SPACES_WARNING = [
    "",
    "!!! WARNING: SPACES IN PATHS DETECTED !!!",
    "COLMAP does not work reliably with spaces in file paths.",
    "Please use paths without spaces, for example:",
    "  Good: C:\\DroneOutput or /data/drone_output",
    "  Bad:  C:\\Drone videos or /data/my projects/output",
    "",
    "Processing will likely FAIL. Please change your paths and try again.",
    "",
]


def has_whitespace(path: Path) -> bool:
    return any(ch.isspace() for ch in str(path))


class ColmapBackend(ReconstructionBackend):
    """feature_extractor → exhaustive_matcher → mapper → image_undistorter.

    The four steps share ``database/database.db`` and ``sparse/``. A failure in
    the first three ends the run; a failed undistortion only warns, since
    ``sparse/0`` is already usable.
    """

    method: ClassVar[ReconMethod] = ReconMethod.COLMAP

    def layout(self, output_dir: Path) -> tuple[Path, Path]:
        return output_dir / "images", output_dir / "sparse" / "0"

    def build_steps(self, colmap: Path, frames_dir: Path, output_dir: Path) -> list[tuple[str, str]]:
        """(label, command) for each of the four steps, in order."""
        # COLMAP wants forward slashes, also on Windows
        frames = frames_dir.as_posix()
        database = (output_dir / "database" / "database.db").as_posix()
        sparse = (output_dir / "sparse").as_posix()
        sparse0 = (output_dir / "sparse" / "0").as_posix()

        extract = [colmap, "feature_extractor", "--database_path", database, "--image_path", frames]
        if self.config.single_camera:
            extract += ["--ImageReader.single_camera", "1"]

        return [
            ("Feature Extraction", join_command(extract)),
            ("Feature Matching", join_command([colmap, "exhaustive_matcher", "--database_path", database])),
            ("Sparse Reconstruction", join_command([
                colmap, "mapper",
                "--database_path", database,
                "--image_path", frames,
                "--output_path", sparse,
            ])),
            ("Image Undistortion", join_command([
                colmap, "image_undistorter",
                "--image_path", frames,
                "--input_path", sparse0,
                "--output_path", output_dir.as_posix(),
                "--output_type", "COLMAP",
            ])),
        ]

    def path_warnings(self, frames_dir: Path, output_dir: Path) -> list[str]:
        if has_whitespace(frames_dir) or has_whitespace(output_dir):
            return [f"Paths contain whitespace, COLMAP will likely fail: {frames_dir} | {output_dir}"]
        return []

    def _reconstruct(self, executable: Path, frames_dir: Path, output_dir: Path) -> ReconstructionResult:
        result = self.empty_result(output_dir)
        result.artifacts["database"] = output_dir / "database" / "database.db"

        result.warnings.extend(self.path_warnings(frames_dir, output_dir))
        if result.warnings:
            for line in SPACES_WARNING:
                logger.warning(line)

        (output_dir / "database").mkdir(parents=True, exist_ok=True)
        (output_dir / "sparse").mkdir(parents=True, exist_ok=True)
        (output_dir / "images").mkdir(parents=True, exist_ok=True)

        steps = self.build_steps(executable, frames_dir, output_dir)
        total = len(steps)
        for number, (label, cmd) in enumerate(steps, 1):
            logger.info(f"Step {number}/{total}: {label}...")
            logger.debug(f"Command: {cmd}")
            returncode = run_command(cmd).returncode
            if returncode == 0:
                continue
            if number == total:
                msg = "Image undistortion failed, but sparse reconstruction succeeded"
                logger.warning(msg)
                logger.warning(f"Failed command: {cmd}")
                result.warnings.append(msg)
            else:
                return self.fail(result, f"{label} failed (exit code {returncode})", cmd)

        result.success = True
        result.num_registered = count_registered_images(result.sparse_dir)
        logger.info("COLMAP reconstruction complete!")
        logger.info("Output structure:")
        logger.info(f"  {result.images_dir} - Undistorted images")
        logger.info(f"  {result.sparse_dir} - Camera poses and points")
        return result
