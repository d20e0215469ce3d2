"""Backend-C: RealityScan headless command line."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from dronerecon.core.contracts import ReconMethod, ReconstructionResult
from dronerecon.utils.io import copy_model_files, list_images, write_empty_points3d
from dronerecon.utils.subprocess_utils import join_command, run_command
from ._backend_base import ReconstructionBackend

logger = logging.getLogger(__name__)

PROJECT_NAME = "realityscan_project.rsproj"


class RealityScanBackend(ReconstructionBackend):
    """One headless call: new scene, import, align, export registration and
    undistorted images, save.

    Everything lands in ``<output>/undistorted``. RealityScan does not always
    write sparse points, so an empty ``points3D.txt`` is put in place first.
    A zero exit is not trusted: the registration file and the undistorted
    images are checked afterwards, and either one missing fails the result
    while keeping whatever was written.
    """

    method: ClassVar[ReconMethod] = ReconMethod.REALITYSCAN

    def layout(self, output_dir: Path) -> tuple[Path, Path]:
        undistorted = output_dir / "undistorted"
        return undistorted / "images", undistorted / "sparse" / "0"

    def registration_file(self, output_dir: Path) -> Path:
        return output_dir / "undistorted" / "sparse" / "registration.txt"

    def build_command(self, executable: Path, frames_dir: Path, output_dir: Path) -> str:
        images_dir, _ = self.layout(output_dir)
        return join_command([
            executable,
            "-headless",
            "-newScene",
            "-addFolder", frames_dir,
            "-set", "appIncSubdirs=false",
            "-align",
            "-selectMaximalComponent",
            "-exportRegistration", self.registration_file(output_dir),
            "-exportUndistortedImages", images_dir,
            "-save", output_dir / PROJECT_NAME,
            "-quit",
        ])

    def _reconstruct(self, executable: Path, frames_dir: Path, output_dir: Path) -> ReconstructionResult:
        result = self.empty_result(output_dir)
        result.images_dir.mkdir(parents=True, exist_ok=True)
        result.sparse_dir.mkdir(parents=True, exist_ok=True)

        registration = self.registration_file(output_dir)
        points = write_empty_points3d(result.sparse_dir / "points3D.txt")
        logger.info("Created empty points3D.txt (RealityScan sparse export skipped)")
        result.artifacts.update(
            registration=registration,
            points3d=points,
            project=output_dir / PROJECT_NAME,
        )

        logger.info("Running RealityScan (this may take a while)...")
        cmd = self.build_command(executable, frames_dir, output_dir)
        logger.info(f"Command: {cmd}")
        returncode = run_command(cmd).returncode
        if returncode != 0:
            return self.fail(result, f"RealityScan processing failed (exit code {returncode})", cmd)

        logger.info("RealityScan processing complete! Checking exports...")
        result.success = self.check_exports(result, registration)

        if result.success:
            self.copy_to_images(result, registration)
        else:
            logger.warning("RealityScan exports need manual verification:")
            logger.warning("  - Check that registration.txt contains camera data")
            logger.warning("  - Verify undistorted images were exported correctly")

        logger.info(f"Output directory: {output_dir / 'undistorted'}")
        logger.info(f"  Images + COLMAP data: {result.images_dir}")
        logger.info(f"  Sparse (original): {result.sparse_dir}")
        return result

    def check_exports(self, result: ReconstructionResult, registration: Path) -> bool:
        """Both postconditions are checked even when the first one fails."""
        ok = True
        if registration.is_file():
            logger.info("Registration exported successfully")
        else:
            msg = "registration.txt was not created - camera registration may have failed"
            logger.warning(msg)
            result.diagnostics.append(msg)
            ok = False

        images = list_images(result.images_dir)
        if images:
            logger.info(f"Exported {len(images)} undistorted images")
            result.num_registered = len(images)
        else:
            msg = f"No undistorted images were exported to {result.images_dir}"
            logger.warning(msg)
            result.diagnostics.append(msg)
            ok = False
        return ok

    def copy_to_images(self, result: ReconstructionResult, registration: Path) -> None:
        """Put the text model next to the images, the layout splatting trainers expect."""
        logger.info("Copying COLMAP files to images folder for Gaussian splatting...")
        try:
            copied = copy_model_files(registration.parent, result.images_dir)
            copied += copy_model_files(result.sparse_dir, result.images_dir, overwrite=False)
        except OSError as e:
            msg = f"Failed to copy some COLMAP files: {e}"
            logger.warning(msg)
            result.warnings.append(msg)
            return
        for name in copied:
            logger.info(f"  Copied {name}")
