"""Backend-B: Agisoft Metashape driven by a generated Python script."""

from __future__ import annotations

import logging
from pathlib import Path
from string import Template
from typing import ClassVar

from dronerecon.core.contracts import ReconMethod, ReconstructionResult
from dronerecon.utils.io import count_registered_images, tail_lines
from dronerecon.utils.subprocess_utils import join_command, run_command
from ._backend_base import ReconstructionBackend

logger = logging.getLogger(__name__)

SCRIPT_NAME = "metashape_process.py"
LOG_NAME = "metashape_log.txt"
PROJECT_NAME = "metashape_project.psx"

# Runs inside Metashape's bundled interpreter. Every $placeholder is
# substituted with a Python string literal (repr), never raw text.
SCRIPT_TEMPLATE = Template('''\
import shutil
import sys
import traceback
from pathlib import Path

import Metashape

try:
    doc = Metashape.Document()
    chunk = doc.addChunk()

    image_folder = Path($frames_dir)
    image_files = sorted(str(p) for p in image_folder.glob($image_glob))
    print(f"Adding {len(image_files)} images...")
    if len(image_files) == 0:
        raise RuntimeError(f"No images found in {image_folder}")
    chunk.addPhotos(image_files)

    print("Aligning photos...")
    chunk.matchPhotos(downscale=1, generic_preselection=True)
    chunk.alignCameras()

    aligned_cameras = sum(1 for camera in chunk.cameras if camera.transform)
    print(f"Aligned {aligned_cameras} cameras")
    if aligned_cameras == 0:
        raise RuntimeError("Camera alignment failed - no cameras aligned")

    print("Exporting to COLMAP format...")
    sparse_path = Path($sparse_dir)
    chunk.exportCameras(path=str(sparse_path / "cameras.txt"), format=Metashape.CamerasFormatColmap)
    print("  SUCCESS: Native COLMAP cameras export")

    images_out = Path($images_dir)
    for img in image_files:
        shutil.copy2(img, images_out / Path(img).name)
    print(f"Copied {len(image_files)} images to output")

    doc.save(str(Path($project_path)))
    print("Metashape processing complete!")
except Exception as e:
    print(f"ERROR: {type(e).__name__}: {e}", file=sys.stderr)
    traceback.print_exc()
    sys.exit(1)
''')


def render_script(
    frames_dir: Path,
    sparse_dir: Path,
    images_dir: Path,
    project_path: Path,
    image_ext: str = "jpg",
) -> str:
    return SCRIPT_TEMPLATE.substitute(
        frames_dir=repr(str(frames_dir)),
        sparse_dir=repr(str(sparse_dir)),
        images_dir=repr(str(images_dir)),
        project_path=repr(str(project_path)),
        image_glob=repr(f"*.{image_ext}"),
    )


class MetashapeBackend(ReconstructionBackend):
    """Writes a processing script and runs ``metashape -r <script>``.

    Console output goes to ``metashape_log.txt``; on failure its tail becomes
    the diagnostics.
    """

    method: ClassVar[ReconMethod] = ReconMethod.METASHAPE

    def layout(self, output_dir: Path) -> tuple[Path, Path]:
        return output_dir / "images", output_dir / "sparse" / "0"

    def build_command(self, executable: Path, script_path: Path, log_path: Path) -> str:
        return f"{join_command([executable, '-r', script_path])} > {join_command([log_path])} 2>&1"

    def _reconstruct(self, executable: Path, frames_dir: Path, output_dir: Path) -> ReconstructionResult:
        result = self.empty_result(output_dir)
        result.images_dir.mkdir(parents=True, exist_ok=True)
        result.sparse_dir.mkdir(parents=True, exist_ok=True)

        script_path = output_dir / SCRIPT_NAME
        log_path = output_dir / LOG_NAME
        project_path = output_dir / PROJECT_NAME
        result.artifacts.update(script=script_path, log=log_path, project=project_path)

        script_path.write_text(
            render_script(
                frames_dir,
                result.sparse_dir,
                result.images_dir,
                project_path,
                self.config.image_ext,
            ),
            encoding="utf-8",
        )

        logger.info("Running Metashape (this may take a while)...")
        cmd = self.build_command(executable, script_path, log_path)
        returncode = run_command(cmd).returncode
        if returncode != 0:
            self.fail(result, f"Metashape processing failed (exit code {returncode})", cmd)
            logger.error(f"Check log file for details: {log_path}")
            tail = tail_lines(log_path, self.config.log_tail_lines)
            if tail:
                logger.error("Last lines from Metashape log:")
                for line in tail:
                    logger.error(f"  {line}")
                result.diagnostics.extend(tail)
            return result

        result.success = True
        result.num_registered = count_registered_images(result.sparse_dir)
        logger.info("Metashape reconstruction complete!")
        logger.info("Output structure:")
        logger.info(f"  {result.images_dir} - Images")
        logger.info(f"  {result.sparse_dir} - Camera poses (COLMAP format)")
        return result
