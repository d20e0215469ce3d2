"""Tests for core pipeline runner and contracts."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from dronerecon.core.contracts import FrameSet, GPSFix, PipelineConfig, ReconMethod, ToolPaths
from dronerecon.core.logging import RunLogCollector
from dronerecon.core.pipeline_runner import (
    discover_videos,
    load_pipeline_config,
    load_step_config,
    run_pipeline,
    submit_pipeline,
)
from dronerecon.steps.s01_extract_frames.config import ExtractFramesConfig
from tests.conftest import make_video, posix_only, read_calls, write_tool


class TestContracts:
    def test_pipeline_config_defaults(self):
        cfg = PipelineConfig()
        assert cfg.source_path is None
        assert cfg.output_dir is None
        assert cfg.frame_rate == 1.0
        assert cfg.method == ReconMethod.COLMAP

    def test_pipeline_config_is_frozen(self):
        cfg = PipelineConfig(frame_rate=2.0)
        with pytest.raises(ValidationError):
            cfg.frame_rate = 3.0

    @pytest.mark.parametrize("rate", [0, -1.5])
    def test_frame_rate_must_be_positive(self, rate):
        with pytest.raises(ValidationError):
            PipelineConfig(frame_rate=rate)

    def test_blank_paths_are_unset(self):
        cfg = PipelineConfig(source_path="  ", output_dir="", tools={"ffmpeg": "", "vendor_dir": " "})
        assert cfg.source_path is None
        assert cfg.output_dir is None
        assert cfg.tools.ffmpeg is None
        assert cfg.tools.vendor_dir is None

    def test_method_from_string(self):
        assert PipelineConfig(method="realityscan").method == ReconMethod.REALITYSCAN
        assert ReconMethod.METASHAPE.display_name == "Metashape"

    def test_invalid_fix(self):
        fix = GPSFix.invalid()
        assert fix.valid is False
        assert (fix.latitude, fix.longitude, fix.altitude) == (0.0, 0.0, 0.0)

    def test_frame_set_count(self, tmp_path: Path):
        fs = FrameSet(frames_dir=tmp_path, frames=[tmp_path / "a.jpg", tmp_path / "b.jpg"])
        assert fs.frame_count == 2
        assert fs.merge_policy == "in_place"


class TestConfigLoading:
    def test_load_pipeline_config(self, tmp_path: Path):
        path = tmp_path / "pipeline.yaml"
        path.write_text(yaml.dump({
            "source_path": str(tmp_path / "flight.mp4"),
            "output_dir": str(tmp_path / "out"),
            "frame_rate": 0.5,
            "method": "metashape",
            "tools": {"vendor_dir": str(tmp_path / "vendor")},
        }))
        cfg = load_pipeline_config(path)
        assert cfg.source_path == tmp_path / "flight.mp4"
        assert cfg.frame_rate == 0.5
        assert cfg.method == ReconMethod.METASHAPE
        assert cfg.tools.vendor_dir == tmp_path / "vendor"

    def test_empty_yaml_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_pipeline_config(path) == PipelineConfig()

    def test_load_step_config(self, tmp_path: Path):
        path = tmp_path / "s01.yaml"
        path.write_text("target_fps: 3\nembed_gps: false\n")
        cfg = load_step_config(path, ExtractFramesConfig)
        assert cfg.target_fps == 3.0
        assert cfg.embed_gps is False


class TestDiscoverVideos:
    def test_single_file(self, tmp_path: Path):
        video = make_video(tmp_path, "clip.mp4")
        videos = discover_videos(video)
        assert [v.path for v in videos] == [video.absolute()]
        assert videos[0].stem == "clip"

    def test_folder_is_filtered_and_sorted(self, tmp_path: Path):
        for name in ["b.MOV", "a.mp4", "c.avi", "notes.txt", "a.SRT"]:
            (tmp_path / name).write_text("1")
        (tmp_path / "sub.mp4").mkdir()
        names = [v.path.name for v in discover_videos(tmp_path)]
        assert names == ["a.mp4", "b.MOV", "c.avi"]

    def test_empty_folder(self, tmp_path: Path):
        assert discover_videos(tmp_path) == []


@posix_only
class TestValidation:
    def _run(self, **kwargs):
        report = run_pipeline(PipelineConfig(**kwargs))
        assert report.success is False
        assert report.failed_stage == "validate"
        return report

    def test_missing_source(self, tmp_path: Path, tools: ToolPaths):
        report = self._run(output_dir=tmp_path / "out", tools=tools)
        assert "Video path is required" in report.log_text
        assert read_calls(tools.ffmpeg) == []

    def test_missing_output(self, tmp_path: Path, tools: ToolPaths):
        report = self._run(source_path=make_video(tmp_path, "a.mp4"), tools=tools)
        assert "Output directory is required" in report.log_text
        assert read_calls(tools.ffmpeg) == []

    def test_nonexistent_source(self, tmp_path: Path, tools: ToolPaths):
        report = self._run(source_path=tmp_path / "gone.mp4", output_dir=tmp_path / "out", tools=tools)
        assert "Video path not found" in report.log_text
        assert not (tmp_path / "out").exists()

    def test_missing_ffmpeg(self, tmp_path: Path, tools: ToolPaths):
        tools = tools.model_copy(update={"ffmpeg": tmp_path / "nope" / "ffmpeg"})
        report = self._run(source_path=make_video(tmp_path, "a.mp4"), output_dir=tmp_path / "out", tools=tools)
        assert "ffmpeg not found" in report.log_text
        assert read_calls(tools.colmap) == []

    def test_missing_backend_tool(self, tmp_path: Path, tools: ToolPaths):
        tools = tools.model_copy(update={"metashape": tmp_path / "nope" / "metashape"})
        report = self._run(
            source_path=make_video(tmp_path, "a.mp4"),
            output_dir=tmp_path / "out",
            method="metashape",
            tools=tools,
        )
        assert "metashape not found" in report.log_text
        assert read_calls(tools.ffmpeg) == []

    def test_config_path_is_accepted(self, tmp_path: Path, tools: ToolPaths):
        path = tmp_path / "pipeline.yaml"
        path.write_text("frame_rate: 2\n")
        report = run_pipeline(path)
        assert report.failed_stage == "validate"


@posix_only
class TestSubmitPipeline:
    def test_future_yields_report(self, tmp_path: Path, tools: ToolPaths):
        lines = []
        cfg = PipelineConfig(
            source_path=make_video(tmp_path / "videos", "clip.mp4", frames=3),
            output_dir=tmp_path / "out",
            tools=tools,
        )
        report = submit_pipeline(cfg, on_log=lines.append).result(timeout=60)
        assert report.success is True
        assert report.frame_set.frame_count == 3
        assert lines == report.log


    def test_overlapping_runs_keep_separate_logs(self, tmp_path: Path, bin_dir: Path, tools: ToolPaths):
        slow_colmap = write_tool(bin_dir, "slow_colmap", f'sleep 0.3\nexec "{tools.colmap}" "$@"\n')
        tools = tools.model_copy(update={"colmap": slow_colmap})
        configs = {
            name: PipelineConfig(
                source_path=make_video(tmp_path / name, f"{name}.mp4", frames=2),
                output_dir=tmp_path / f"out_{name}",
                tools=tools,
            )
            for name in ("alpha", "bravo")
        }
        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = {name: submit_pipeline(cfg, executor=pool) for name, cfg in configs.items()}
            reports = {name: f.result(timeout=60) for name, f in futures.items()}

        assert reports["alpha"].success and reports["bravo"].success
        assert "alpha.mp4" in reports["alpha"].log_text
        assert "bravo" not in reports["alpha"].log_text
        assert "bravo.mp4" in reports["bravo"].log_text
        assert "alpha" not in reports["bravo"].log_text

class TestRunLogCollector:
    def test_forwards_and_collects(self):
        seen = []
        log = logging.getLogger("dronerecon.test_collector")
        with RunLogCollector(seen.append) as collector:
            log.info("first")
            log.debug("hidden")
            log.warning("two\nlines")
        log.info("after")
        assert collector.lines == ["first", "two", "lines"]
        assert seen == collector.lines
        assert collector.text == "first\ntwo\nlines"

    def test_restores_logger_level(self):
        root = logging.getLogger("dronerecon")
        before = root.level
        root.setLevel(logging.ERROR)
        try:
            with RunLogCollector() as collector:
                logging.getLogger("dronerecon.x").info("kept")
            assert collector.lines == ["kept"]
            assert root.level == logging.ERROR
        finally:
            root.setLevel(before)

    def test_collectors_in_other_threads_are_isolated(self):
        root = logging.getLogger("dronerecon")
        before = root.level
        barrier = threading.Barrier(2, timeout=10)
        lines = {}

        def work(name):
            log = logging.getLogger(f"dronerecon.{name}")
            with RunLogCollector() as collector:
                barrier.wait()
                for i in range(3):
                    log.info(f"{name} {i}")
                barrier.wait()
            lines[name] = collector.lines

        threads = [threading.Thread(target=work, args=(name,)) for name in ("left", "right")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert lines["left"] == ["left 0", "left 1", "left 2"]
        assert lines["right"] == ["right 0", "right 1", "right 2"]
        assert root.level == before
