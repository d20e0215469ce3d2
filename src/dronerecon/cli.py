"""CLI entry point for the dronerecon pipeline.

Usage:
    dronerecon run --source flight.mp4 --output out/    # Run full pipeline
    dronerecon run --config configs/pipeline.yaml
    dronerecon run-step extract -i '{"video_path": "a.mp4", "output_dir": "out/frames"}'
    dronerecon info                                      # Show resolved tools
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from dronerecon.core.contracts import PipelineConfig, ReconMethod, ToolPaths
from dronerecon.core.logging import setup_logging

app = typer.Typer(name="dronerecon", help="Drone video to Gaussian-splatting dataset")
console = Console()

STEPS = {
    "extract": "dronerecon.steps.s01_extract_frames.step.ExtractFramesStep",
    "reconstruct": "dronerecon.steps.s02_reconstruct.step.ReconstructStep",
}


def _build_config(
    config: Optional[Path],
    source: Optional[Path],
    output: Optional[Path],
    fps: Optional[float],
    method: Optional[ReconMethod],
    vendor_dir: Optional[Path],
) -> PipelineConfig:
    from dronerecon.core.pipeline_runner import load_pipeline_config

    base = load_pipeline_config(config) if config else PipelineConfig()
    overrides = {}
    if source is not None:
        overrides["source_path"] = source
    if output is not None:
        overrides["output_dir"] = output
    if fps is not None:
        overrides["frame_rate"] = fps
    if method is not None:
        overrides["method"] = method
    data = base.model_dump()
    data.update(overrides)
    if vendor_dir is not None:
        data["tools"] = {**data["tools"], "vendor_dir": vendor_dir}
    return PipelineConfig(**data)


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, help="Pipeline config path (YAML)"),
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Video file or folder of videos"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
    fps: Optional[float] = typer.Option(None, help="Frames per second to extract"),
    method: Optional[ReconMethod] = typer.Option(None, help="Reconstruction backend"),
    vendor_dir: Optional[Path] = typer.Option(None, help="Directory with bundled tools"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Run the full pipeline."""
    setup_logging(log_level)
    from dronerecon.core.pipeline_runner import run_pipeline

    pipeline_cfg = _build_config(config, source, output, fps, method, vendor_dir)
    report = run_pipeline(pipeline_cfg)
    if not report.success:
        console.print(f"[red]Pipeline failed at stage: {report.failed_stage}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Done in {report.elapsed_seconds:.1f}s[/green]")


@app.command()
def run_step(
    step_name: str = typer.Argument(..., help="Step name: extract | reconstruct"),
    input_json: str = typer.Option(None, "--input", "-i", help="Input as JSON string"),
    step_config: Optional[Path] = typer.Option(None, "--step-config", help="Step config YAML"),
    config: Optional[Path] = typer.Option(None, help="Pipeline config path (for tool paths)"),
) -> None:
    """Run a single pipeline step."""
    import importlib

    setup_logging()
    from dronerecon.core.pipeline_runner import load_pipeline_config, load_step_config

    if step_name not in STEPS:
        console.print(f"[red]Unknown step '{step_name}'. Choose from: {', '.join(STEPS)}[/red]")
        raise typer.Exit(1)

    module_path, cls_name = STEPS[step_name].rsplit(".", 1)
    step_cls = getattr(importlib.import_module(module_path), cls_name)
    tools = load_pipeline_config(config).tools if config else ToolPaths()
    cfg = load_step_config(step_config, step_cls.config_type) if step_config else step_cls.config_type()
    step_instance = step_cls(config=cfg, tools=tools)

    if not input_json:
        required = step_cls.get_input_schema().get("required", [])
        console.print(f"[yellow]Step '{step_name}' requires input fields: {required}[/yellow]")
        console.print("[yellow]Use --input/-i with JSON string, e.g.:[/yellow]")
        console.print(f'  dronerecon run-step {step_name} -i \'{{"field": "value"}}\'')
        raise typer.Exit(1)

    console.print(f"[green]Running step: {step_name}[/green]")
    step_input = step_cls.input_type(**json.loads(input_json))
    output = step_instance.execute(step_input)
    console.print(f"[green]Done. Output:[/green] {output.model_dump_json(indent=2)}")


@app.command()
def info(
    config: Optional[Path] = typer.Option(None, help="Pipeline config path (YAML)"),
    vendor_dir: Optional[Path] = typer.Option(None, help="Directory with bundled tools"),
) -> None:
    """Show which external tools would be used."""
    from dronerecon.utils.tools import PATH_NAMES, find_tool

    pipeline_cfg = _build_config(config, None, None, None, None, vendor_dir)
    table = Table(title=f"Tools (method: {pipeline_cfg.method.display_name})")
    table.add_column("Tool", style="cyan")
    table.add_column("Path", style="green")
    table.add_column("Found", style="yellow")

    for name in PATH_NAMES:
        path = find_tool(name, pipeline_cfg.tools)
        table.add_row(name, str(path) if path else "-", "Y" if path else "N")
    console.print(table)


if __name__ == "__main__":
    app()
