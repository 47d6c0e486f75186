"""Typer CLI: scan a local video for frames containing text, or preview the sample timestamps."""

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from framescan.core.config import Settings, get_config
from framescan.core.logging import get_flight_logger, setup_logging
from framescan.pipeline.errors import PipelineError
from framescan.pipeline.frames import FrameArtifact
from framescan.pipeline.runner import default_output_dir, scan_video
from framescan.video.frame_extractor import format_timestamp
from framescan.video.intervals import timestamps_from_settings

app = typer.Typer(no_args_is_help=True, help="Find the frames of a video that contain text.")

TEXT_PREVIEW_CHARS = 60


def _load_settings(config_path: Path | None, overrides: dict) -> Settings:
    """Load config (explicit path or default) and apply CLI overrides; exit 1 on invalid values."""
    try:
        cfg = get_config(config_path)
        updates = {k: v for k, v in overrides.items() if v is not None}
        if updates:
            cfg = Settings.model_validate({**cfg.model_dump(), **updates})
    except FileNotFoundError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValidationError as e:
        typer.secho(f"Invalid configuration:\n{e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    return cfg


def _text_preview(frame: FrameArtifact) -> str:
    text = frame.classification.text if frame.classification is not None else ""
    text = " ".join(text.split())
    if len(text) > TEXT_PREVIEW_CHARS:
        return text[: TEXT_PREVIEW_CHARS - 3] + "..."
    return text


@app.command("scan")
def scan(
    video: Path = typer.Argument(..., help="Path to a local video file"),
    out: Path | None = typer.Option(None, "--out", help="Directory for extracted frames (default: <data_dir>/<video>/images)"),
    config: Path | None = typer.Option(None, "--config", help="Path to a framescan YAML config"),
    start: float | None = typer.Option(None, "--start", help="First sample, in seconds"),
    max_second: float | None = typer.Option(None, "--max", help="Last sample bound, in seconds"),
    interval: float | None = typer.Option(None, "--interval", help="Seconds between samples"),
    tolerance: int | None = typer.Option(None, "--tolerance", help="OCR failures tolerated before aborting"),
    classifier: str | None = typer.Option(None, "--classifier", help="OCR backend: azure or mock"),
    json_output: bool = typer.Option(False, "--json", help="Print relevant frames as JSON"),
) -> None:
    """Sample VIDEO at fixed intervals, OCR every frame, and list the frames that contain text."""
    cfg = _load_settings(
        config,
        {
            "start_second": start,
            "max_second": max_second,
            "frame_interval_seconds": interval,
            "error_tolerance_threshold": tolerance,
            "classifier": classifier,
        },
    )
    setup_logging(cfg)
    if not video.exists():
        typer.secho(f"Video not found: {video}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    output_dir = out if out is not None else default_output_dir(cfg, video)
    try:
        frames = scan_video(cfg, video, output_dir)
    except (PipelineError, ValueError) as e:
        typer.secho(f"Scan failed: {e}", fg=typer.colors.RED, err=True)
        fl = get_flight_logger()
        if fl is not None:
            dump_path = fl.dump(
                video.stem,
                {
                    "video": video,
                    "output_dir": output_dir,
                    "start_second": cfg.start_second,
                    "max_second": cfg.max_second,
                    "frame_interval_seconds": cfg.frame_interval_seconds,
                    "error_tolerance_threshold": cfg.error_tolerance_threshold,
                    "classifier": cfg.classifier,
                    "error": e,
                },
            )
            typer.echo(f"Flight log written to {dump_path}", err=True)
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps([f.to_dict() for f in frames], indent=2))
        return

    if not frames:
        typer.echo("No frames with text found.")
        return
    table = Table(title=None)
    table.add_column("Time (s)", justify="right")
    table.add_column("Image")
    table.add_column("Regions", justify="right")
    table.add_column("Text")
    for frame in frames:
        regions = len(frame.classification.regions) if frame.classification is not None else 0
        table.add_row(format_timestamp(frame.time), str(frame.image_path), str(regions), _text_preview(frame))
    console = Console()
    console.print(table)
    typer.echo(f"Found {len(frames)} frame(s) with text.")


@app.command("timestamps")
def timestamps(
    config: Path | None = typer.Option(None, "--config", help="Path to a framescan YAML config"),
    start: float | None = typer.Option(None, "--start", help="First sample, in seconds"),
    max_second: float | None = typer.Option(None, "--max", help="Last sample bound, in seconds"),
    interval: float | None = typer.Option(None, "--interval", help="Seconds between samples"),
) -> None:
    """Print the sample timestamps a scan would visit."""
    cfg = _load_settings(
        config,
        {"start_second": start, "max_second": max_second, "frame_interval_seconds": interval},
    )
    values = timestamps_from_settings(cfg)
    typer.echo(" ".join(format_timestamp(t) for t in values))
    typer.echo(f"{len(values)} timestamp(s).")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
