"""CLI interface for chunked and live transcription."""

import logging
import math
import tempfile
import wave
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from . import __version__
from .audio import SUPPORTED_EXTENSIONS, check_ffmpeg, discover_audio_files, probe_duration
from .backends.base import Backend
from .backends.mlx_audio import is_mlx_audio_available
from .backends.registry import list_models
from .config import PRESETS, DecodingSettings, Settings
from .errors import TranscriptionError
from .formatters import EXTENSIONS, FORMATTERS, format_txt
from .service import TranscriptionService
from .types import ProgressEvent, ProgressStage, TranscriptionResult

app = typer.Typer(
    name="parallel-parakeet",
    help="Transcribe long audio in parallel chunks, or stream it live.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

STAGE_LABELS = {
    ProgressStage.CONVERTING: "Converting",
    ProgressStage.DETECTING_LANGUAGE: "Detecting language",
    ProgressStage.LANGUAGE_DETECTED: "Language detected",
    ProgressStage.TRANSCRIBING: "Transcribing",
    ProgressStage.GENERATING_SUBTITLES: "Generating subtitles",
    ProgressStage.COMPLETE: "Complete",
}


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def parse_formats(format_str: str) -> list[str]:
    """Parse comma-separated format string into list of formats."""
    formats = []
    for part in format_str.split(","):
        fmt = part.strip().lower()
        if fmt == "all":
            return list(FORMATTERS.keys())
        if fmt and fmt in FORMATTERS:
            formats.append(fmt)
        elif fmt:
            err_console.print(f"[yellow]Warning: Unknown format '{fmt}', ignoring[/yellow]")
    return formats or ["srt"]  # Default to srt if nothing valid


def version_callback(value: bool) -> None:
    if value:
        console.print(f"parallel-parakeet {__version__}")
        raise typer.Exit()


def _write_outputs(
    result: TranscriptionResult,
    audio_path: Path,
    formats: list[str],
    output: Path | None,
    timestamps: bool,
    verbose: bool,
) -> None:
    """Write transcription results to files in all requested formats."""
    out_dir = output or audio_path.parent

    for fmt in formats:
        out_file = out_dir / (audio_path.stem + EXTENSIONS[fmt])
        if fmt == "txt":
            content = format_txt(result, timestamps=timestamps)
        else:
            content = FORMATTERS[fmt](result)
        out_file.write_text(content, encoding="utf-8")

        if verbose:
            console.print(f"  [green]✓[/green] {out_file}")


def _show_dry_run(
    audio_files: list[Path],
    formats: list[str],
    output: Path | None,
    chunk_duration: float,
    overlap: float,
) -> None:
    """Show what files would be processed in dry run mode."""
    console.print(f"[bold]Would process {len(audio_files)} file(s):[/bold]")
    stride = chunk_duration - overlap
    for audio_path in audio_files:
        duration = probe_duration(audio_path)
        console.print(f"  {audio_path}")
        if duration is None:
            console.print("    [dim]duration unknown[/dim]")
        else:
            chunks = 1 if duration <= chunk_duration else 1 + math.ceil((duration - chunk_duration) / stride)
            console.print(f"    [dim]{duration:.1f}s, {chunks} chunk(s)[/dim]")
        out_dir = output or audio_path.parent
        for fmt in formats:
            out_file = out_dir / (audio_path.stem + EXTENSIONS[fmt])
            console.print(f"    → {out_file}")


def _process_file(
    service: TranscriptionService,
    audio_path: Path,
    model: str,
    detect_language: bool,
    decoding: DecodingSettings,
    formats: list[str],
    output: Path | None,
    timestamps: bool,
    progress: Progress,
    verbose: bool,
) -> bool:
    """Process a single audio file. Returns True on success, False on error."""
    task = progress.add_task(f"[cyan]{audio_path.name}[/cyan]", total=100)

    def on_progress(event: ProgressEvent) -> None:
        description = f"[cyan]{audio_path.name}[/cyan] {STAGE_LABELS[event.stage]}"
        if event.stage is ProgressStage.LANGUAGE_DETECTED:
            description += f": {event.language}"
        if event.stage is ProgressStage.TRANSCRIBING:
            progress.update(task, completed=event.percent, description=description)
        else:
            progress.update(task, description=description)

    try:
        result = service.transcribe(
            audio_path,
            model_name=model,
            auto_detect_language=detect_language,
            listener=on_progress,
            decoding=decoding,
        )
        _write_outputs(result, audio_path, formats, output, timestamps, verbose)
        progress.update(task, completed=100)
        return True
    except TranscriptionError as e:
        err_console.print(f"[red]Error processing {audio_path}: {e}[/red]")
        return False


@app.command()
def transcribe(
    inputs: Annotated[
        list[Path],
        typer.Argument(help="Audio/video files or directories to transcribe", exists=True),
    ],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory (default: same as input file)"),
    ] = None,
    format: Annotated[
        str,
        typer.Option(
            "--format", "-f",
            help="Output format(s): txt, srt, vtt, json, or 'all'. Comma-separated.",
        ),
    ] = "srt",
    recursive: Annotated[
        bool, typer.Option("--recursive", "-r", help="Search directories recursively")
    ] = False,
    timestamps: Annotated[
        bool, typer.Option("--timestamps", "-t", help="Include timestamps in plain text output")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show what would be processed without transcribing")
    ] = False,
    fail_fast: Annotated[
        bool,
        typer.Option("--fail-fast/--continue-on-error", help="Stop on first error vs continue processing"),
    ] = False,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model ID, alias or local directory (see 'models')"),
    ] = None,
    detect_language: Annotated[
        bool,
        typer.Option("--detect-language/--no-detect-language", help="Auto-detect language or assume English"),
    ] = True,
    preset: Annotated[
        str, typer.Option("--preset", "-p", help=f"Decoding preset: {', '.join(PRESETS)}")
    ] = "balanced",
    temperature: Annotated[
        float | None, typer.Option("--temperature", help="Sampling temperature 0.0-1.0")
    ] = None,
    initial_prompt: Annotated[
        str | None, typer.Option("--initial-prompt", help="Context/vocabulary hint")
    ] = None,
    chunk_duration: Annotated[
        float | None, typer.Option("--chunk-duration", help="Chunk duration in seconds")
    ] = None,
    overlap: Annotated[
        float | None, typer.Option("--overlap", help="Overlap between chunks in seconds")
    ] = None,
    max_instances: Annotated[
        int | None,
        typer.Option("--max-instances", "-j", help="Engine instances resident at once"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show detailed progress")] = False,
) -> None:
    """Transcribe audio files to text, SRT, VTT, or JSON."""
    setup_logging(verbose)

    try:
        decoding = DecodingSettings.from_preset(preset)
        overrides = {}
        if temperature is not None:
            overrides["temperature"] = temperature
        if initial_prompt:
            overrides["initial_prompt"] = initial_prompt
        if overrides:
            decoding = decoding.with_overrides(**overrides)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--preset/--temperature")

    formats = parse_formats(format)
    audio_files = discover_audio_files(inputs, recursive=recursive)

    if not audio_files:
        err_console.print("[red]No audio files found.[/red]")
        err_console.print(f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}")
        raise typer.Exit(1)

    if output:
        output.mkdir(parents=True, exist_ok=True)

    settings = Settings()
    updates = {}
    if chunk_duration is not None:
        updates["chunk_duration"] = chunk_duration
    if overlap is not None:
        updates["overlap_duration"] = overlap
    if max_instances is not None:
        updates["max_engine_instances"] = max_instances
    if updates:
        settings = settings.model_copy(update=updates)
    if not 0 <= settings.overlap_duration < settings.chunk_duration:
        raise typer.BadParameter(
            "overlap must be smaller than the chunk duration", param_hint="--overlap"
        )

    if dry_run:
        _show_dry_run(
            audio_files, formats, output, settings.chunk_duration, settings.overlap_duration
        )
        raise typer.Exit(0)

    if not check_ffmpeg():
        err_console.print("[yellow]Warning: ffmpeg not found. Conversion will fail.[/yellow]")
        err_console.print("[yellow]Install with: brew install ffmpeg[/yellow]")

    success_count = 0
    error_count = 0
    with TranscriptionService(settings) as service, Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        for audio_path in audio_files:
            if _process_file(
                service, audio_path, model or settings.default_model, detect_language,
                decoding, formats, output, timestamps, progress, verbose,
            ):
                success_count += 1
            else:
                error_count += 1
                if fail_fast:
                    raise typer.Exit(1)

    if len(audio_files) > 1 or verbose:
        console.print(
            f"[bold green]✓ {success_count} file(s) transcribed[/bold green]"
            + (f", [bold red]{error_count} error(s)[/bold red]" if error_count else "")
        )

    if error_count:
        raise typer.Exit(1)


@app.command()
def live(
    input: Annotated[
        Path, typer.Argument(help="Audio file streamed frame by frame", exists=True, dir_okay=False)
    ],
    model: Annotated[
        str | None, typer.Option("--model", "-m", help="Streaming-capable model ID or alias")
    ] = None,
    frame_ms: Annotated[
        int, typer.Option("--frame-ms", help="Frame length pushed per call (milliseconds)")
    ] = 500,
    show_partial: Annotated[
        bool, typer.Option("--partial/--no-partial", help="Print partial hypotheses")
    ] = True,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show detailed progress")] = False,
) -> None:
    """Simulate a live session by streaming a file through the recognizer."""
    setup_logging(verbose)
    settings = Settings()

    with TranscriptionService(settings) as service, tempfile.TemporaryDirectory(
        dir=settings.temp_dir
    ) as tmp_dir:
        try:
            wav_path = service.converter.convert(input, Path(tmp_dir) / "live.wav")
            session_id = service.start_session(model, settings.live_sample_rate)
        except TranscriptionError as e:
            err_console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

        if verbose:
            console.print(f"[dim]Session {session_id} started[/dim]")

        with wave.open(str(wav_path), "rb") as wav:
            frames_per_call = max(1, wav.getframerate() * frame_ms // 1000)
            while True:
                frame = wav.readframes(frames_per_call)
                if not frame:
                    break
                result = service.process_chunk(session_id, frame)
                if not result.text:
                    continue
                if result.is_partial:
                    if show_partial:
                        console.print(f"[dim]… {result.text}[/dim]")
                else:
                    console.print(f"[bold]{result.text}[/bold]")

        final_text = service.end_session(session_id)
        if final_text:
            console.print(f"[bold]{final_text}[/bold]")


@app.command("models")
def models_command() -> None:
    """List curated models."""
    mlx_audio_available = is_mlx_audio_available()
    console.print("[bold]Models:[/bold]\n")
    for info in list_models():
        caps = info.capabilities
        usable = info.backend == Backend.PARAKEET or mlx_audio_available
        style = "cyan" if usable else "dim"
        console.print(f"  [{style}]{info.model_id}[/{style}]")
        console.print(f"    Backend: {info.backend}")
        console.print(f"    Language detection: {'✓' if caps.supports_language_detection else '✗'}")
        console.print(f"    Live sessions: {'✓' if caps.supports_streaming else '✗'}")
        if info.aliases:
            console.print(f"    Aliases: {', '.join(info.aliases)}")
        console.print(f"    {info.description}")
        if not usable:
            console.print("    [dim]Install with: pip install 'parallel-parakeet\\[mlx-audio]'[/dim]")
        console.print()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """Chunked parallel and live speech-to-text."""


if __name__ == "__main__":
    app()
