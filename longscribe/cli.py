"""
longscribe.cli - Typer CLI entry point.

Provides the transcribe, plan, validate-key and init subcommands.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from longscribe import __version__
from longscribe.config import (
    CONFIG_FILENAME,
    LongscribeConfig,
    create_default_config,
    load_config,
    write_config,
)
from longscribe.exceptions import DecodeError, DependencyError, LongscribeError
from longscribe.logging import configure_logging
from longscribe.utils import format_duration, format_size

app = typer.Typer(
    name="longscribe",
    help="Chunked transcription for long voice recordings.\n\n"
    "Splits recordings that exceed the API's 25 MB / 10 minute limits into "
    "16kHz mono WAV chunks, transcribes them in order and merges the text.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"longscribe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Longscribe - chunked transcription for long voice recordings."""
    pass


def _load_config_or_exit(config_path: Path | None, **overrides) -> LongscribeConfig:
    try:
        return load_config(config_path, **overrides)
    except LongscribeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _print_error(e: LongscribeError) -> None:
    console.print(f"[red]Error: {e}[/red]")
    if isinstance(e, DecodeError):
        from longscribe.validation import check_ffmpeg

        try:
            check_ffmpeg()
        except DependencyError as dep:
            console.print(f"[dim]  {dep.message}. {dep.install_hint}[/dim]")


def _read_audio_or_exit(audio: Path) -> tuple[bytes, str | None]:
    audio_file = audio.expanduser()
    if not audio_file.is_file():
        console.print(f"[red]Error: Audio file not found: {audio_file}[/red]")
        raise typer.Exit(1)
    mime_type, _ = mimetypes.guess_type(audio_file.name)
    return audio_file.read_bytes(), mime_type


@app.command("init")
def init_config(
    path: str = typer.Option(".", "--path", "-d", help="Directory to write longscribe.yaml in"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write a default longscribe.yaml."""
    config_file = Path(path) / CONFIG_FILENAME

    if config_file.exists() and not force:
        console.print(f"[red]Error: '{config_file}' already exists[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(), config_file)
    console.print(f"[green]✓[/green] Wrote {config_file}")
    console.print("[dim]  Set OPENAI_API_KEY or add api_key to the file.[/dim]")


@app.command("transcribe")
def transcribe(
    audio: Path = typer.Argument(..., help="Audio file to transcribe"),
    language: str | None = typer.Option(None, "--language", "-l", help="Language code"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write transcript here"),
    as_json: bool = typer.Option(False, "--json", help="Write the full result as JSON"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    bit_depth: int | None = typer.Option(None, "--bit-depth", help="Chunk WAV bit depth (8 or 16)"),
    retries: int | None = typer.Option(None, "--retries", help="Retries per failed chunk"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable debug logging"),
) -> None:
    """Transcribe an audio file, splitting it into chunks when needed."""
    configure_logging(verbose)
    config = _load_config_or_exit(config_path, bit_depth=bit_depth, max_retries=retries)
    data, mime_type = _read_audio_or_exit(audio)

    from longscribe.io import write_json, write_text
    from longscribe.transcribe.engine import create_orchestrator_from_config

    try:
        orchestrator = create_orchestrator_from_config(config)
    except LongscribeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    progress = Progress(
        TextColumn("[cyan]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )
    try:
        with progress:
            task = progress.add_task("Starting...", total=100)
            result = orchestrator.transcribe(
                data,
                language or config.language,
                on_progress=lambda event: progress.update(
                    task, completed=event.progress, description=event.status
                ),
                mime_type=mime_type,
            )
    except LongscribeError as e:
        _print_error(e)
        raise typer.Exit(1)
    finally:
        close = getattr(orchestrator.client, "close", None)
        if close:
            close()

    if output:
        if as_json:
            write_json(output, result.to_dict())
        else:
            write_text(output, result.text)
        console.print(
            f"[green]✓[/green] Transcribed {format_duration(result.duration_ms / 1000)} "
            f"in {len(result.chunks)} chunk(s) → {output}"
        )
    elif as_json:
        console.print_json(data=result.to_dict())
    else:
        console.print(result.text, markup=False, highlight=False)


@app.command("plan")
def plan(
    audio: Path = typer.Argument(..., help="Audio file to plan"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Show how an audio file would be split, without uploading anything."""
    config = _load_config_or_exit(config_path)
    data, mime_type = _read_audio_or_exit(audio)

    from longscribe.audio.decode import probe
    from longscribe.audio.planner import needs_chunking, plan_chunks
    from longscribe.audio.resample import target_rate_for
    from longscribe.validation import estimate_wav_size

    try:
        source = probe(data, mime_type=mime_type)
    except LongscribeError as e:
        _print_error(e)
        raise typer.Exit(1)

    console.print(
        f"{audio.name}: {format_duration(source.duration_ms / 1000)}, "
        f"{format_size(source.byte_length)}, {source.sample_rate} Hz, "
        f"{source.num_channels} channel(s)"
    )

    if not needs_chunking(
        source.byte_length,
        source.duration_ms,
        config.max_bytes_per_chunk,
        config.max_duration_per_chunk_ms,
    ):
        console.print("[green]Fits in a single request, no splitting needed.[/green]")
        return

    chunk_plan = plan_chunks(
        source.byte_length,
        source.duration_ms,
        source.total_samples,
        max_bytes_per_chunk=config.max_bytes_per_chunk,
        safety_bytes_per_chunk=config.safety_bytes_per_chunk,
        max_duration_per_chunk_ms=config.max_duration_per_chunk_ms,
    )
    rate = target_rate_for(source.sample_rate, config.target_sample_rate)

    table = Table(title=f"Chunk Plan (by size {chunk_plan.chunks_by_size}, "
                  f"by duration {chunk_plan.chunks_by_duration})")
    table.add_column("Chunk", style="cyan")
    table.add_column("Samples", style="green")
    table.add_column("Duration", style="green")
    table.add_column("Est. WAV size", style="yellow")

    for i, chunk_range in enumerate(chunk_plan):
        duration_ms = chunk_range.length / source.sample_rate * 1000
        size = estimate_wav_size(duration_ms, rate, config.bit_depth)
        style = "red" if size > config.max_bytes_per_chunk else "yellow"
        table.add_row(
            str(i + 1),
            f"{chunk_range.start_sample}-{chunk_range.end_sample}",
            format_duration(duration_ms / 1000),
            f"[{style}]{format_size(size)}[/{style}]",
        )

    console.print(table)


@app.command("validate-key")
def validate_key(
    strict: bool | None = typer.Option(
        None, "--strict/--lenient", help="Only accept HTTP 2xx responses"
    ),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Check that the configured API key is accepted."""
    config = _load_config_or_exit(config_path, strict_validation=strict)
    if not config.api_key:
        console.print("[red]Error: No API key configured[/red]")
        raise typer.Exit(1)

    from longscribe.transcribe.keycheck import validate_api_key

    if validate_api_key(
        config.api_key,
        base_url=config.base_url,
        strict=config.strict_validation,
    ):
        console.print("[green]✓[/green] API key is valid")
    else:
        console.print("[red]✗ API key is invalid[/red]")
        raise typer.Exit(1)
