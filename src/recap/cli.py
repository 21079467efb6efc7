from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from recap.config import get_settings
from recap.doctor import run_doctor
from recap.events.parser import EventLogError
from recap.media.ffmpeg import FfmpegError
from recap.services import Reconstruction, RecapService
from recap.speakers import JoinRecordFileLookup, SpeakerLookupError

app = typer.Typer(help="recap - rebuild meeting recordings and speaker subtitles from capture logs")
console = Console()
STATUS_STYLES = {"ok": "green", "warn": "yellow", "fail": "red"}


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG|INFO|WARNING|ERROR"),
) -> None:
    setup_logging(log_level or get_settings().log_level)


def _print_reconstruction(reconstruction: Reconstruction) -> None:
    window = reconstruction.window
    table = Table(title="Recording segments")
    table.add_column("#")
    table.add_column("Kind")
    table.add_column("Start (ms)")
    table.add_column("End (ms)")
    table.add_column("Audio")
    table.add_column("Video")
    for index, segment in enumerate(reconstruction.segments):
        video = getattr(segment, "video", ())
        table.add_row(
            str(index),
            segment.kind,
            str(window.offset_ms(segment.start)),
            str(window.offset_ms(segment.end)),
            str(len(segment.audio)),
            str(len(video)) if video else "-",
        )
    console.print(table)
    console.print(f"[green]Events:[/green] {reconstruction.event_count}")
    console.print(f"[green]Cues:[/green] {len(reconstruction.cues)}")
    if reconstruction.failures:
        console.print(f"[yellow]Dropped event records:[/yellow] {len(reconstruction.failures)}")
        for failure in reconstruction.failures:
            console.print(f"- {failure.describe()}")


def _reconstruct(
    service: RecapService,
    capture_dir: Path,
    speakers_file: Path | None,
    meeting_id: str | None,
    session_id: str | None,
) -> Reconstruction:
    lookup = JoinRecordFileLookup(speakers_file) if speakers_file is not None else None
    if lookup is not None and meeting_id is None:
        raise typer.BadParameter("--meeting-id is required with --speakers", param_hint="--meeting-id")
    try:
        return service.reconstruct(
            capture_dir,
            lookup=lookup,
            meeting_id=meeting_id,
            session_id=session_id,
        )
    except EventLogError as exc:
        console.print(f"[red]event log error:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    except SpeakerLookupError as exc:
        console.print(f"[red]speaker lookup failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]reconstruct failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc


@app.command()
def reconstruct(
    capture_dir: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory holding meeting-events/, audio/, video/"),
    speakers: Path | None = typer.Option(None, "--speakers", exists=True, dir_okay=False, help="JSON file of attendee-joined records"),
    meeting_id: str | None = typer.Option(None, "--meeting-id"),
    session_id: str | None = typer.Option(None, "--session-id"),
    output: Path | None = typer.Option(None, "--output", help="Artifact directory"),
) -> None:
    """Rebuild the segment list and subtitles of one capture."""

    service = RecapService()
    reconstruction = _reconstruct(service, capture_dir, speakers, meeting_id, session_id)
    paths = service.write_artifacts(reconstruction, output)

    _print_reconstruction(reconstruction)
    console.print("[green]Artifacts:[/green]")
    for name, path in paths.items():
        console.print(f"- {name}: {path}")


@app.command()
def stitch(
    capture_dir: Path = typer.Argument(..., exists=True, file_okay=False),
    speakers: Path | None = typer.Option(None, "--speakers", exists=True, dir_okay=False),
    meeting_id: str | None = typer.Option(None, "--meeting-id"),
    session_id: str | None = typer.Option(None, "--session-id"),
    output: Path | None = typer.Option(None, "--output"),
    burn_subtitles: bool = typer.Option(False, "--burn-subtitles", help="Render the subtitles into the video"),
) -> None:
    """Rebuild the timeline and join the media chunks with ffmpeg."""

    service = RecapService()
    reconstruction = _reconstruct(service, capture_dir, speakers, meeting_id, session_id)
    try:
        outcome = service.stitch(reconstruction, output, burn_in=burn_subtitles)
    except FfmpegError as exc:
        console.print(f"[red]ffmpeg error:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    except ValueError as exc:
        console.print(f"[red]stitch failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    _print_reconstruction(reconstruction)
    console.print(f"[green]Recording:[/green] {outcome.recording_path}")


@app.command()
def doctor(
    capture_dir: Path | None = typer.Argument(None, help="Optional capture directory to inspect"),
) -> None:
    """Check ffmpeg and the layout of a capture directory."""

    checks = run_doctor(get_settings(), capture_dir)
    title = f"recap doctor: {capture_dir}" if capture_dir is not None else "recap doctor"

    table = Table(title=title)
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")
    for check in checks:
        style = STATUS_STYLES.get(check.status, "white")
        table.add_row(check.name, f"[{style}]{check.status.upper()}[/{style}]", check.detail)
    console.print(table)

    counts = Counter(check.status for check in checks)
    console.print(", ".join(f"{counts[status]} {status}" for status in STATUS_STYLES))
    if counts["fail"]:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
