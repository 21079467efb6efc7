from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from recap.config import Settings
from recap.media.chunks import ChunkIndex
from recap.media.ffmpeg import get_ffmpeg_version, resolve_ffmpeg_command


@dataclass(slots=True)
class DoctorCheck:
    name: str
    status: str
    detail: str


def _check_ffmpeg(settings: Settings) -> DoctorCheck:
    if settings.ffmpeg_path is not None and not settings.ffmpeg_path.exists():
        return DoctorCheck(
            "ffmpeg",
            "fail",
            f"Configured RECAP_FFMPEG_PATH does not exist: {settings.ffmpeg_path}",
        )

    ffmpeg_version = get_ffmpeg_version(settings.ffmpeg_path)
    if ffmpeg_version:
        return DoctorCheck("ffmpeg", "ok", ffmpeg_version)

    command = resolve_ffmpeg_command(settings.ffmpeg_path)
    return DoctorCheck(
        "ffmpeg",
        "warn",
        f"ffmpeg not found (tried '{command}'). "
        "Timeline and subtitles still work; stitching needs ffmpeg.",
    )


def _check_events_dir(events_dir: Path) -> DoctorCheck:
    if not events_dir.is_dir():
        return DoctorCheck("Event logs", "fail", f"Missing directory: {events_dir}")
    count = sum(1 for path in events_dir.iterdir() if path.is_file())
    if count == 0:
        return DoctorCheck("Event logs", "fail", f"No event-log files in {events_dir}")
    return DoctorCheck("Event logs", "ok", f"{count} files in {events_dir}")


def _check_chunk_dir(name: str, directory: Path, *, required: bool) -> DoctorCheck:
    if not directory.is_dir():
        status = "fail" if required else "warn"
        return DoctorCheck(name, status, f"Missing directory: {directory}")
    index = ChunkIndex(directory)
    if not len(index):
        return DoctorCheck(name, "fail" if required else "warn", f"No timestamp-named chunks in {directory}")
    detail = f"{len(index)} chunks, {index.chunks[0].name} .. {index.chunks[-1].name}"
    if index.skipped:
        return DoctorCheck(name, "warn", f"{detail}; {len(index.skipped)} files with undecodable names")
    return DoctorCheck(name, "ok", detail)


def run_doctor(settings: Settings, capture_dir: Path | None = None) -> list[DoctorCheck]:
    checks = [_check_ffmpeg(settings)]
    if capture_dir is None:
        return checks

    events_dir, audio_dir, video_dir = settings.capture_paths(capture_dir)
    checks.append(_check_events_dir(events_dir))
    checks.append(_check_chunk_dir("Audio chunks", audio_dir, required=True))
    checks.append(_check_chunk_dir("Video chunks", video_dir, required=False))
    return checks
