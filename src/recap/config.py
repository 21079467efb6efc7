from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    work_dir: Path = Field(default_factory=lambda: Path.cwd() / "recap-work")
    output_dir: Path | None = None

    events_dirname: str = "meeting-events"
    audio_dirname: str = "audio"
    video_dirname: str = "video"

    subtitles_filename: str = "sub.srt"
    manifest_filename: str = "ffmpeg-input.txt"
    segments_filename: str = "segments.json"
    output_filename: str = "recording.mp4"

    ffmpeg_path: Path | None = None
    parse_workers: int = Field(default=4, ge=1)

    overlay_position: str = "X1:600 X2:625 Y1:100 Y2:100"
    camera_scale: str = "480:270"
    camera_offset: str = "1440:0"
    output_scale: str = "1280:720"
    output_fps: str = "14.98"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="RECAP_", extra="ignore")

    @model_validator(mode="after")
    def _derive_paths(self) -> "Settings":
        if "output_dir" not in self.model_fields_set or self.output_dir is None:
            self.output_dir = self.work_dir / "output"
        level = self.log_level.upper().strip()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unsupported log level '{self.log_level}'. Allowed: {', '.join(LOG_LEVELS)}")
        self.log_level = level
        return self

    def capture_paths(self, capture_dir: Path) -> tuple[Path, Path, Path]:
        """Return the (events, audio, video) directories of a capture."""

        return (
            capture_dir / self.events_dirname,
            capture_dir / self.audio_dirname,
            capture_dir / self.video_dirname,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
