from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

CAPTURE_STARTED = "CaptureStarted"
CAPTURE_ENDED = "CaptureEnded"
SHARE_STARTED = "AttendeeVideoJoined"
SHARE_STOPPED = "AttendeeVideoLeft"
ACTIVE_SPEAKER = "ActiveSpeaker"

CONTENT_SHARE_MODALITY = "ContentShare"


class MediaModality(str, Enum):
    CONTENT = "Content"
    OTHER = "Other"

    @classmethod
    def from_raw(cls, value: Any) -> "MediaModality | None":
        if value is None:
            return None
        return cls.CONTENT if value == CONTENT_SHARE_MODALITY else cls.OTHER


def parse_timestamp(value: Any) -> datetime:
    """Decode an event timestamp into an aware UTC datetime.

    Accepts ISO 8601 strings (``Z`` suffix or explicit offset) and epoch
    milliseconds.
    """

    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, (int, float)):
        return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    timestamp: datetime
    attendee_id: str | None = None
    media_modality: MediaModality | None = None
    source: str = ""
    index: int = 0

    @property
    def is_content_share(self) -> bool:
        return self.media_modality is MediaModality.CONTENT

    def describe(self) -> str:
        location = f"{self.source}#{self.index}" if self.source else f"#{self.index}"
        return f"{self.type} at {self.timestamp.isoformat()} ({location})"


@dataclass(frozen=True, slots=True)
class RecordingWindow:
    start: datetime
    end: datetime

    @property
    def duration_ms(self) -> int:
        return self.offset_ms(self.end)

    def offset_ms(self, moment: datetime) -> int:
        """Milliseconds from the window start to ``moment`` (may be negative)."""

        return (moment - self.start) // timedelta(milliseconds=1)

    def clamp(self, moment: datetime) -> datetime:
        return min(max(moment, self.start), self.end)
