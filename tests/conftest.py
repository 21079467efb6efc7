from __future__ import annotations

import json
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from recap.events.models import Event, MediaModality, RecordingWindow

T0 = datetime(2023, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def chunk_name(moment: datetime, suffix: str = ".mp4") -> str:
    return moment.strftime("%Y-%m-%d-%H-%M-%S-") + f"{moment.microsecond // 1000:03d}{suffix}"


def event(event_type: str, seconds: float, *, attendee: str | None = None, content: bool | None = None) -> Event:
    modality = None
    if content is not None:
        modality = MediaModality.CONTENT if content else MediaModality.OTHER
    return Event(type=event_type, timestamp=at(seconds), attendee_id=attendee, media_modality=modality)


def window(start: float, end: float) -> RecordingWindow:
    return RecordingWindow(start=at(start), end=at(end))


def raw_event(event_type: str, timestamp: str, **parameters: str) -> str:
    payload: dict[str, object] = {"Timestamp": timestamp, "EventType": event_type}
    if parameters:
        payload["EventParameters"] = parameters
    return json.dumps(payload)


@pytest.fixture
def make_chunks() -> Callable[[Path, list[float]], list[Path]]:
    def _make(directory: Path, seconds: list[float]) -> list[Path]:
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for value in seconds:
            path = directory / chunk_name(at(value))
            path.write_bytes(b"\x00")
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def capture_dir(tmp_path: Path, make_chunks) -> Path:
    """Capture with a single screen share from 10s to 20s of a 30s recording."""

    root = tmp_path / "capture"
    events_dir = root / "meeting-events"
    events_dir.mkdir(parents=True)

    first = "".join(
        [
            raw_event("CaptureStarted", iso(at(0))),
            raw_event("ActiveSpeaker", iso(at(2)), AttendeeId="att-a"),
            raw_event("AttendeeVideoJoined", iso(at(10)), AttendeeId="att-b", MediaModality="ContentShare"),
            raw_event("ActiveSpeaker", iso(at(12)), AttendeeId="att-b"),
        ]
    )
    second = "\n".join(
        [
            raw_event("AttendeeVideoLeft", iso(at(20)), AttendeeId="att-b", MediaModality="ContentShare"),
            raw_event("ActiveSpeaker", iso(at(24)), AttendeeId="att-a"),
            raw_event("CaptureEnded", iso(at(30))),
        ]
    )
    (events_dir / "2023-03-01-10-00-00-000.txt").write_text(first, encoding="utf-8")
    (events_dir / "2023-03-01-10-00-15-000.txt").write_text(second, encoding="utf-8")

    make_chunks(root / "audio", [0, 5, 10, 15, 20, 25])
    make_chunks(root / "video", [11, 16])

    (tmp_path / "speakers.json").write_text(
        json.dumps(
            [
                {
                    "attendeeId": "att-a",
                    "externalUserId": "tenant:alice",
                    "eventType": "chime:AttendeeJoined",
                    "meetingId": "meeting-1",
                    "breakoutSessionId": 105,
                },
                {
                    "attendeeId": "att-b",
                    "externalUserId": "tenant:bob",
                    "eventType": "chime:AttendeeJoined",
                    "meetingId": "meeting-1",
                    "breakoutSessionId": 105,
                },
            ]
        ),
        encoding="utf-8",
    )
    return root


def random_stream(seed: int, length: int = 60) -> list[Event]:
    """Deterministic mix of share transitions and speaker changes."""

    rng = random.Random(seed)
    events = [event("CaptureStarted", 0)]
    moment = 0.0
    for _ in range(length):
        moment += rng.choice([0, 0.25, 1, 3])
        kind = rng.choice(["AttendeeVideoJoined", "AttendeeVideoLeft", "ActiveSpeaker", "ActiveSpeaker"])
        if kind == "ActiveSpeaker":
            events.append(event(kind, moment, attendee=rng.choice("abc")))
        else:
            events.append(event(kind, moment, content=rng.random() < 0.8))
    events.append(event("CaptureEnded", moment + 1))
    return events
