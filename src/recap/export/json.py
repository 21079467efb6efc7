from __future__ import annotations

import json
from typing import Any, Sequence

from recap.events.models import RecordingWindow
from recap.subtitles.cues import Cue
from recap.timeline.segments import OverlaySegment, Segment


def segment_payload(segment: Segment, window: RecordingWindow) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "kind": segment.kind,
        "start": segment.start.isoformat(),
        "end": segment.end.isoformat(),
        "start_ms": window.offset_ms(segment.start),
        "end_ms": window.offset_ms(segment.end),
        "audio": [str(chunk.path) for chunk in segment.audio],
    }
    if isinstance(segment, OverlaySegment):
        payload["video"] = [str(chunk.path) for chunk in segment.video]
    return payload


def build_payload(
    window: RecordingWindow,
    segments: Sequence[Segment],
    cues: Sequence[Cue],
) -> dict[str, Any]:
    return {
        "window": {
            "start": window.start.isoformat(),
            "end": window.end.isoformat(),
            "duration_ms": window.duration_ms,
        },
        "segments": [segment_payload(segment, window) for segment in segments],
        "cues": [
            {"start": cue.start, "end": cue.end, "text": cue.text, "style": cue.style.value}
            for cue in cues
        ],
    }


def dumps_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)
