from __future__ import annotations

from typing import Sequence

from recap.subtitles.cues import Cue, CueStyle

DEFAULT_OVERLAY_POSITION = "X1:600 X2:625 Y1:100 Y2:100"


def format_timestamp(milliseconds: int) -> str:
    total_ms = max(int(milliseconds), 0)
    hours = total_ms // 3_600_000
    total_ms %= 3_600_000
    minutes = total_ms // 60_000
    total_ms %= 60_000
    secs = total_ms // 1000
    millis = total_ms % 1000
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def to_srt(cues: Sequence[Cue], overlay_position: str = DEFAULT_OVERLAY_POSITION) -> str:
    """Build an SRT string from cues.

    Overlay cues get SRT coordinates on their timing line so they render
    clear of the shared screen. Cues without text are skipped.
    """

    lines: list[str] = []
    number = 0
    for cue in sorted(cues, key=lambda item: item.start):
        text = cue.text.strip()
        if not text:
            continue
        number += 1
        timing = f"{format_timestamp(cue.start)} --> {format_timestamp(cue.end)}"
        if cue.style is CueStyle.OVERLAY and overlay_position:
            timing = f"{timing} {overlay_position}"
        lines.append(str(number))
        lines.append(timing)
        lines.append(text)
        lines.append("")
    if not lines:
        return ""
    return "\n".join(lines).strip() + "\n"
