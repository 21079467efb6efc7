from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from recap.events.models import ACTIVE_SPEAKER
from recap.speakers import SpeakerDirectory
from recap.timeline.annotate import Timeline

logger = logging.getLogger(__name__)

# Gap (ms) above which a style change is left alone.
SILENCE_GAP_MS = 1000
TRAILING_TRIM_MS = 200
LEADING_PUSH_MS = 800
RUN_PUSH_MS = 1000


class CueStyle(str, Enum):
    PLAIN = "plain"
    OVERLAY = "overlay"


@dataclass(frozen=True, slots=True)
class Cue:
    """One subtitle interval, in milliseconds from the recording start."""

    start: int
    end: int
    text: str
    style: CueStyle


def caption_text(name: str, style: CueStyle) -> str:
    if not name:
        return ""
    return f"{name} talking" if style is CueStyle.PLAIN else name


def generate_cues(timeline: Timeline, speakers: SpeakerDirectory) -> list[Cue]:
    """Turn active-speaker events into back-to-back cues."""

    window = timeline.window
    duration = window.duration_ms
    opened: list[tuple[int, str, CueStyle]] = []
    last_offset = 0

    for item in timeline.events:
        event = item.event
        if event.type != ACTIVE_SPEAKER:
            continue
        style = CueStyle.OVERLAY if item.sharing else CueStyle.PLAIN
        name = speakers.display_name(event.attendee_id)
        # Skewed stamps reuse the previous offset so starts never go backwards.
        offset = min(max(window.offset_ms(event.timestamp), last_offset), duration)
        last_offset = offset
        opened.append((offset, caption_text(name, style), style))

    cues: list[Cue] = []
    for position, (start, text, style) in enumerate(opened):
        end = opened[position + 1][0] if position + 1 < len(opened) else duration
        cues.append(Cue(start=start, end=end, text=text, style=style))
    return cues


def repair_transitions(cues: Sequence[Cue]) -> list[Cue]:
    """Pull cues of different styles apart where they touch.

    Each style change is measured against the last surviving cue. A change
    closer than ``SILENCE_GAP_MS`` trims the earlier cue and delays the later
    one; once a delayed cue has been swallowed entirely, following changes
    are pushed a full ``RUN_PUSH_MS`` past the survivor instead.
    """

    repaired: list[Cue] = []
    run = 1
    for cue in cues:
        if not repaired or repaired[-1].style is cue.style:
            repaired.append(cue)
            continue

        previous = repaired[-1]
        if cue.start - previous.end > SILENCE_GAP_MS:
            repaired.append(cue)
            continue

        if run > 1:
            previous_end = previous.end
            start = previous.end + RUN_PUSH_MS
        else:
            previous_end = previous.end - TRAILING_TRIM_MS
            start = cue.start + LEADING_PUSH_MS
        repaired[-1] = replace(previous, end=previous_end)

        if start > cue.end:
            run += 1
            logger.debug("Dropped cue %r swallowed by a style transition", cue.text)
            continue
        repaired.append(replace(cue, start=start))
        run = 1
    return repaired


def drop_degenerate(cues: Sequence[Cue]) -> list[Cue]:
    kept = [cue for cue in cues if cue.start < cue.end]
    if len(kept) != len(cues):
        logger.debug("Removed %d empty cues", len(cues) - len(kept))
    return kept


def synthesize_cues(timeline: Timeline, speakers: SpeakerDirectory) -> list[Cue]:
    cues = drop_degenerate(repair_transitions(generate_cues(timeline, speakers)))
    logger.info("Synthesized %d subtitle cues", len(cues))
    return cues
