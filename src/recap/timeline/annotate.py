from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Sequence

from recap.events.models import SHARE_STARTED, SHARE_STOPPED, Event, RecordingWindow

logger = logging.getLogger(__name__)

IntervalKind = Literal["plain", "overlay"]


@dataclass(frozen=True, slots=True)
class AnnotatedEvent:
    event: Event
    position: int
    sharing: bool


@dataclass(frozen=True, slots=True)
class Interval:
    kind: IntervalKind
    start: datetime
    end: datetime


@dataclass(frozen=True, slots=True)
class Timeline:
    window: RecordingWindow
    events: tuple[AnnotatedEvent, ...]
    intervals: tuple[Interval, ...]


def next_valid_timestamp(events: Sequence[Event], position: int, window: RecordingWindow) -> datetime:
    """First timestamp at or after ``position`` that is not before the window start.

    Falls back to the window end when the rest of the stream is skewed too.
    """

    cursor = position
    while cursor < len(events):
        candidate = events[cursor].timestamp
        if candidate >= window.start:
            return candidate
        cursor += 1
    return window.end


def annotate(events: Sequence[Event], window: RecordingWindow) -> Timeline:
    """Single forward pass over chronologically ordered events.

    Records the share state in force at every event and the plain/overlay
    intervals that partition the recording window.
    """

    annotated: list[AnnotatedEvent] = []
    intervals: list[Interval] = []
    sharing = False
    segment_start = window.start
    share_start = window.start

    def close(kind: IntervalKind, start: datetime, end: datetime) -> None:
        start, end = window.clamp(start), window.clamp(end)
        if end > start:
            intervals.append(Interval(kind=kind, start=start, end=end))

    for position, event in enumerate(events):
        annotated.append(AnnotatedEvent(event=event, position=position, sharing=sharing))
        if not event.is_content_share:
            continue

        if event.type == SHARE_STARTED and not sharing:
            share_start = max(event.timestamp, segment_start)
            close("plain", segment_start, share_start)
            sharing = True
        elif event.type == SHARE_STOPPED and sharing:
            stopped_at = event.timestamp
            if stopped_at < window.start:
                stopped_at = next_valid_timestamp(events, position + 1, window)
                logger.info(
                    "Corrected skewed share stop %s to %s",
                    event.describe(),
                    stopped_at.isoformat(),
                )
            stopped_at = max(stopped_at, share_start)
            close("overlay", share_start, stopped_at)
            sharing = False
            segment_start = stopped_at

    if sharing:
        logger.warning("Screen share never stopped; closing it at the end of the recording")
        close("overlay", share_start, window.end)
    else:
        close("plain", segment_start, window.end)

    return Timeline(window=window, events=tuple(annotated), intervals=tuple(intervals))
