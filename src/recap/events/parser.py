from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from recap.events.models import (
    CAPTURE_ENDED,
    CAPTURE_STARTED,
    Event,
    MediaModality,
    RecordingWindow,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

# Characters after which JSON grammar allows an object to start.
_VALUE_OPENERS = frozenset(":,[")
_EXCERPT_CHARS = 80


class EventLogError(RuntimeError):
    """Raised when an event log cannot be turned into a timeline."""


class RecordingWindowError(EventLogError):
    """Raised when the capture start/end markers cannot be established."""


@dataclass(frozen=True, slots=True)
class RawSpan:
    text: str
    offset: int
    closed: bool


@dataclass(frozen=True, slots=True)
class ParseFailure:
    source: str
    span_index: int
    offset: int
    reason: str
    excerpt: str

    def describe(self) -> str:
        return f"{self.source} span #{self.span_index} at char {self.offset}: {self.reason}"


@dataclass(slots=True)
class EventLog:
    events: list[Event]
    window: RecordingWindow
    failures: list[ParseFailure]


def extract_spans(text: str) -> list[RawSpan]:
    """Split concatenated JSON object literals into candidate spans.

    Braces inside string literals are ignored. An object opening where no
    JSON value may start marks the previous record as truncated, so that
    record is cut there and scanning restarts with the new one.
    """

    spans: list[RawSpan] = []
    depth = 0
    start = -1
    in_string = False
    escaped = False
    previous = ""

    for position, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
                previous = char
            continue

        if char.isspace():
            continue

        if depth == 0:
            if char == "{":
                depth = 1
                start = position
                previous = char
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            if previous not in _VALUE_OPENERS:
                spans.append(RawSpan(text=text[start:position].rstrip(), offset=start, closed=False))
                depth = 1
                start = position
                previous = char
                continue
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                spans.append(RawSpan(text=text[start : position + 1], offset=start, closed=True))
                start = -1
        previous = char

    if depth > 0 and start >= 0:
        spans.append(RawSpan(text=text[start:].rstrip(), offset=start, closed=False))
    return spans


def _decode_span(span: RawSpan) -> dict[str, Any]:
    try:
        payload = json.loads(span.text)
    except json.JSONDecodeError:
        if span.closed:
            raise
        # Capture chunks are sometimes cut one closing brace short.
        payload = json.loads(span.text + "}")
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def event_from_payload(payload: dict[str, Any], *, source: str = "", index: int = 0) -> Event:
    event_type = payload.get("EventType")
    if not isinstance(event_type, str) or not event_type:
        raise ValueError("missing EventType")
    if "Timestamp" not in payload:
        raise ValueError(f"{event_type} event has no Timestamp")
    timestamp = parse_timestamp(payload["Timestamp"])

    parameters = payload.get("EventParameters")
    if not isinstance(parameters, dict):
        parameters = {}
    attendee_id = parameters.get("AttendeeId")
    return Event(
        type=event_type,
        timestamp=timestamp,
        attendee_id=str(attendee_id) if attendee_id is not None else None,
        media_modality=MediaModality.from_raw(parameters.get("MediaModality")),
        source=source,
        index=index,
    )


def parse_event_text(text: str, source: str = "") -> tuple[list[Event], list[ParseFailure]]:
    """Parse one event-log chunk into events, recording spans that had to be dropped."""

    events: list[Event] = []
    failures: list[ParseFailure] = []
    for span_index, span in enumerate(extract_spans(text)):
        try:
            payload = _decode_span(span)
            event = event_from_payload(payload, source=source, index=len(events))
        except (ValueError, TypeError, OverflowError) as exc:
            failure = ParseFailure(
                source=source,
                span_index=span_index,
                offset=span.offset,
                reason=str(exc),
                excerpt=span.text[:_EXCERPT_CHARS],
            )
            logger.warning("Dropping event record: %s", failure.describe())
            failures.append(failure)
            continue
        events.append(event)
    return events, failures


def discover_event_sources(directory: Path) -> list[Path]:
    """Return event-log files in capture order (names are timestamp encoded)."""

    if not directory.is_dir():
        raise FileNotFoundError(f"Event log directory does not exist: {directory}")
    return sorted(path for path in directory.iterdir() if path.is_file() and not path.name.startswith("."))


def _read_source(path: Path) -> tuple[list[Event], list[ParseFailure]]:
    return parse_event_text(path.read_text(encoding="utf-8", errors="replace"), source=path.name)


def _first_of_type(events: Iterable[Event], event_type: str) -> Event | None:
    return next((event for event in events if event.type == event_type), None)


def resolve_window(parsed: Sequence[list[Event]], sources: Sequence[str]) -> RecordingWindow:
    if not parsed:
        raise RecordingWindowError("No event-log sources were supplied; cannot establish a recording window.")

    started = _first_of_type(parsed[0], CAPTURE_STARTED)
    if started is None:
        raise RecordingWindowError(f"No {CAPTURE_STARTED} event found in first event log {sources[0]}")
    ended = _first_of_type(parsed[-1], CAPTURE_ENDED)
    if ended is None:
        raise RecordingWindowError(f"No {CAPTURE_ENDED} event found in last event log {sources[-1]}")
    if ended.timestamp < started.timestamp:
        raise RecordingWindowError(
            f"Recording ends before it starts: {started.describe()} / {ended.describe()}"
        )
    return RecordingWindow(start=started.timestamp, end=ended.timestamp)


def load_event_log(sources: Sequence[Path], max_workers: int = 4) -> EventLog:
    """Parse event-log sources (in capture order) into one flat event list plus the window.

    Events are concatenated in source order and keep their arrival order;
    use :func:`chronological` before driving the timeline.
    """

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        results = list(pool.map(_read_source, sources))

    parsed = [events for events, _ in results]
    window = resolve_window(parsed, [path.name for path in sources])

    all_events: list[Event] = []
    failures: list[ParseFailure] = []
    for events, source_failures in results:
        all_events.extend(events)
        failures.extend(source_failures)

    _flag_restarts(all_events)
    logger.info(
        "Parsed %d events from %d sources (%d dropped); window %s -> %s",
        len(all_events),
        len(sources),
        len(failures),
        window.start.isoformat(),
        window.end.isoformat(),
    )
    return EventLog(events=all_events, window=window, failures=failures)


def _flag_restarts(events: Sequence[Event]) -> None:
    for event in events[:-1]:
        if event.type == CAPTURE_ENDED:
            logger.warning(
                "Capture restart detected at %s; timeline keeps a single recording window",
                event.describe(),
            )


def chronological(events: Sequence[Event], window: RecordingWindow) -> list[Event]:
    """Order events by timestamp, keeping clock-skewed events where they arrived.

    An event stamped before the window start sorts with the key of the
    closest earlier well-stamped event, so it stays between the events it
    was logged with.
    """

    keyed: list[tuple[Any, int, Event]] = []
    anchor = window.start
    for position, event in enumerate(events):
        if event.timestamp < window.start:
            key = anchor
        else:
            key = event.timestamp
            anchor = event.timestamp
        keyed.append((key, position, event))
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [event for _, _, event in keyed]
