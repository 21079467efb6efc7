from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Union

from recap.media.chunks import ChunkIndex, ChunkRef
from recap.timeline.annotate import Timeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlainSegment:
    start: datetime
    end: datetime
    audio: tuple[ChunkRef, ...]

    kind = "plain"


@dataclass(frozen=True, slots=True)
class OverlaySegment:
    start: datetime
    end: datetime
    audio: tuple[ChunkRef, ...]
    video: tuple[ChunkRef, ...]

    kind = "overlay"


Segment = Union[PlainSegment, OverlaySegment]


def _build_indexes(audio_dir: Path, video_dir: Path | None) -> tuple[ChunkIndex, ChunkIndex | None]:
    if video_dir is None:
        return ChunkIndex(audio_dir), None
    with ThreadPoolExecutor(max_workers=2) as pool:
        audio_future = pool.submit(ChunkIndex, audio_dir)
        video_future = pool.submit(ChunkIndex, video_dir)
        return audio_future.result(), video_future.result()


def reconstruct_segments(
    timeline: Timeline,
    audio_dir: Path,
    video_dir: Path | None = None,
) -> list[Segment]:
    """Match every timeline interval against the chunk directories.

    Intervals without media are left out of the result.
    """

    needs_video = any(interval.kind == "overlay" for interval in timeline.intervals)
    if needs_video and video_dir is None:
        raise ValueError("Timeline contains screen-share intervals but no video directory was given.")
    audio_index, video_index = _build_indexes(audio_dir, video_dir if needs_video else None)

    segments: list[Segment] = []
    for interval in timeline.intervals:
        audio = tuple(audio_index.between(interval.start, interval.end))
        if not audio:
            logger.debug(
                "No audio chunks in %s for %s interval %s -> %s; segment dropped",
                audio_index.directory,
                interval.kind,
                interval.start.isoformat(),
                interval.end.isoformat(),
            )
            continue

        if interval.kind == "plain":
            segments.append(PlainSegment(start=interval.start, end=interval.end, audio=audio))
            continue

        assert video_index is not None
        video = tuple(video_index.between(interval.start, interval.end))
        if not video:
            logger.debug(
                "No video chunks in %s for overlay interval %s -> %s; segment dropped",
                video_index.directory,
                interval.start.isoformat(),
                interval.end.isoformat(),
            )
            continue
        segments.append(OverlaySegment(start=interval.start, end=interval.end, audio=audio, video=video))

    logger.info("Reconstructed %d of %d timeline segments", len(segments), len(timeline.intervals))
    return segments
