from __future__ import annotations

import logging
import shutil
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from recap.config import Settings, get_settings
from recap.events.models import RecordingWindow
from recap.events.parser import ParseFailure, chronological, discover_event_sources, load_event_log
from recap.export import json as json_export
from recap.export.manifest import write_concat_list
from recap.export.srt import to_srt
from recap.media.ffmpeg import burn_subtitles, concat_chunks, normalize_video, overlay_camera
from recap.speakers import SpeakerDirectory, SpeakerLookup
from recap.subtitles.cues import Cue, synthesize_cues
from recap.timeline.annotate import annotate
from recap.timeline.segments import OverlaySegment, Segment, reconstruct_segments

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Reconstruction:
    window: RecordingWindow
    segments: tuple[Segment, ...]
    cues: tuple[Cue, ...]
    failures: tuple[ParseFailure, ...]
    event_count: int


@dataclass(slots=True)
class StitchOutcome:
    recording_path: Path
    part_paths: list[Path]


class RecapService:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def reconstruct(
        self,
        capture_dir: Path,
        *,
        speakers: SpeakerDirectory | None = None,
        lookup: SpeakerLookup | None = None,
        meeting_id: str | None = None,
        session_id: str | None = None,
    ) -> Reconstruction:
        """Rebuild the segment list and subtitle cues of one capture.

        Either pass a ready ``speakers`` directory or a ``lookup`` plus
        ``meeting_id``; the lookup runs while the event logs are parsed.
        """

        events_dir, audio_dir, video_dir = self.settings.capture_paths(capture_dir)
        sources = discover_event_sources(events_dir)
        if lookup is not None and meeting_id is None:
            raise ValueError("A meeting id is required to look up speaker names.")

        with ThreadPoolExecutor(max_workers=1) as pool:
            speakers_future = (
                pool.submit(lookup.lookup, meeting_id, session_id) if lookup is not None else None
            )
            event_log = load_event_log(sources, max_workers=self.settings.parse_workers)
            if speakers_future is not None:
                speakers = speakers_future.result()

        ordered = chronological(event_log.events, event_log.window)
        timeline = annotate(ordered, event_log.window)
        segments = reconstruct_segments(
            timeline,
            audio_dir,
            video_dir if video_dir.is_dir() else None,
        )
        cues = synthesize_cues(timeline, speakers or SpeakerDirectory())

        return Reconstruction(
            window=event_log.window,
            segments=tuple(segments),
            cues=tuple(cues),
            failures=tuple(event_log.failures),
            event_count=len(ordered),
        )

    def _output_dir(self, output_dir: Path | None) -> Path:
        # Concat lists name files relative to their own directory unless absolute.
        target = Path(output_dir or self.settings.output_dir).resolve()
        target.mkdir(parents=True, exist_ok=True)
        return target

    def write_artifacts(self, reconstruction: Reconstruction, output_dir: Path | None = None) -> dict[str, Path]:
        target = self._output_dir(output_dir)

        subtitles_path = target / self.settings.subtitles_filename
        subtitles_path.write_text(
            to_srt(reconstruction.cues, overlay_position=self.settings.overlay_position),
            encoding="utf-8",
        )

        segments_path = target / self.settings.segments_filename
        payload = json_export.build_payload(reconstruction.window, reconstruction.segments, reconstruction.cues)
        segments_path.write_text(json_export.dumps_payload(payload), encoding="utf-8")

        paths = {"srt": subtitles_path, "segments": segments_path}
        for index, segment in enumerate(reconstruction.segments):
            paths.update(self._write_segment_lists(index, segment, target))
        return paths

    def _write_segment_lists(self, index: int, segment: Segment, target: Path) -> dict[str, Path]:
        if isinstance(segment, OverlaySegment):
            return {
                f"{index}-audio": write_concat_list(segment.audio, target / f"{index}-audio.txt"),
                f"{index}-video": write_concat_list(segment.video, target / f"{index}-video.txt"),
            }
        return {str(index): write_concat_list(segment.audio, target / f"{index}.txt")}

    def stitch(
        self,
        reconstruction: Reconstruction,
        output_dir: Path | None = None,
        *,
        burn_in: bool = False,
    ) -> StitchOutcome:
        """Hand every segment to ffmpeg and join the parts into one recording."""

        if not reconstruction.segments:
            raise ValueError("Nothing to stitch: no segment has matching media chunks.")

        target = self._output_dir(output_dir)
        artifacts = self.write_artifacts(reconstruction, target)
        ffmpeg_path = self.settings.ffmpeg_path
        run_dir = target / f"parts_{uuid.uuid4().hex[:8]}"
        run_dir.mkdir(parents=True, exist_ok=True)

        part_paths: list[Path] = []
        recording_path = target / self.settings.output_filename
        try:
            for index, segment in enumerate(reconstruction.segments):
                if isinstance(segment, OverlaySegment):
                    audio = concat_chunks(artifacts[f"{index}-audio"], run_dir / f"audio-{index}.mp4", ffmpeg_path)
                    video = concat_chunks(artifacts[f"{index}-video"], run_dir / f"video-{index}.mp4", ffmpeg_path)
                    combined = overlay_camera(
                        video,
                        audio,
                        run_dir / f"{index}-not-scaled.mp4",
                        camera_scale=self.settings.camera_scale,
                        camera_offset=self.settings.camera_offset,
                        ffmpeg_path=ffmpeg_path,
                    )
                    part = normalize_video(
                        combined,
                        run_dir / f"{index}.mp4",
                        scale=self.settings.output_scale,
                        fps=self.settings.output_fps,
                        ffmpeg_path=ffmpeg_path,
                    )
                else:
                    part = concat_chunks(artifacts[str(index)], run_dir / f"{index}.mp4", ffmpeg_path)
                part_paths.append(part)
                logger.info("Stitched %s segment %d -> %s", segment.kind, index, part)

            manifest = write_concat_list(part_paths, target / self.settings.manifest_filename)
            if burn_in:
                joined = concat_chunks(manifest, run_dir / "joined.mp4", ffmpeg_path)
                burn_subtitles(joined, artifacts["srt"], recording_path, ffmpeg_path)
            else:
                concat_chunks(manifest, recording_path, ffmpeg_path)
        except Exception:
            shutil.rmtree(run_dir, ignore_errors=True)
            raise

        return StitchOutcome(recording_path=recording_path, part_paths=part_paths)
