from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_STDERR_TAIL_LINES = 20
# Characters with a meaning inside a filter option value, then inside a filtergraph.
_OPTION_SPECIALS = "\\':"
_GRAPH_SPECIALS = "\\'[],;"


class FfmpegError(RuntimeError):
    """Raised when a transcoding step fails."""

    def __init__(self, step: str, detail: str) -> None:
        super().__init__(f"ffmpeg {step} failed: {detail}")
        self.step = step
        self.detail = detail


def resolve_ffmpeg_command(ffmpeg_path: Path | None = None) -> str:
    """Explicit path first, then whatever ``ffmpeg`` is on PATH."""

    if ffmpeg_path is not None:
        return str(Path(ffmpeg_path).expanduser())
    return shutil.which("ffmpeg") or "ffmpeg"


def get_ffmpeg_version(ffmpeg_path: Path | None = None) -> str | None:
    command = resolve_ffmpeg_command(ffmpeg_path)
    try:
        completed = subprocess.run([command, "-version"], capture_output=True, text=True, check=False)
    except OSError:
        return None
    if completed.returncode != 0 or not completed.stdout:
        return None
    return f"{completed.stdout.splitlines()[0].strip()} (command: {command})"


def escape_filter_value(value: str | Path) -> str:
    """Escape a filter option value (e.g. a file name) for use inside ``-vf``."""

    text = Path(value).as_posix() if isinstance(value, Path) else value
    for specials in (_OPTION_SPECIALS, _GRAPH_SPECIALS):
        text = "".join("\\" + char if char in specials else char for char in text)
    return text


def _stderr_tail(stderr: str | None) -> str:
    lines = [line for line in (stderr or "").splitlines() if line.strip()]
    return "\n".join(lines[-_STDERR_TAIL_LINES:])


def _run_ffmpeg(step: str, args: list[str], ffmpeg_path: Path | None = None) -> None:
    command = resolve_ffmpeg_command(ffmpeg_path)
    logger.debug("ffmpeg %s: %s %s", step, command, " ".join(args))
    try:
        subprocess.run(
            [command, "-hide_banner", "-loglevel", "error", *args],
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise FfmpegError(step, f"executable not found ({command}); install ffmpeg or set RECAP_FFMPEG_PATH") from exc
    except subprocess.CalledProcessError as exc:
        tail = _stderr_tail(exc.stderr)
        logger.debug("ffmpeg %s exited with %s:\n%s", step, exc.returncode, tail)
        last_line = tail.splitlines()[-1] if tail else f"exit status {exc.returncode}"
        raise FfmpegError(step, last_line) from exc


def concat_chunks(list_file: Path, output_path: Path, ffmpeg_path: Path | None = None) -> Path:
    """Stream-copy the files named in a concat list into one container."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    _run_ffmpeg(
        f"concat {list_file.name}",
        ["-y", "-f", "concat", "-safe", "0", "-i", str(list_file), "-c", "copy", str(output_path)],
        ffmpeg_path=ffmpeg_path,
    )
    return output_path


def overlay_camera(
    content_path: Path,
    camera_path: Path,
    output_path: Path,
    *,
    camera_scale: str = "480:270",
    camera_offset: str = "1440:0",
    ffmpeg_path: Path | None = None,
) -> Path:
    """Put a scaled camera feed in the corner of the shared-screen video."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    graph = f"[1] scale={camera_scale} [over]; [0][over] overlay={camera_offset}"
    _run_ffmpeg(
        f"overlay {output_path.name}",
        ["-y", "-i", str(content_path), "-i", str(camera_path), "-filter_complex", graph, str(output_path)],
        ffmpeg_path=ffmpeg_path,
    )
    return output_path


def normalize_video(
    input_path: Path,
    output_path: Path,
    *,
    scale: str = "1280:720",
    fps: str = "14.98",
    ffmpeg_path: Path | None = None,
) -> Path:
    """Match resolution and frame rate of the camera-only parts."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    _run_ffmpeg(
        f"normalize {output_path.name}",
        ["-y", "-i", str(input_path), "-vf", f"scale={scale},fps=fps={fps}", str(output_path)],
        ffmpeg_path=ffmpeg_path,
    )
    return output_path


def burn_subtitles(
    input_path: Path,
    subtitles_path: Path,
    output_path: Path,
    ffmpeg_path: Path | None = None,
) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _run_ffmpeg(
        f"subtitles {subtitles_path.name}",
        ["-y", "-i", str(input_path), "-vf", f"subtitles={escape_filter_value(subtitles_path)}", str(output_path)],
        ffmpeg_path=ffmpeg_path,
    )
    return output_path
