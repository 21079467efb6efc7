from __future__ import annotations

from pathlib import Path
from typing import Iterable

from recap.media.chunks import ChunkRef


def quote_path(path: Path) -> str:
    return "'" + str(path).replace("'", "'\\''") + "'"


def to_concat_list(paths: Iterable[Path | ChunkRef]) -> str:
    """Render an ffmpeg concat-demuxer file list."""

    lines = []
    for item in paths:
        path = item.path if isinstance(item, ChunkRef) else Path(item)
        lines.append(f"file {quote_path(path)}")
    return "\n".join(lines) + "\n" if lines else ""


def write_concat_list(paths: Iterable[Path | ChunkRef], output_path: Path) -> Path:
    content = to_concat_list(paths)
    if not content:
        raise ValueError(f"Refusing to write an empty concat list: {output_path}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")
    return output_path
