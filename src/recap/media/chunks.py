from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

# YYYY-MM-DD-HH-MM-SS-<fraction of second>
_CHUNK_STEM = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})-(\d{1,2})-(\d{1,2})-(\d{1,2})-(\d+)$")


@dataclass(frozen=True, slots=True)
class ChunkRef:
    path: Path
    timestamp: datetime = field(compare=False)

    @property
    def name(self) -> str:
        return self.path.name


def decode_chunk_timestamp(path: Path) -> datetime | None:
    """Decode the UTC instant encoded in a chunk file name, or ``None``."""

    match = _CHUNK_STEM.match(Path(path).stem)
    if match is None:
        return None
    year, month, day, hour, minute, second, fraction = match.groups()
    microsecond = int(fraction[:6].ljust(6, "0"))
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second),
            microsecond,
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


class ChunkIndex:
    """Timestamp-ordered view of one chunk directory, listed once."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Chunk directory does not exist: {self.directory}")
        self.chunks, self.skipped = self._scan()

    def _scan(self) -> tuple[list[ChunkRef], list[Path]]:
        chunks: list[ChunkRef] = []
        skipped: list[Path] = []
        for path in self.directory.iterdir():
            if not path.is_file():
                continue
            timestamp = decode_chunk_timestamp(path)
            if timestamp is None:
                logger.debug("Skipping %s: name does not encode a chunk timestamp", path)
                skipped.append(path)
                continue
            chunks.append(ChunkRef(path=path.resolve(), timestamp=timestamp))
        chunks.sort(key=lambda chunk: (chunk.timestamp, chunk.path.name))
        return chunks, skipped

    def __len__(self) -> int:
        return len(self.chunks)

    def between(self, start: datetime, end: datetime) -> list[ChunkRef]:
        """Chunks stamped strictly inside ``(start, end)``, oldest first.

        A chunk stamped exactly on a boundary belongs to neither side.
        """

        return [chunk for chunk in self.chunks if start < chunk.timestamp < end]


def match_chunks(directory: Path, start: datetime, end: datetime) -> list[ChunkRef]:
    return ChunkIndex(directory).between(start, end)
