from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from conftest import at
from recap.media.chunks import ChunkIndex, ChunkRef, decode_chunk_timestamp, match_chunks


def test_decode_chunk_timestamp() -> None:
    assert decode_chunk_timestamp(Path("2023-03-01-10-00-05-123.mp4")) == datetime(
        2023, 3, 1, 10, 0, 5, 123000, tzinfo=timezone.utc
    )
    assert decode_chunk_timestamp(Path("/x/2023-03-01-10-00-05-5.mp4")) == datetime(
        2023, 3, 1, 10, 0, 5, 500000, tzinfo=timezone.utc
    )
    assert decode_chunk_timestamp(Path("notes.txt")) is None
    assert decode_chunk_timestamp(Path("2023-13-01-10-00-05-000.mp4")) is None


def test_match_excludes_boundaries_and_sorts(tmp_path: Path, make_chunks) -> None:
    make_chunks(tmp_path, [20, 5, 10, 15, 0])
    (tmp_path / "README").write_text("not a chunk", encoding="utf-8")

    matched = match_chunks(tmp_path, at(0), at(20))

    assert [chunk.timestamp for chunk in matched] == [at(5), at(10), at(15)]


def test_match_is_idempotent(tmp_path: Path, make_chunks) -> None:
    make_chunks(tmp_path, [1, 2, 3])

    first = match_chunks(tmp_path, at(0), at(4))
    second = match_chunks(tmp_path, at(0), at(4))

    assert first == second
    assert [chunk.path for chunk in first] == [chunk.path for chunk in second]


def test_empty_match_is_not_an_error(tmp_path: Path, make_chunks) -> None:
    make_chunks(tmp_path, [1, 2])

    assert match_chunks(tmp_path, at(5), at(9)) == []


def test_chunk_index_records_skipped_files(tmp_path: Path, make_chunks) -> None:
    make_chunks(tmp_path, [1])
    (tmp_path / "garbage.mp4").write_bytes(b"")

    index = ChunkIndex(tmp_path)

    assert len(index) == 1
    assert [path.name for path in index.skipped] == ["garbage.mp4"]


def test_missing_chunk_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="missing"):
        ChunkIndex(tmp_path / "missing")


def test_chunk_ref_equality_uses_path_only() -> None:
    path = Path("/captures/audio/2023-03-01-10-00-05-000.mp4")

    assert ChunkRef(path=path, timestamp=at(5)) == ChunkRef(path=path, timestamp=at(6))
    assert len({ChunkRef(path=path, timestamp=at(5)), ChunkRef(path=path, timestamp=at(6))}) == 1
