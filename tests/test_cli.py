from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from recap.cli import app
from recap.config import get_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("RECAP_WORK_DIR", str(tmp_path / "work"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_reconstruct_command_writes_artifacts(tmp_path: Path, capture_dir: Path) -> None:
    output = tmp_path / "out"
    result = runner.invoke(
        app,
        [
            "reconstruct",
            str(capture_dir),
            "--speakers",
            str(capture_dir.parent / "speakers.json"),
            "--meeting-id",
            "meeting-1",
            "--output",
            str(output),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Recording segments" in result.output
    assert "bob" in (output / "sub.srt").read_text(encoding="utf-8")
    assert (output / "1-video.txt").exists()


def test_reconstruct_requires_meeting_id_with_speakers(capture_dir: Path) -> None:
    result = runner.invoke(app, ["reconstruct", str(capture_dir), "--speakers", str(capture_dir.parent / "speakers.json")])

    assert result.exit_code == 2


def test_reconstruct_reports_event_log_errors(tmp_path: Path, capture_dir: Path) -> None:
    last = sorted((capture_dir / "meeting-events").iterdir())[-1]
    last.write_text(last.read_text(encoding="utf-8").replace("CaptureEnded", "Other"), encoding="utf-8")

    result = runner.invoke(app, ["reconstruct", str(capture_dir), "--output", str(tmp_path / "out")])

    assert result.exit_code == 2
    assert "event log error" in result.output
    assert not (tmp_path / "out" / "sub.srt").exists()


def test_doctor_summarizes_checks(monkeypatch, capture_dir: Path) -> None:
    monkeypatch.setattr("recap.doctor.get_ffmpeg_version", lambda ffmpeg_path=None: "ffmpeg version 6.1")

    result = runner.invoke(app, ["doctor", str(capture_dir)])

    assert result.exit_code == 0, result.output
    assert "4 ok, 0 warn, 0 fail" in result.output


def test_doctor_exits_nonzero_on_failed_check(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("recap.doctor.get_ffmpeg_version", lambda ffmpeg_path=None: None)

    result = runner.invoke(app, ["doctor", str(tmp_path / "empty")])

    assert result.exit_code == 1
    assert "0 ok, 2 warn, 2 fail" in result.output
