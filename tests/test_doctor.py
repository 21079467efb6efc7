from __future__ import annotations

from pathlib import Path

from recap.config import Settings
from recap.doctor import run_doctor


def _statuses(checks) -> dict[str, str]:
    return {check.name: check.status for check in checks}


def test_doctor_reports_capture_layout(monkeypatch, tmp_path: Path, capture_dir: Path) -> None:
    monkeypatch.setattr("recap.doctor.get_ffmpeg_version", lambda ffmpeg_path=None: "ffmpeg version 6.1")
    (capture_dir / "video" / "thumbs.db").write_bytes(b"")

    checks = run_doctor(Settings(work_dir=tmp_path), capture_dir)

    assert _statuses(checks) == {
        "ffmpeg": "ok",
        "Event logs": "ok",
        "Audio chunks": "ok",
        "Video chunks": "warn",
    }


def test_doctor_flags_missing_inputs(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("recap.doctor.get_ffmpeg_version", lambda ffmpeg_path=None: None)

    checks = run_doctor(Settings(work_dir=tmp_path), tmp_path / "empty")

    assert _statuses(checks) == {
        "ffmpeg": "warn",
        "Event logs": "fail",
        "Audio chunks": "fail",
        "Video chunks": "warn",
    }


def test_doctor_rejects_missing_configured_ffmpeg(tmp_path: Path) -> None:
    checks = run_doctor(Settings(work_dir=tmp_path, ffmpeg_path=tmp_path / "ffmpeg"))

    assert len(checks) == 1
    assert checks[0].status == "fail"
