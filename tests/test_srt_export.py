from recap.export.srt import format_timestamp, to_srt
from recap.subtitles.cues import Cue, CueStyle


def test_format_timestamp() -> None:
    assert format_timestamp(0) == "00:00:00,000"
    assert format_timestamp(1234) == "00:00:01,234"
    assert format_timestamp(3_723_045) == "01:02:03,045"
    assert format_timestamp(-5) == "00:00:00,000"


def test_to_srt() -> None:
    cues = [
        Cue(start=0, end=1000, text="alice talking", style=CueStyle.PLAIN),
        Cue(start=1200, end=2500, text="", style=CueStyle.PLAIN),
        Cue(start=2500, end=4000, text="bob", style=CueStyle.OVERLAY),
    ]
    srt = to_srt(cues)

    assert srt == (
        "1\n"
        "00:00:00,000 --> 00:00:01,000\n"
        "alice talking\n"
        "\n"
        "2\n"
        "00:00:02,500 --> 00:00:04,000 X1:600 X2:625 Y1:100 Y2:100\n"
        "bob\n"
    )


def test_to_srt_without_overlay_position() -> None:
    cues = [Cue(start=0, end=1000, text="bob", style=CueStyle.OVERLAY)]

    assert "00:00:00,000 --> 00:00:01,000\n" in to_srt(cues, overlay_position="")


def test_to_srt_empty() -> None:
    assert to_srt([]) == ""
