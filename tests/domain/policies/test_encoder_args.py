from pathlib import Path

from clipwave.domain.entities.trim import TrimPlan
from clipwave.domain.enums import TrimMode
from clipwave.domain.policies.encoder_args import build_encoder_args


def _plan(mode, out="out.mp4", audio=-1, subs=-1, **kw) -> TrimPlan:
    return TrimPlan(
        input_path=Path("in.mp4"),
        output_path=Path(out),
        in_seconds=3.17,
        out_seconds=13.17,
        mode=mode,
        audio_order=audio,
        subtitle_index=subs,
        **kw,
    )


def test_lossless_mp4_ordering():
    args = build_encoder_args(_plan(TrimMode.lossless, audio=0, subs=4), 0)
    assert args == [
        "-v", "error", "-progress", "pipe:1",
        "-ss", "3.170000", "-i", "in.mp4", "-t", "10.000000",
        "-map", "0:v:0", "-map", "0:a:0",
        "-c", "copy", "-avoid_negative_ts", "make_zero", "-fflags", "+genpts",
        "-y", "out.mp4",
    ]


def test_lossless_other_container_uses_copyts():
    args = build_encoder_args(_plan(TrimMode.lossless, out="out.mkv"), 0)
    assert "-an" in args
    tail = args[args.index("copy") + 1:]
    assert tail == ["-copyts", "-avoid_negative_ts", "make_zero", "-y", "out.mkv"]


def test_lossless_seek_precedes_input():
    args = build_encoder_args(_plan(TrimMode.lossless), 0)
    assert args.index("-ss") < args.index("-i") < args.index("-t")


def test_exact_with_rotation_audio_and_subtitles():
    args = build_encoder_args(_plan(TrimMode.exact, audio=1, subs=3), 90)
    assert args == [
        "-v", "error", "-progress", "pipe:1",
        "-accurate_seek", "-ss", "3.170000", "-noautorotate",
        "-i", "in.mp4", "-t", "10.000000",
        "-map", "0:v:0", "-map", "0:a:1", "-map", "0:3",
        "-vf", "transpose=2", "-metadata:s:v:0", "rotate=0",
        "-c:v", "libx264", "-crf", "18", "-preset", "veryfast", "-pix_fmt", "yuv420p",
        "-c:a", "copy",
        "-c:s", "copy", "-shortest",
        "-y", "out.mp4",
    ]


def test_exact_audio_order_is_type_relative():
    # second audio stream, even if its global index is 3
    args = build_encoder_args(_plan(TrimMode.exact, audio=1), 0)
    assert "0:a:1" in args
    assert "0:a:3" not in args
    assert "-noautorotate" not in args
    assert "-vf" not in args


def test_lossless_never_maps_subtitles():
    args = build_encoder_args(_plan(TrimMode.lossless, subs=2), 0)
    assert "0:2" not in args
    assert "-c:s" not in args
