# clipwave/domain/policies/encoder_args.py
from __future__ import annotations

from typing import List, Optional

from clipwave.common.settings import TrimConfig
from clipwave.common.timecode import format_seconds_arg
from clipwave.domain.entities.trim import TrimPlan
from clipwave.domain.enums.trim_mode import TrimMode
from clipwave.domain.policies.rotation import normalize_rotation, rotation_filter


def build_encoder_args(plan: TrimPlan, rotation_degrees: int, cfg: Optional[TrimConfig] = None) -> List[str]:
    """
    Build the ffmpeg argument list for one cut. Pure: no I/O, no process.

    Flag order matters here. In both modes `-ss` precedes `-i` so the demuxer
    seeks first; lossless then counts `-t` from the keyframe it landed on, exact
    pairs the seek with `-accurate_seek` to decode-and-discard up to IN.
    """
    cfg = cfg or TrimConfig()
    rotation = normalize_rotation(rotation_degrees)
    vfilter = rotation_filter(rotation)
    lossless = plan.mode == TrimMode.lossless

    args: List[str] = ["-v", "error", "-progress", "pipe:1"]

    # ---- seek + input ---------------------------------------------------------
    in_arg = format_seconds_arg(plan.in_seconds)
    dur_arg = format_seconds_arg(plan.duration)
    if lossless:
        args += ["-ss", in_arg, "-i", str(plan.input_path), "-t", dur_arg]
    else:
        args += ["-accurate_seek", "-ss", in_arg]
        if vfilter:
            # we rotate ourselves below; keep ffmpeg from doing it twice
            args.append("-noautorotate")
        args += ["-i", str(plan.input_path), "-t", dur_arg]

    # ---- stream mapping -------------------------------------------------------
    args += ["-map", "0:v:0"]
    if plan.audio_order < 0:
        args.append("-an")
    else:
        # type-relative order, not ffprobe's global index
        args += ["-map", f"0:a:{plan.audio_order}"]

    # Subtitle packets can straddle the cut and stretch a stream-copied output.
    if plan.subtitle_index >= 0 and not lossless:
        args += ["-map", f"0:{plan.subtitle_index}"]

    # ---- codecs ---------------------------------------------------------------
    if lossless:
        args += ["-c", "copy"]
        if plan.output_ext in {e.lower() for e in cfg.mp4_family_exts}:
            args += ["-avoid_negative_ts", "make_zero", "-fflags", "+genpts"]
        else:
            args += ["-copyts", "-avoid_negative_ts", "make_zero"]
        if rotation:
            args += ["-metadata:s:v:0", f"rotate={rotation}"]
    else:
        if vfilter:
            args += ["-vf", vfilter, "-metadata:s:v:0", "rotate=0"]
        args += [
            "-c:v", cfg.video_codec,
            "-crf", str(cfg.crf),
            "-preset", cfg.preset,
            "-pix_fmt", cfg.pix_fmt,
        ]
        if plan.audio_order >= 0:
            args += ["-c:a", "copy"]
        if plan.subtitle_index >= 0:
            # a cue ending after OUT would otherwise extend the output
            args += ["-c:s", "copy", "-shortest"]

    args += ["-y", str(plan.output_path)]
    return args
