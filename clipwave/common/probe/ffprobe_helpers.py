# clipwave/common/probe/ffprobe_helpers.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json

from clipwave.common.errors import ParseError
from clipwave.common.logging import get_logger
from clipwave.common.timecode import format_seconds_arg
from clipwave.domain.entities.probe import AudioStream, SubtitleStream, assign_orders
from clipwave.domain.policies.rotation import normalize_rotation

logger = get_logger(__name__)

AUDIO_ENTRIES = "stream=index,codec_type,codec_name,channels:stream_tags=language,title"
SUBTITLE_ENTRIES = "stream=index,codec_type,codec_name:stream_tags=language,title"
MEDIA_ENTRIES = "format=duration:stream=index,codec_type,codec_name,channels:stream_tags=language,title"


# ---- argument builders ------------------------------------------------------
# Each query asks only for the fields it needs; full -show_streams/-show_format
# is much slower on large files.

def duration_args(input_path: str | Path) -> List[str]:
    """Plain-text duration only: a single number on stdout."""
    return [
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=nw=1:nk=1",
        str(input_path),
    ]


def media_args(input_path: str | Path) -> List[str]:
    return [
        "-v", "error",
        "-print_format", "json",
        "-show_entries", MEDIA_ENTRIES,
        str(input_path),
    ]


def _track_args(input_path: str | Path, selector: str, entries: str, probesize: str, analyzeduration: str) -> List[str]:
    return [
        "-v", "error",
        "-print_format", "json",
        "-select_streams", selector,
        "-probesize", probesize,
        "-analyzeduration", analyzeduration,
        "-show_entries", entries,
        str(input_path),
    ]


def audio_tracks_args(input_path: str | Path, probesize: str = "10M", analyzeduration: str = "10M") -> List[str]:
    return _track_args(input_path, "a", AUDIO_ENTRIES, probesize, analyzeduration)


def subtitle_tracks_args(input_path: str | Path, probesize: str = "10M", analyzeduration: str = "10M") -> List[str]:
    return _track_args(input_path, "s", SUBTITLE_ENTRIES, probesize, analyzeduration)


def read_interval(start: float, end: float) -> str:
    """ffprobe -read_intervals syntax for an absolute [start, end] window."""
    return f"{format_seconds_arg(start)}%{format_seconds_arg(end)}"


def keyframe_args(input_path: str | Path, read_intervals: str) -> List[str]:
    """Video-only, keyframes-only frame timestamps restricted to a time window."""
    return [
        "-v", "quiet",
        "-select_streams", "v:0",
        "-skip_frame", "nokey",
        "-read_intervals", read_intervals,
        "-print_format", "json",
        "-show_frames",
        "-show_entries", "frame=best_effort_timestamp_time",
        str(input_path),
    ]


def rotation_args(input_path: str | Path) -> List[str]:
    return [
        "-v", "quiet",
        "-print_format", "json",
        "-select_streams", "v:0",
        "-show_streams",
        str(input_path),
    ]


# ---- parsers ------------------------------------------------------------------

def stderr_head(stderr: bytes, limit: int = 200) -> str:
    return stderr[:limit].decode("utf-8", "replace")


def parse_duration_text(stdout: bytes) -> Optional[float]:
    text = stdout.decode("utf-8", "replace").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _load_json(stdout: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(stdout.decode("utf-8", "replace") or "{}")
    except json.JSONDecodeError as e:
        logger.debug("invalid ffprobe JSON: %r", stdout[:200])
        raise ParseError(f"Invalid ffprobe JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("Invalid ffprobe JSON: top level is not an object")
    return data


def _maybe_int(x) -> Optional[int]:
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


def _classify(data: Dict[str, Any]) -> Tuple[List[AudioStream], List[SubtitleStream]]:
    audio: List[dict] = []
    subs: List[dict] = []

    for stream in data.get("streams") or []:
        codec_type = stream.get("codec_type") or ""
        if codec_type not in ("audio", "subtitle"):
            continue
        index = _maybe_int(stream.get("index"))
        if index is None:
            raise ParseError("ffprobe stream missing index")

        tags = stream.get("tags") if isinstance(stream.get("tags"), dict) else {}
        row = {
            "index": index,
            "codec_name": str(stream.get("codec_name") or ""),
            "language": str(tags.get("language") or "und"),
            "title": str(tags.get("title") or ""),
        }
        if codec_type == "audio":
            row["channels"] = _maybe_int(stream.get("channels"))
            audio.append(row)
        else:
            subs.append(row)

    # Dense per-type order, for ffmpeg's `0:a:{order}` / `0:s:{order}`
    return (
        [AudioStream(**row) for row in assign_orders(audio)],
        [SubtitleStream(**row) for row in assign_orders(subs)],
    )


def parse_streams_json(stdout: bytes) -> Tuple[List[AudioStream], List[SubtitleStream]]:
    """
    Extract audio and subtitle streams from ffprobe JSON. Safe to call in unit
    tests with fixture JSON.
    """
    return _classify(_load_json(stdout))


def parse_media_json(stdout: bytes) -> Tuple[Optional[float], List[AudioStream], List[SubtitleStream]]:
    data = _load_json(stdout)
    fmt = data.get("format") or {}
    try:
        duration = float(fmt["duration"]) if fmt.get("duration") is not None else None
    except (TypeError, ValueError):
        duration = None
    audio, subs = _classify(data)
    return duration, audio, subs


def parse_keyframe_times(stdout: bytes) -> List[float]:
    data = _load_json(stdout)
    times: List[float] = []
    for frame in data.get("frames") or []:
        ts = frame.get("best_effort_timestamp_time")
        if ts is None:
            continue
        try:
            times.append(float(ts))
        except (TypeError, ValueError):
            continue
    return times


def parse_rotation_json(stdout: bytes) -> Optional[int]:
    """
    Raw rotation of the first video stream: the `rotate` tag (either casing),
    else the first non-zero side-data `rotation`. None when nothing is reported.
    Normalization is left to the caller.
    """
    data = _load_json(stdout)
    streams = data.get("streams") or []
    if not streams:
        return None
    video = streams[0]

    tags = video.get("tags") if isinstance(video.get("tags"), dict) else {}
    raw_tag = tags.get("rotate", tags.get("Rotate"))
    if raw_tag is not None:
        try:
            return int(str(raw_tag).strip())
        except ValueError:
            pass

    for item in video.get("side_data_list") or []:
        raw = item.get("rotation") if isinstance(item, dict) else None
        if raw is None:
            continue
        try:
            deg = int(round(float(raw)))
        except (TypeError, ValueError):
            continue
        if normalize_rotation(deg) != 0:
            return deg
    return None
