# clipwave/domain/entities/probe.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class AudioStream:
    """
    One audio track. `order` is the 0-based position among audio streams
    (what ffmpeg's `0:a:{order}` addresses); `index` is ffprobe's global stream
    index, or -1 when the backend cannot report it.
    """
    order: int
    index: int
    codec_name: str = ""
    channels: Optional[int] = None
    language: str = "und"
    title: str = ""


@dataclass(frozen=True)
class SubtitleStream:
    order: int
    index: int
    codec_name: str = ""
    language: str = "und"
    title: str = ""


@dataclass(frozen=True)
class MediaFingerprint:
    """
    Cache key for a probed file: (path, size, mtime). When the file cannot be
    stat'ed the key degrades to the path alone.
    """
    path: str
    size_bytes: Optional[int] = None
    mtime: Optional[float] = None

    @classmethod
    def from_path(cls, path: Path | str) -> "MediaFingerprint":
        p = str(path)
        try:
            st = Path(p).stat()
        except OSError:
            return cls(path=p)
        return cls(path=p, size_bytes=st.st_size, mtime=st.st_mtime)

    @property
    def key(self) -> str:
        if self.size_bytes is None:
            return self.path
        return f"{self.path}|{self.size_bytes}|{(self.mtime or 0.0):.3f}"


@dataclass(frozen=True)
class ProbeUpdate:
    """
    A partial probe result. Only parts whose flag is set are merged; the
    provenance fields overwrite when not None.
    """
    input_path: Optional[str] = None
    has_duration: bool = False
    duration_seconds: Optional[float] = None
    has_tracks: bool = False
    audio_streams: Tuple[AudioStream, ...] = ()
    has_subtitles: bool = False
    subtitle_streams: Tuple[SubtitleStream, ...] = ()
    bin_dir_used: Optional[str] = None
    ffprobe_path: Optional[str] = None
    ffprobe_args: Optional[Tuple[str, ...]] = None
    runner: Optional[str] = None
    cwd: Optional[str] = None


@dataclass(frozen=True)
class ProbeRecord:
    input_path: str = ""
    has_duration: bool = False
    has_tracks: bool = False
    has_subtitles: bool = False
    duration_seconds: Optional[float] = None
    audio_streams: Tuple[AudioStream, ...] = ()
    subtitle_streams: Tuple[SubtitleStream, ...] = ()
    bin_dir_used: str = ""
    ffprobe_path: str = ""
    ffprobe_args: Tuple[str, ...] = field(default_factory=tuple)
    runner: str = ""
    cwd: str = ""

    def merge(self, upd: ProbeUpdate) -> "ProbeRecord":
        """Return a new record with `upd` applied; parts not flagged in `upd` are kept."""
        changes: dict = {}
        if upd.has_duration:
            changes["has_duration"] = True
            changes["duration_seconds"] = upd.duration_seconds
        if upd.has_tracks:
            changes["has_tracks"] = True
            changes["audio_streams"] = tuple(upd.audio_streams)
        if upd.has_subtitles:
            changes["has_subtitles"] = True
            changes["subtitle_streams"] = tuple(upd.subtitle_streams)

        for name in ("input_path", "bin_dir_used", "ffprobe_path", "runner", "cwd"):
            val = getattr(upd, name)
            if val is not None:
                changes[name] = val
        if upd.ffprobe_args is not None:
            changes["ffprobe_args"] = tuple(upd.ffprobe_args)

        return replace(self, **changes) if changes else self


def assign_orders(streams: List[dict]) -> List[dict]:
    """
    Sort raw stream dicts by global `index` and stamp a dense 0-based `order`.
    Works on one codec type at a time.
    """
    ordered = sorted(streams, key=lambda s: s["index"])
    for i, s in enumerate(ordered):
        s["order"] = i
    return ordered
