# clipwave/domain/dataclasses/probe.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from clipwave.domain.entities.probe import AudioStream, SubtitleStream


@dataclass
class SpawnDebugInfo:
    """What we ran and how it ended; returned to hosts for field diagnosis."""
    phase: str
    program: str
    args: List[str] = field(default_factory=list)
    cwd: str = ""
    program_exists: bool = False
    exit_code: Optional[int] = None
    success: bool = False
    stdout_len: int = 0
    stderr_len: int = 0
    stderr_head: str = ""


@dataclass
class ProbeTiming:
    validation_ms: float = 0.0
    resolve_binaries_ms: float = 0.0
    ffprobe_spawn_ms: float = 0.0
    ffprobe_first_stdout_byte_ms: Optional[float] = None
    ffprobe_first_stderr_byte_ms: Optional[float] = None
    ffprobe_execution_ms: float = 0.0
    ffprobe_wait_ms: float = 0.0
    json_parsing_ms: float = 0.0
    total_ms: float = 0.0
    cache_hit: bool = False


@dataclass
class TracksProbeTiming:
    validation_ms: float = 0.0
    resolve_binaries_ms: float = 0.0
    audio_ffprobe_ms: float = 0.0
    subs_ffprobe_ms: float = 0.0
    total_ms: float = 0.0
    cache_hit: bool = False


@dataclass
class SubtitlesProbeTiming:
    validation_ms: float = 0.0
    resolve_binaries_ms: float = 0.0
    ffprobe_ms: float = 0.0
    total_ms: float = 0.0
    cache_hit: bool = False


@dataclass
class _ProbePayload:
    input_path: str
    bin_dir_used: str = ""
    ffprobe_path: str = ""
    runner: str = ""
    cwd: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DurationProbeResult(_ProbePayload):
    duration_seconds: Optional[float] = None
    ffprobe_args: List[str] = field(default_factory=list)
    timing_ms: ProbeTiming = field(default_factory=ProbeTiming)
    debug: Optional[SpawnDebugInfo] = None


@dataclass
class TracksProbeResult(_ProbePayload):
    audio_streams: List[AudioStream] = field(default_factory=list)
    subtitle_streams: List[SubtitleStream] = field(default_factory=list)
    timing_ms: TracksProbeTiming = field(default_factory=TracksProbeTiming)
    debug: List[SpawnDebugInfo] = field(default_factory=list)


@dataclass
class SubtitlesProbeResult(_ProbePayload):
    subtitle_streams: List[SubtitleStream] = field(default_factory=list)
    timing_ms: SubtitlesProbeTiming = field(default_factory=SubtitlesProbeTiming)
    debug: Optional[SpawnDebugInfo] = None


@dataclass
class MediaProbeResult(_ProbePayload):
    """Duration and both track lists from a single combined query."""
    duration_seconds: Optional[float] = None
    audio_streams: List[AudioStream] = field(default_factory=list)
    subtitle_streams: List[SubtitleStream] = field(default_factory=list)
    ffprobe_args: List[str] = field(default_factory=list)
    timing_ms: ProbeTiming = field(default_factory=ProbeTiming)
