# clipwave/services/probe/ffprobe_adapter.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from clipwave.common.errors import InspectionError
from clipwave.common.logging import get_logger
from clipwave.common.probe import ffprobe_helpers as fh
from clipwave.common.process.runner import SpawnOutcome, run_drained
from clipwave.common.settings import ProbeConfig
from clipwave.domain.entities.probe import AudioStream, SubtitleStream
from clipwave.domain.enums.probe_runner import ProbeRunner
from clipwave.domain.ports.probe import BackendAnswer

logger = get_logger(__name__)


class FFprobeBackend:
    """
    MetadataBackend implemented with the `ffprobe` executable.
    It is the last backend in the chain, so it always answers or raises:
    ExecutionError (cannot spawn), InspectionError (non-zero exit),
    ParseError (unreadable output).
    """

    name = "ffprobe"

    def __init__(self, ffprobe_bin: Path | str, *, cwd: Optional[Path] = None, cfg: Optional[ProbeConfig] = None):
        self.ffprobe_bin = str(ffprobe_bin)
        self.cwd = cwd
        self.cfg = cfg or ProbeConfig()

    # ---- process ------------------------------------------------------------------
    def run(self, phase: str, args: Sequence[str]) -> SpawnOutcome:
        out = run_drained(
            self.ffprobe_bin, args, phase=phase, cwd=self.cwd, stderr_limit=self.cfg.stderr_head_bytes,
        )
        if not out.ok:
            head = fh.stderr_head(out.stderr, self.cfg.stderr_head_bytes).strip()
            raise InspectionError("ffprobe failed", stderr=head or None, rc=out.returncode)
        return out

    def _answer(self, value, out: SpawnOutcome) -> BackendAnswer:
        return BackendAnswer(value=value, runner=ProbeRunner.direct.value, elapsed_ms=out.execution_ms, spawns=[out])

    # ---- MetadataBackend ------------------------------------------------------------
    def probe_duration(self, path: Path) -> BackendAnswer[Optional[float]]:
        out = self.run("duration", fh.duration_args(path))
        return self._answer(fh.parse_duration_text(out.stdout), out)

    def probe_audio(self, path: Path) -> BackendAnswer[List[AudioStream]]:
        args = fh.audio_tracks_args(path, self.cfg.probesize, self.cfg.analyzeduration)
        out = self.run("tracks_audio", args)
        audio, _ignored = fh.parse_streams_json(out.stdout)
        return self._answer(audio, out)

    def probe_subtitles(self, path: Path) -> BackendAnswer[List[SubtitleStream]]:
        args = fh.subtitle_tracks_args(path, self.cfg.probesize, self.cfg.analyzeduration)
        out = self.run("subs", args)
        _ignored, subs = fh.parse_streams_json(out.stdout)
        return self._answer(subs, out)

    # ---- extras ---------------------------------------------------------------------
    def probe_media(self, path: Path) -> BackendAnswer[Tuple[Optional[float], List[AudioStream], List[SubtitleStream]]]:
        out = self.run("media", fh.media_args(path))
        return self._answer(fh.parse_media_json(out.stdout), out)

    def keyframe_times(self, path: Path, start: float, end: float) -> List[float]:
        out = self.run("keyframes", fh.keyframe_args(path, fh.read_interval(start, end)))
        return fh.parse_keyframe_times(out.stdout)

    def raw_rotation(self, path: Path) -> Optional[int]:
        out = self.run("rotation", fh.rotation_args(path))
        return fh.parse_rotation_json(out.stdout)

    def version(self) -> SpawnOutcome:
        return self.run("version", ["-version"])
