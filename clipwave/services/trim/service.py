# clipwave/services/trim/service.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from clipwave.common.errors import ClipwaveError, CorruptOutputError, EncodingError, ValidationError
from clipwave.common.logging import get_logger
from clipwave.common.path.inputs import ensure_input_file, normalize_input_path, stable_working_dir
from clipwave.common.process.runner import run_drained
from clipwave.common.settings import Settings, get_settings
from clipwave.common.timecode import parse_timecode
from clipwave.domain.dataclasses.reports import TrimResult
from clipwave.domain.entities.trim import TrimPlan
from clipwave.domain.enums.trim_mode import TrimMode
from clipwave.domain.enums.trim_phase import TrimPhase
from clipwave.domain.policies.encoder_args import build_encoder_args
from clipwave.domain.policies.output_paths import build_output_path, next_free_path
from clipwave.domain.ports.events import EventSink, NullEventSink
from clipwave.services.binaries.resolver import BinaryResolver
from clipwave.services.probe.ffprobe_adapter import FFprobeBackend
from clipwave.services.probe.rotation import RotationDetector
from clipwave.services.trim.progress import ProgressTracker

logger = get_logger(__name__)


def _undersized_message(mode: TrimMode, size: int) -> str:
    if mode == TrimMode.lossless:
        return (
            f"Lossless cut produced invalid output ({size} bytes). This usually happens when the cut "
            "point is not near a keyframe. Try using 'Exact' mode instead, or adjust the cut times "
            "to be closer to a keyframe."
        )
    return (
        f"Exact cut produced invalid output ({size} bytes). The selected range may contain no "
        "decodable frames. Try using 'Lossless' mode instead, or pick different cut times."
    )


@dataclass(frozen=True)
class TrimRequest:
    input_path: str
    in_text: str
    out_text: str
    mode: str = TrimMode.lossless.value
    audio_order: int = -1
    subtitle_index: int = -1
    bin_dir_hint: str = ""


class TrimService:
    """
    Runs one cut end to end:
      validating -> resolving -> rotation_probe -> building -> spawned
      -> draining -> waited -> validated -> done
    Any phase may end in `failed`; the error propagates to the caller.
    """

    def __init__(
        self,
        resolver: Optional[BinaryResolver] = None,
        *,
        settings: Optional[Settings] = None,
        sink: Optional[EventSink] = None,
        ffprobe_factory: Optional[Callable[[Path, Optional[Path]], FFprobeBackend]] = None,
    ):
        self.cfg = settings or get_settings()
        self.resolver = resolver or BinaryResolver(self.cfg.binaries)
        self.sink = sink or NullEventSink()
        self._ffprobe_factory = ffprobe_factory or (
            lambda exe, cwd: FFprobeBackend(exe, cwd=cwd, cfg=self.cfg.probe)
        )

    def _phase(self, phase: TrimPhase, output: object = "") -> None:
        logger.debug("trim %s %s", phase.value, output)

    # ------------------------------------------------------------------------
    def trim(self, req: TrimRequest) -> TrimResult:
        try:
            return self._run(req)
        except ClipwaveError as e:
            self._phase(TrimPhase.failed, e)
            raise

    def _run(self, req: TrimRequest) -> TrimResult:
        self._phase(TrimPhase.validating, req.input_path)
        input_path = normalize_input_path(req.input_path)
        ensure_input_file(input_path)
        self.resolver.validate_hint(req.bin_dir_hint)

        in_seconds = parse_timecode(req.in_text)
        out_seconds = parse_timecode(req.out_text)
        if out_seconds <= in_seconds:
            raise ValidationError("OUT must be greater than IN")
        mode = TrimMode.parse(req.mode)

        base = build_output_path(
            input_path, mode.value, req.in_text, req.out_text, default_ext=self.cfg.trim.default_ext,
        )
        output_path = next_free_path(base, self.cfg.trim.max_name_attempts)

        self._phase(TrimPhase.resolving)
        bins = self.resolver.resolve(req.bin_dir_hint)
        cwd = stable_working_dir()
        ffprobe = self._ffprobe_factory(bins.ffprobe, cwd)

        self._phase(TrimPhase.rotation_probe)
        rotation = RotationDetector(ffprobe).detect(input_path)
        if mode == TrimMode.lossless and rotation != 0:
            raise ValidationError(
                f"Lossless cannot reliably preserve vertical orientation (input is rotated {rotation}°). Use Exact mode."
            )

        self._phase(TrimPhase.building)
        plan = TrimPlan(
            input_path=Path(input_path),
            output_path=output_path,
            in_seconds=in_seconds,
            out_seconds=out_seconds,
            mode=mode,
            audio_order=req.audio_order,
            subtitle_index=req.subtitle_index,
            rotation_degrees=rotation,
        )
        args = build_encoder_args(plan, rotation, self.cfg.trim)

        tracker = ProgressTracker(plan.duration, self.sink)
        draining = []

        def on_line(line: str) -> None:
            if not draining:
                draining.append(True)
                self._phase(TrimPhase.draining)
            tracker.feed(line)

        self._phase(TrimPhase.spawned, bins.ffmpeg)
        out = run_drained(
            bins.ffmpeg, args, phase="trim", cwd=cwd, on_stdout_line=on_line,
            stderr_limit=self.cfg.probe.stderr_head_bytes,
        )
        self._phase(TrimPhase.waited, f"rc={out.returncode}")
        if not out.ok:
            err = out.stderr.decode("utf-8", "replace").strip()
            raise EncodingError("ffmpeg failed", stderr=err or None, rc=out.returncode)

        result = self._validate_output(plan, ffprobe)
        self._phase(TrimPhase.done, result.output_path)
        return result

    def _validate_output(self, plan: TrimPlan, ffprobe: FFprobeBackend) -> TrimResult:
        output = plan.output_path
        try:
            size = output.stat().st_size
        except OSError:
            size = 0
        if size < self.cfg.trim.min_output_bytes:
            logger.warning("Removing undersized output %s (%d bytes)", output, size)
            try:
                os.remove(output)
            except FileNotFoundError:
                pass
            raise CorruptOutputError(
                _undersized_message(plan.mode, size),
                path=str(output),
                size_bytes=size,
            )

        requested = plan.duration
        actual: Optional[float]
        try:
            actual = ffprobe.probe_duration(output).value
        except ClipwaveError as e:
            logger.debug("could not re-probe %s: %s", output, e)
            actual = None

        warning = None
        if actual is not None:
            diff = abs(actual - requested)
            if diff > self.cfg.trim.duration_tolerance_sec:
                warning = (
                    f"Output duration is {actual:.1f}s (requested {requested:.1f}s, difference {diff:.1f}s). "
                    "Lossless cuts can only split on keyframes, so the result may be slightly shorter or longer."
                )
                logger.warning(warning)

        self._phase(TrimPhase.validated, f"size={size} actual={actual}")
        return TrimResult(
            output_path=str(output),
            requested_duration_seconds=requested,
            actual_duration_seconds=actual,
            duration_warning=warning,
        )
