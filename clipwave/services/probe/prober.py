# clipwave/services/probe/prober.py
from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from clipwave.common.errors import InspectionError
from clipwave.common.logging import get_logger
from clipwave.common.path.inputs import ensure_input_file, normalize_input_path, stable_working_dir
from clipwave.common.settings import Settings, get_settings
from clipwave.domain.dataclasses.probe import (
    DurationProbeResult,
    MediaProbeResult,
    ProbeTiming,
    SpawnDebugInfo,
    SubtitlesProbeResult,
    SubtitlesProbeTiming,
    TracksProbeResult,
    TracksProbeTiming,
)
from clipwave.domain.entities.probe import MediaFingerprint, ProbeRecord, ProbeUpdate
from clipwave.domain.enums.probe_runner import ProbeRunner
from clipwave.domain.ports.probe import BackendAnswer, MetadataBackend, NotAvailable
from clipwave.services.binaries.resolver import BinaryResolver, ResolvedBinaries
from clipwave.services.probe.cache import ProbeCache
from clipwave.services.probe.ffprobe_adapter import FFprobeBackend
from clipwave.services.probe.gst_adapter import GstDiscovererBackend

logger = get_logger(__name__)


def _ms(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000.0


@dataclass
class _Prepared:
    """Validated input, resolved tools and the phase timings spent getting there."""
    path: str
    fingerprint: MediaFingerprint
    bins: ResolvedBinaries
    cwd: str
    ffprobe: FFprobeBackend
    validation_ms: float
    resolve_ms: float


class Prober:
    """
    Duration / track / subtitle metadata with a shared cache and two backends:
    the in-process native one first, then ffprobe. Each operation is cached
    independently and merged into one record per file.
    """

    def __init__(
        self,
        cache: ProbeCache,
        resolver: Optional[BinaryResolver] = None,
        *,
        settings: Optional[Settings] = None,
        native: Optional[MetadataBackend] = None,
        ffprobe_factory: Optional[Callable[[Path, Optional[Path]], FFprobeBackend]] = None,
    ) -> None:
        self.cfg = settings or get_settings()
        self.cache = cache
        self.resolver = resolver or BinaryResolver(self.cfg.binaries)
        if native is None and self.cfg.probe.native_enabled:
            native = GstDiscovererBackend()
        self.native = native
        self._ffprobe_factory = ffprobe_factory or (
            lambda exe, cwd: FFprobeBackend(exe, cwd=cwd, cfg=self.cfg.probe)
        )

    # ---- shared steps -----------------------------------------------------------------
    def _prepare(self, input_path: str, hint: str, fp: Optional[MediaFingerprint] = None) -> _Prepared:
        path = normalize_input_path(input_path)
        t_val = time.perf_counter()
        ensure_input_file(path)
        self.resolver.validate_hint(hint)
        validation_ms = _ms(t_val)

        t_res = time.perf_counter()
        bins = self.resolver.resolve(hint)
        resolve_ms = _ms(t_res)

        cwd = stable_working_dir()
        return _Prepared(
            path=path,
            fingerprint=fp or MediaFingerprint.from_path(path),
            bins=bins,
            cwd=str(cwd) if cwd else "",
            ffprobe=self._ffprobe_factory(bins.ffprobe, cwd),
            validation_ms=validation_ms,
            resolve_ms=resolve_ms,
        )

    def _chain(self, prep: _Prepared) -> List[MetadataBackend]:
        backends: List[MetadataBackend] = []
        if self.native is not None:
            backends.append(self.native)
        backends.append(prep.ffprobe)
        return backends

    def _dispatch(self, prep: _Prepared, op: str, path: str) -> BackendAnswer:
        """First backend that answers wins; NOT_AVAILABLE falls through to the next."""
        for backend in self._chain(prep):
            outcome = getattr(backend, op)(Path(path))
            if isinstance(outcome, NotAvailable):
                logger.debug("%s: %s not available, falling through", op, backend.name)
                continue
            return outcome
        raise InspectionError(f"No backend could answer {op}")

    def _cached(self, input_path: str) -> Tuple[str, MediaFingerprint, Optional[ProbeRecord]]:
        path = normalize_input_path(input_path)
        fp = MediaFingerprint.from_path(path)
        rec = self.cache.get(fp)
        if rec is None:
            logger.debug("probe cache miss: %s", fp.key)
        return path, fp, rec

    @staticmethod
    def _native_debug(phase: str, cwd: str) -> SpawnDebugInfo:
        return SpawnDebugInfo(phase=phase, program="GStreamer", cwd=cwd, program_exists=True, exit_code=0, success=True)

    # ---- duration -------------------------------------------------------------------
    def probe_duration(self, input_path: str, hint: str = "") -> DurationProbeResult:
        t_total = time.perf_counter()
        path, fp, rec = self._cached(input_path)
        if rec is not None and rec.has_duration:
            logger.debug("duration cache hit: %s", path)
            return DurationProbeResult(
                input_path=rec.input_path,
                duration_seconds=rec.duration_seconds,
                bin_dir_used=rec.bin_dir_used,
                ffprobe_path=rec.ffprobe_path,
                ffprobe_args=list(rec.ffprobe_args),
                runner=rec.runner,
                cwd=rec.cwd,
                timing_ms=ProbeTiming(total_ms=_ms(t_total), cache_hit=True),
            )

        prep = self._prepare(path, hint, fp)
        ans = self._dispatch(prep, "probe_duration", prep.path)

        if ans.spawns:
            out = ans.spawns[0]
            args, debug = list(out.args), out.debug
            timing = ProbeTiming(
                validation_ms=prep.validation_ms,
                resolve_binaries_ms=prep.resolve_ms,
                ffprobe_spawn_ms=out.spawn_ms,
                ffprobe_first_stdout_byte_ms=out.first_stdout_byte_ms,
                ffprobe_first_stderr_byte_ms=out.first_stderr_byte_ms,
                ffprobe_execution_ms=out.execution_ms,
                ffprobe_wait_ms=out.wait_ms,
                total_ms=_ms(t_total),
            )
        else:
            args, debug = [], self._native_debug("duration_native", prep.cwd)
            timing = ProbeTiming(
                validation_ms=prep.validation_ms,
                resolve_binaries_ms=prep.resolve_ms,
                ffprobe_execution_ms=ans.elapsed_ms,
                total_ms=_ms(t_total),
            )

        result = DurationProbeResult(
            input_path=prep.path,
            duration_seconds=ans.value,
            bin_dir_used=prep.bins.bin_dir_used,
            ffprobe_path=str(prep.bins.ffprobe),
            ffprobe_args=args,
            runner=ans.runner,
            cwd=prep.cwd,
            timing_ms=timing,
            debug=debug,
        )
        self.cache.merge(fp, ProbeUpdate(
            input_path=result.input_path,
            has_duration=result.duration_seconds is not None,
            duration_seconds=result.duration_seconds,
            bin_dir_used=result.bin_dir_used,
            ffprobe_path=result.ffprobe_path,
            ffprobe_args=tuple(args),
            runner=result.runner,
            cwd=result.cwd,
        ))
        return result

    # ---- tracks ---------------------------------------------------------------------
    def probe_tracks(self, input_path: str, hint: str = "") -> TracksProbeResult:
        t_total = time.perf_counter()
        path, fp, rec = self._cached(input_path)
        if rec is not None and rec.has_tracks:
            logger.debug("tracks cache hit: %s", path)
            return TracksProbeResult(
                input_path=rec.input_path,
                audio_streams=list(rec.audio_streams),
                subtitle_streams=list(rec.subtitle_streams),
                bin_dir_used=rec.bin_dir_used,
                ffprobe_path=rec.ffprobe_path,
                runner=rec.runner,
                cwd=rec.cwd,
                timing_ms=TracksProbeTiming(total_ms=_ms(t_total), cache_hit=True),
            )

        prep = self._prepare(path, hint, fp)
        audio_ans = self._dispatch(prep, "probe_audio", prep.path)

        if audio_ans.runner == ProbeRunner.native.value:
            # The native API has no subtitle indices: reuse whatever an earlier
            # ffprobe query cached, without marking subtitles as probed.
            cached = self.cache.get(fp)
            subs = list(cached.subtitle_streams) if cached and cached.has_subtitles else []
            debug = [self._native_debug("tracks_audio_native", prep.cwd)]
            subs_ms = 0.0
            update = ProbeUpdate(has_tracks=True, audio_streams=tuple(audio_ans.value))
        else:
            subs_ans = prep.ffprobe.probe_subtitles(Path(prep.path))
            subs = list(subs_ans.value)
            debug = [o.debug for o in audio_ans.spawns + subs_ans.spawns]
            subs_ms = subs_ans.elapsed_ms
            update = ProbeUpdate(
                has_tracks=True,
                audio_streams=tuple(audio_ans.value),
                has_subtitles=True,
                subtitle_streams=tuple(subs),
            )

        result = TracksProbeResult(
            input_path=prep.path,
            audio_streams=list(audio_ans.value),
            subtitle_streams=subs,
            bin_dir_used=prep.bins.bin_dir_used,
            ffprobe_path=str(prep.bins.ffprobe),
            runner=audio_ans.runner,
            cwd=prep.cwd,
            timing_ms=TracksProbeTiming(
                validation_ms=prep.validation_ms,
                resolve_binaries_ms=prep.resolve_ms,
                audio_ffprobe_ms=audio_ans.elapsed_ms,
                subs_ffprobe_ms=subs_ms,
                total_ms=_ms(t_total),
            ),
            debug=debug,
        )
        self.cache.merge(fp, ProbeUpdate(
            input_path=result.input_path,
            has_tracks=update.has_tracks,
            audio_streams=update.audio_streams,
            has_subtitles=update.has_subtitles,
            subtitle_streams=update.subtitle_streams,
            bin_dir_used=result.bin_dir_used,
            ffprobe_path=result.ffprobe_path,
            runner=result.runner,
            cwd=result.cwd,
        ))
        return result

    # ---- subtitles ------------------------------------------------------------------
    def probe_subtitles(self, input_path: str, hint: str = "") -> SubtitlesProbeResult:
        t_total = time.perf_counter()
        path, fp, rec = self._cached(input_path)
        if rec is not None and rec.has_subtitles:
            logger.debug("subtitles cache hit: %s", path)
            return SubtitlesProbeResult(
                input_path=rec.input_path,
                subtitle_streams=list(rec.subtitle_streams),
                bin_dir_used=rec.bin_dir_used,
                ffprobe_path=rec.ffprobe_path,
                runner=rec.runner,
                cwd=rec.cwd,
                timing_ms=SubtitlesProbeTiming(total_ms=_ms(t_total), cache_hit=True),
            )

        prep = self._prepare(path, hint, fp)
        ans = self._dispatch(prep, "probe_subtitles", prep.path)

        result = SubtitlesProbeResult(
            input_path=prep.path,
            subtitle_streams=list(ans.value),
            bin_dir_used=prep.bins.bin_dir_used,
            ffprobe_path=str(prep.bins.ffprobe),
            runner=ans.runner,
            cwd=prep.cwd,
            timing_ms=SubtitlesProbeTiming(
                validation_ms=prep.validation_ms,
                resolve_binaries_ms=prep.resolve_ms,
                ffprobe_ms=ans.elapsed_ms,
                total_ms=_ms(t_total),
            ),
            debug=ans.spawns[0].debug if ans.spawns else None,
        )
        self.cache.merge(fp, ProbeUpdate(
            input_path=result.input_path,
            has_subtitles=True,
            subtitle_streams=tuple(result.subtitle_streams),
            bin_dir_used=result.bin_dir_used,
            ffprobe_path=result.ffprobe_path,
            runner=result.runner,
            cwd=result.cwd,
        ))
        return result

    # ---- combined -------------------------------------------------------------------
    def probe_media(self, input_path: str, hint: str = "") -> MediaProbeResult:
        """Duration plus both track lists in one ffprobe query; served from cache when complete."""
        t_total = time.perf_counter()
        path, fp, rec = self._cached(input_path)
        if rec is not None and rec.has_duration and rec.has_tracks and rec.has_subtitles:
            logger.debug("media cache hit: %s", path)
            return MediaProbeResult(
                input_path=rec.input_path,
                duration_seconds=rec.duration_seconds,
                audio_streams=list(rec.audio_streams),
                subtitle_streams=list(rec.subtitle_streams),
                bin_dir_used=rec.bin_dir_used,
                ffprobe_path=rec.ffprobe_path,
                ffprobe_args=list(rec.ffprobe_args),
                runner=rec.runner,
                cwd=rec.cwd,
                timing_ms=ProbeTiming(total_ms=_ms(t_total), cache_hit=True),
            )

        prep = self._prepare(path, hint, fp)
        ans = prep.ffprobe.probe_media(Path(prep.path))
        out = ans.spawns[0]

        t_parse = time.perf_counter()
        duration, audio, subs = ans.value
        parse_ms = _ms(t_parse)

        result = MediaProbeResult(
            input_path=prep.path,
            duration_seconds=duration,
            audio_streams=list(audio),
            subtitle_streams=list(subs),
            bin_dir_used=prep.bins.bin_dir_used,
            ffprobe_path=str(prep.bins.ffprobe),
            ffprobe_args=list(out.args),
            runner=ans.runner,
            cwd=prep.cwd,
            timing_ms=ProbeTiming(
                validation_ms=prep.validation_ms,
                resolve_binaries_ms=prep.resolve_ms,
                ffprobe_spawn_ms=out.spawn_ms,
                ffprobe_first_stdout_byte_ms=out.first_stdout_byte_ms,
                ffprobe_first_stderr_byte_ms=out.first_stderr_byte_ms,
                ffprobe_execution_ms=out.execution_ms,
                ffprobe_wait_ms=out.wait_ms,
                json_parsing_ms=parse_ms,
                total_ms=_ms(t_total),
            ),
        )
        logger.debug("probe_media %s took %.1fms", prep.path, result.timing_ms.total_ms)
        self.cache.merge(fp, ProbeUpdate(
            input_path=result.input_path,
            has_duration=duration is not None,
            duration_seconds=duration,
            has_tracks=True,
            audio_streams=tuple(audio),
            has_subtitles=True,
            subtitle_streams=tuple(subs),
            bin_dir_used=result.bin_dir_used,
            ffprobe_path=result.ffprobe_path,
            ffprobe_args=tuple(result.ffprobe_args),
            runner=result.runner,
            cwd=result.cwd,
        ))
        return result
