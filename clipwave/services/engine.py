# clipwave/services/engine.py
from __future__ import annotations

from concurrent.futures import Future
from typing import Optional

from clipwave.common.concurrency.thread_manager import ThreadManager
from clipwave.common.logging import get_logger
from clipwave.common.path.inputs import ensure_input_file, normalize_input_path, stable_working_dir
from clipwave.common.settings import Settings, get_settings
from clipwave.domain.dataclasses.probe import (
    DurationProbeResult,
    MediaProbeResult,
    SubtitlesProbeResult,
    TracksProbeResult,
)
from clipwave.domain.dataclasses.reports import LosslessPreflightResult, ToolCheckResult, TrimResult, WarmupResult
from clipwave.domain.ports.events import EventSink, NullEventSink
from clipwave.domain.ports.probe import MetadataBackend
from clipwave.services.binaries.resolver import BinaryResolver
from clipwave.services.probe.cache import ProbeCache
from clipwave.services.probe.ffprobe_adapter import FFprobeBackend
from clipwave.services.probe.keyframes import KeyframeLocator
from clipwave.services.probe.prober import Prober
from clipwave.services.tools import checks
from clipwave.services.trim.service import TrimRequest, TrimService

logger = get_logger(__name__)


class ClipEngine:
    """
    The object a host creates once at start-up. It owns the probe cache, the
    binary resolver and a small worker pool; every public call takes an
    optional binary-directory hint that defaults to the configured one.

    Quick calls are synchronous. Preflight and trim also come as `submit_*`
    variants returning a Future so a UI thread never waits on a child process.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        sink: Optional[EventSink] = None,
        resolver: Optional[BinaryResolver] = None,
        cache: Optional[ProbeCache] = None,
        native: Optional[MetadataBackend] = None,
        workers: Optional[ThreadManager] = None,
    ) -> None:
        self.settings = settings or get_settings()
        get_logger(self.settings.app_name, self.settings.log_level.upper())
        self.sink = sink or NullEventSink()
        self.resolver = resolver or BinaryResolver(self.settings.binaries)
        self.cache = cache or ProbeCache()
        self.prober = Prober(self.cache, self.resolver, settings=self.settings, native=native)
        self.trimmer = TrimService(self.resolver, settings=self.settings, sink=self.sink)
        self.workers = workers or ThreadManager(
            name="clipwave",
            max_workers=self.settings.concurrency.workers,
            max_queue=self.settings.concurrency.thread_queue_maxsize,
        )

    def _hint(self, hint: Optional[str]) -> str:
        return self.settings.ffmpeg_bin_dir if hint is None else hint.strip()

    # ---- lifecycle ----------------------------------------------------------------
    def close(self, wait: bool = True) -> None:
        self.workers.shutdown(wait=wait)

    def __enter__(self) -> "ClipEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- probing -----------------------------------------------------------------
    def probe_duration(self, input_path: str, hint: Optional[str] = None) -> DurationProbeResult:
        return self.prober.probe_duration(input_path, self._hint(hint))

    def probe_tracks(self, input_path: str, hint: Optional[str] = None) -> TracksProbeResult:
        return self.prober.probe_tracks(input_path, self._hint(hint))

    def probe_subtitles(self, input_path: str, hint: Optional[str] = None) -> SubtitlesProbeResult:
        return self.prober.probe_subtitles(input_path, self._hint(hint))

    def probe_media(self, input_path: str, hint: Optional[str] = None) -> MediaProbeResult:
        return self.prober.probe_media(input_path, self._hint(hint))

    # ---- keyframes ---------------------------------------------------------------
    def preflight(self, input_path: str, in_text: str, out_text: str, hint: Optional[str] = None) -> LosslessPreflightResult:
        hint = self._hint(hint)
        path = normalize_input_path(input_path)
        ensure_input_file(path)
        self.resolver.validate_hint(hint)
        bins = self.resolver.resolve(hint)
        ffprobe = FFprobeBackend(bins.ffprobe, cwd=stable_working_dir(), cfg=self.settings.probe)
        return KeyframeLocator(ffprobe, path, self.settings.keyframes).preflight(in_text, out_text)

    def submit_preflight(
        self, input_path: str, in_text: str, out_text: str, hint: Optional[str] = None,
    ) -> Future[LosslessPreflightResult]:
        return self.workers.submit(self.preflight, input_path, in_text, out_text, hint)

    # ---- trim -------------------------------------------------------------------
    def trim(
        self,
        input_path: str,
        in_text: str,
        out_text: str,
        mode: str,
        audio_order: int = -1,
        subtitle_index: int = -1,
        hint: Optional[str] = None,
    ) -> TrimResult:
        req = TrimRequest(
            input_path=input_path,
            in_text=in_text,
            out_text=out_text,
            mode=mode,
            audio_order=audio_order,
            subtitle_index=subtitle_index,
            bin_dir_hint=self._hint(hint),
        )
        return self.trimmer.trim(req)

    def submit_trim(
        self,
        input_path: str,
        in_text: str,
        out_text: str,
        mode: str,
        audio_order: int = -1,
        subtitle_index: int = -1,
        hint: Optional[str] = None,
    ) -> Future[TrimResult]:
        return self.workers.submit(
            self.trim, input_path, in_text, out_text, mode, audio_order, subtitle_index, hint,
        )

    # ---- tools ------------------------------------------------------------------
    def check_tools(self, hint: Optional[str] = None) -> ToolCheckResult:
        return checks.check_tools(self.resolver, self._hint(hint))

    def warm_inspector(self, hint: Optional[str] = None) -> WarmupResult:
        return checks.warm_inspector(self.resolver, self._hint(hint))

    def detect_bin_dir(self, hint: Optional[str] = None) -> str:
        return checks.detect_bin_dir(self.resolver, self._hint(hint))

    def prewarm(self, hint: Optional[str] = None) -> Future[WarmupResult]:
        """Fire-and-forget warm-up; a failure is only logged by the pool."""
        return self.workers.submit(self.warm_inspector, hint)
