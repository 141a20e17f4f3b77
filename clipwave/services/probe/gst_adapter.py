# clipwave/services/probe/gst_adapter.py
from __future__ import annotations

import sys
import threading
import time
from pathlib import Path
from typing import Any, List, Optional

from clipwave.common.logging import get_logger
from clipwave.domain.entities.probe import AudioStream
from clipwave.domain.enums.probe_runner import ProbeRunner
from clipwave.domain.ports.probe import NOT_AVAILABLE, BackendAnswer, BackendOutcome

logger = get_logger(__name__)

# caps structure name -> ffprobe-style codec name
_CAPS_CODECS = {
    "audio/x-ac3": "ac3",
    "audio/x-eac3": "eac3",
    "audio/x-flac": "flac",
    "audio/x-alac": "alac",
    "audio/x-raw": "pcm",
    "audio/x-opus": "opus",
    "audio/x-vorbis": "vorbis",
    "audio/x-dts": "dts",
}

_init_lock = threading.Lock()
_gst: Optional[tuple] = None
_gst_failed = False


def _load_gst() -> Optional[tuple]:
    """Import and initialise GStreamer once per process; None if unusable."""
    global _gst, _gst_failed
    with _init_lock:
        if _gst is not None or _gst_failed:
            return _gst
        try:
            import gi
            gi.require_version("Gst", "1.0")
            gi.require_version("GstPbutils", "1.0")
            from gi.repository import Gst, GstPbutils
            Gst.init(None)
            _gst = (Gst, GstPbutils)
        except (ImportError, ValueError) as e:
            logger.debug("GStreamer unavailable: %s", e)
            _gst_failed = True
        return _gst


def _codec_from_caps(caps: Any) -> str:
    if caps is None or caps.get_size() == 0:
        return ""
    st = caps.get_structure(0)
    name = st.get_name()
    if name == "audio/mpeg":
        ok, version = st.get_int("mpegversion")
        if ok and version in (2, 4):
            return "aac"
        return "mp3"
    return _CAPS_CODECS.get(name, name)


def _tag_string(tags: Any, tag: str) -> Optional[str]:
    if tags is None:
        return None
    ok, value = tags.get_string(tag)
    return value if ok and value else None


class GstDiscovererBackend:
    """
    In-process metadata via GStreamer's Discoverer (PyGObject). Linux only.

    Every failure (wrong platform, PyGObject or plugins missing, unsupported
    container) returns NOT_AVAILABLE so the next backend runs. Audio streams
    carry index -1: Discoverer does not expose container stream indices.
    Subtitles are never answered here because trim addresses them by global index.
    """

    name = "gstreamer"

    def __init__(self, *, timeout_sec: float = 5.0, platform: Optional[str] = None, enabled: bool = True):
        self.timeout_ns = int(timeout_sec * 1_000_000_000)
        self._platform = platform or sys.platform
        self.enabled = enabled

    @property
    def supported(self) -> bool:
        return self.enabled and self._platform.startswith("linux")

    def _discover(self, path: Path) -> Any:
        if not self.supported:
            return None
        mods = _load_gst()
        if mods is None:
            return None
        Gst, GstPbutils = mods
        try:
            disc = GstPbutils.Discoverer.new(self.timeout_ns)
            info = disc.discover_uri(Gst.filename_to_uri(str(Path(path).resolve())))
        except Exception as e:  # GLib.Error and friends
            logger.debug("Discoverer failed for %s: %s", path, e)
            return None
        if info.get_result() != GstPbutils.DiscovererResult.OK:
            logger.debug("Discoverer result %s for %s", info.get_result(), path)
            return None
        return info

    # ---- MetadataBackend ------------------------------------------------------------
    def probe_duration(self, path: Path) -> BackendOutcome[Optional[float]]:
        t0 = time.perf_counter()
        info = self._discover(path)
        if info is None:
            return NOT_AVAILABLE
        ns = info.get_duration()
        if not ns or ns < 0:
            return NOT_AVAILABLE
        return BackendAnswer(
            value=ns / 1_000_000_000.0,
            runner=ProbeRunner.native.value,
            elapsed_ms=(time.perf_counter() - t0) * 1000.0,
        )

    def probe_audio(self, path: Path) -> BackendOutcome[List[AudioStream]]:
        t0 = time.perf_counter()
        info = self._discover(path)
        if info is None:
            return NOT_AVAILABLE
        Gst, _ = _load_gst()  # type: ignore[misc]

        streams: List[AudioStream] = []
        try:
            for order, a in enumerate(info.get_audio_streams()):
                tags = a.get_tags()
                channels = a.get_channels()
                streams.append(
                    AudioStream(
                        order=order,
                        index=-1,
                        codec_name=_codec_from_caps(a.get_caps()),
                        channels=int(channels) if channels else None,
                        language=a.get_language() or "und",
                        title=_tag_string(tags, Gst.TAG_TITLE) or "",
                    )
                )
        except Exception as e:  # GLib.Error, odd caps or tags
            logger.debug("Discoverer audio walk failed for %s: %s", path, e)
            return NOT_AVAILABLE
        return BackendAnswer(
            value=streams,
            runner=ProbeRunner.native.value,
            elapsed_ms=(time.perf_counter() - t0) * 1000.0,
        )

    def probe_subtitles(self, path: Path) -> BackendOutcome[list]:
        return NOT_AVAILABLE
