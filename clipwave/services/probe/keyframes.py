# clipwave/services/probe/keyframes.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

from clipwave.common.errors import ClipwaveError
from clipwave.common.logging import get_logger
from clipwave.common.settings import KeyframeConfig
from clipwave.common.timecode import parse_timecode
from clipwave.domain.dataclasses.reports import LosslessPreflightResult
from clipwave.domain.entities.trim import KeyframeWindow
from clipwave.domain.policies import keyframes as kp
from clipwave.services.probe.ffprobe_adapter import FFprobeBackend

logger = get_logger(__name__)


class KeyframeLocator:
    """
    Finds the keyframes bracketing a time in one file by asking ffprobe about
    progressively wider windows (60s, 600s, 3600s by default) instead of
    scanning the whole stream.

    A window whose query fails is skipped; the locator never raises for a
    failed search, it just reports None for that side.
    """

    def __init__(self, ffprobe: FFprobeBackend, input_path: Path | str, cfg: Optional[KeyframeConfig] = None):
        self.ffprobe = ffprobe
        self.input_path = Path(input_path)
        self.cfg = cfg or KeyframeConfig()

    def _times(self, start: float, end: float) -> Optional[List[float]]:
        try:
            return self.ffprobe.keyframe_times(self.input_path, start, end)
        except ClipwaveError as e:
            logger.debug("keyframe query %.3f-%.3f failed: %s", start, end, e)
            return None

    def _search(self, pick: Callable[[List[float]], Optional[float]], window: Callable[[float], tuple]) -> Optional[float]:
        for w in self.cfg.windows_sec:
            start, end = window(w)
            times = self._times(start, end)
            if times is None:
                continue
            found = pick(times)
            if found is not None:
                return found
        return None

    def locate(self, target: float) -> KeyframeWindow:
        if target == 0:
            return KeyframeWindow(prev=0.0, next=0.0)

        prev = self._search(kp.pick_prev, lambda w: (max(target - w, 0.0), target))
        nxt = self._search(
            lambda times: kp.pick_next(times, target, self.cfg.epsilon),
            lambda w: (target, target + w),
        )
        return KeyframeWindow(prev=kp.round_ms(prev), next=kp.round_ms(nxt))

    def preflight(self, in_text: str, out_text: str) -> LosslessPreflightResult:
        """
        Report where a lossless cut of [in, out] would really start and end.
        Nothing is written; the range itself is not validated here.
        """
        in_seconds = parse_timecode(in_text)
        out_seconds = parse_timecode(out_text)

        if in_seconds <= 0:
            at_in = KeyframeWindow(prev=0.0, next=0.0)
        else:
            at_in = self.locate(in_seconds)
        at_out = self.locate(out_seconds)

        result = LosslessPreflightResult(
            in_time_seconds=in_seconds,
            nearest_keyframe_seconds=at_in.prev,
            next_keyframe_seconds=at_in.next,
            start_shift_seconds=kp.start_shift(in_seconds, at_in.prev),
            out_time_seconds=out_seconds,
            out_prev_keyframe_seconds=at_out.prev,
            out_next_keyframe_seconds=at_out.next,
            end_shift_seconds=kp.end_shift(out_seconds, at_out.next, self.cfg.epsilon),
        )
        logger.debug("preflight %s: %s", self.input_path, result)
        return result
