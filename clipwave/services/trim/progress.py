# clipwave/services/trim/progress.py
from __future__ import annotations

from typing import Optional

from clipwave.common.logging import get_logger
from clipwave.domain.ports.events import CUT_PROGRESS, EventSink, NullEventSink

logger = get_logger(__name__)

_KEY = "out_time_us="


class ProgressTracker:
    """
    Turns ffmpeg `-progress pipe:1` lines into `cut_progress` events.
    Only integer percentage changes are emitted. Called from the stdout drain
    thread, so the sink must tolerate being invoked off the caller's thread.
    """

    def __init__(self, duration_seconds: float, sink: Optional[EventSink] = None):
        self.duration_us = int(duration_seconds * 1_000_000)
        self.sink = sink or NullEventSink()
        self.last_percent: Optional[int] = None

    def percent_for(self, out_time_us: int) -> int:
        if self.duration_us <= 0:
            return 0
        return int(min(round(out_time_us / self.duration_us * 100.0), 100))

    def feed(self, line: str) -> Optional[int]:
        """Handle one progress line; returns the percent if an event was emitted."""
        if not line.startswith(_KEY):
            return None
        try:
            us = int(line[len(_KEY):].strip())
        except ValueError:
            # ffmpeg prints N/A before the first frame
            return None
        pct = self.percent_for(us)
        if pct == self.last_percent:
            return None
        self.last_percent = pct
        try:
            self.sink.emit(CUT_PROGRESS, {"percent": pct})
        except Exception as e:
            # a closed host window must not stop the cut
            logger.warning("dropping %s event (%d%%): %s", CUT_PROGRESS, pct, e)
        return pct
