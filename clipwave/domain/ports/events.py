from __future__ import annotations
from typing import Any, Callable, Dict, Protocol

# Event names shared with the host UI.
CUT_PROGRESS = "cut_progress"
FFMPEG_INSTALL_PROGRESS = "ffmpeg_install_progress"


class EventSink(Protocol):
    def emit(self, event: str, payload: Dict[str, Any]) -> None: ...


class NullEventSink:
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        return None


class CallbackEventSink:
    """Adapts a plain callable(event, payload) to the EventSink port."""

    def __init__(self, fn: Callable[[str, Dict[str, Any]], None]) -> None:
        self._fn = fn

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        self._fn(event, payload)
