# clipwave/domain/entities/trim.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from clipwave.domain.enums.trim_mode import TrimMode


@dataclass(frozen=True)
class KeyframeWindow:
    """Tightest known keyframe bracket around a target time (ms-rounded seconds)."""
    prev: Optional[float] = None
    next: Optional[float] = None


@dataclass(frozen=True)
class TrimPlan:
    """
    Everything needed to run one cut. Built once per trim request and never
    changed after the encoder starts.

    audio_order: 0-based order among audio streams, or -1 to drop audio.
    subtitle_index: ffprobe global stream index, or -1 for no subtitles.
    """
    input_path: Path
    output_path: Path
    in_seconds: float
    out_seconds: float
    mode: TrimMode
    audio_order: int = -1
    subtitle_index: int = -1
    rotation_degrees: int = 0

    @property
    def duration(self) -> float:
        return self.out_seconds - self.in_seconds

    @property
    def output_ext(self) -> str:
        return self.output_path.suffix.lstrip(".").lower()
