# clipwave/domain/dataclasses/reports.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class _Payload:
    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Trim
# ---------------------------------------------------------------------------
@dataclass
class TrimResult(_Payload):
    output_path: str
    requested_duration_seconds: float
    actual_duration_seconds: Optional[float] = None
    # Non-fatal: set when the realized duration drifts past the tolerance
    duration_warning: Optional[str] = None


# ---------------------------------------------------------------------------
# Lossless preflight
# ---------------------------------------------------------------------------
@dataclass
class LosslessPreflightResult(_Payload):
    in_time_seconds: float
    nearest_keyframe_seconds: Optional[float] = None
    next_keyframe_seconds: Optional[float] = None
    start_shift_seconds: Optional[float] = None
    # OUT point analysis
    out_time_seconds: Optional[float] = None
    out_prev_keyframe_seconds: Optional[float] = None
    out_next_keyframe_seconds: Optional[float] = None
    end_shift_seconds: Optional[float] = None


# ---------------------------------------------------------------------------
# Tool checks
# ---------------------------------------------------------------------------
@dataclass
class ToolCheckResult(_Payload):
    ok: bool
    message: str
    bin_dir_used: str = ""


@dataclass
class WarmupResult(_Payload):
    ffprobe_path: str
    runner: str
    ms: float
