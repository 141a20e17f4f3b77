from __future__ import annotations

from typing import Iterable, Optional


def round_ms(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value * 1000.0) / 1000.0


def pick_prev(times: Iterable[float]) -> Optional[float]:
    """Latest keyframe in a [target-W, target] window."""
    ordered = sorted(times)
    return ordered[-1] if ordered else None


def pick_next(times: Iterable[float], target: float, eps: float = 1e-6) -> Optional[float]:
    """Earliest keyframe at or after target, tolerating float rounding."""
    for t in sorted(times):
        if t + eps >= target:
            return t
    return None


def start_shift(in_seconds: float, nearest: Optional[float]) -> Optional[float]:
    """How much earlier than requested a lossless cut really starts."""
    if nearest is None:
        return None
    if nearest <= in_seconds:
        return max(in_seconds - nearest, 0.0)
    return 0.0


def end_shift(out_seconds: float, next_kf: Optional[float], eps: float = 1e-6) -> Optional[float]:
    """How far past the requested OUT the next keyframe sits."""
    if next_kf is None:
        return None
    if next_kf > out_seconds + eps:
        return max(next_kf - out_seconds, 0.0)
    return 0.0
