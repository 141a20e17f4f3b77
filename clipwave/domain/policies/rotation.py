from __future__ import annotations

from typing import Dict, Optional

# Sources (phone footage especially) report rotation as counter-clockwise degrees.
# transpose=2 is 90° CCW, transpose=1 is 90° CW.
_FILTERS: Dict[int, str] = {
    90: "transpose=2",
    180: "hflip,vflip",
    270: "transpose=1",
}


def normalize_rotation(deg: int) -> int:
    """Fold into [0, 360); anything other than a right angle collapses to 0."""
    d = int(deg) % 360
    return d if d in (0, 90, 180, 270) else 0


def rotation_filter(deg: int) -> Optional[str]:
    return _FILTERS.get(normalize_rotation(deg))
