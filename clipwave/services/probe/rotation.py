# clipwave/services/probe/rotation.py
from __future__ import annotations

from pathlib import Path

from clipwave.common.errors import ClipwaveError
from clipwave.common.logging import get_logger
from clipwave.domain.policies.rotation import normalize_rotation
from clipwave.services.probe.ffprobe_adapter import FFprobeBackend

logger = get_logger(__name__)


class RotationDetector:
    """Display rotation of the first video stream; 0 whenever it cannot be read."""

    def __init__(self, ffprobe: FFprobeBackend):
        self.ffprobe = ffprobe

    def detect(self, path: Path | str) -> int:
        try:
            raw = self.ffprobe.raw_rotation(Path(path))
        except ClipwaveError as e:
            logger.debug("rotation probe failed for %s, assuming 0: %s", path, e)
            return 0
        return normalize_rotation(raw or 0)
