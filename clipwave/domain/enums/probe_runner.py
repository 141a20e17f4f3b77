from __future__ import annotations
from enum import StrEnum


class ProbeRunner(StrEnum):
    direct = "direct"   # ffprobe subprocess
    native = "native"   # in-process platform media API
