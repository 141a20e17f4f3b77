from clipwave.domain.enums.probe_runner import ProbeRunner
from clipwave.domain.enums.trim_mode import TrimMode
from clipwave.domain.enums.trim_phase import TrimPhase
__all__ = [
    "ProbeRunner",
    "TrimMode",
    "TrimPhase",
]
