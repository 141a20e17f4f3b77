# clipwave/services/tools/checks.py
from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional

from clipwave.common.errors import ExecutionError, InspectionError
from clipwave.common.logging import get_logger
from clipwave.common.path.inputs import stable_working_dir
from clipwave.common.process.runner import run_drained
from clipwave.domain.dataclasses.reports import ToolCheckResult, WarmupResult
from clipwave.domain.enums.probe_runner import ProbeRunner
from clipwave.services.binaries.resolver import BinaryResolver
from clipwave.services.probe.ffprobe_adapter import FFprobeBackend

logger = get_logger(__name__)


def _version_error(exe: Path, name: str) -> Optional[str]:
    """Run `<exe> -version`; None when it works, else a short reason."""
    try:
        out = run_drained(exe, ["-version"], phase=f"{name}_version")
    except ExecutionError as e:
        return f"{name} not found" if e.not_found else f"Failed to run {name}: {e}"
    if out.ok:
        return None
    stderr = out.stderr.decode("utf-8", "replace").strip()
    return f"{name} failed: {stderr}" if stderr else f"{name} failed"


def check_tools(resolver: BinaryResolver, hint: str = "") -> ToolCheckResult:
    """
    Are both tools runnable? Never raises for a missing or broken executable;
    a bad hint directory still raises ConfigurationError.
    """
    resolver.validate_hint(hint)
    bins = resolver.resolve(hint)

    details: List[str] = []
    for exe, name in ((bins.ffmpeg, "ffmpeg"), (bins.ffprobe, "ffprobe")):
        err = _version_error(exe, name)
        if err:
            details.append(err)

    if not details:
        return ToolCheckResult(ok=True, message="FFmpeg detected.", bin_dir_used=bins.bin_dir_used)
    logger.info("tool check failed: %s", details)
    return ToolCheckResult(ok=False, message=" | ".join(details), bin_dir_used=bins.bin_dir_used)


def warm_inspector(resolver: BinaryResolver, hint: str = "") -> WarmupResult:
    """Run `ffprobe -version` once so the first real probe does not pay the cold start."""
    t0 = time.perf_counter()
    resolver.validate_hint(hint)
    bins = resolver.resolve(hint)
    try:
        FFprobeBackend(bins.ffprobe, cwd=stable_working_dir()).version()
    except InspectionError as e:
        raise InspectionError("ffprobe warmup failed", stderr=e.stderr, rc=e.rc) from e
    return WarmupResult(
        ffprobe_path=str(bins.ffprobe),
        runner=ProbeRunner.direct.value,
        ms=(time.perf_counter() - t0) * 1000.0,
    )


def detect_bin_dir(resolver: BinaryResolver, hint: str = "") -> str:
    """Directory the tools would be taken from; "" means PATH lookup."""
    resolver.validate_hint(hint)
    return resolver.resolve(hint).bin_dir_used
