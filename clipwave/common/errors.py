# clipwave/common/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ClipwaveError(RuntimeError):
    """Base class for every caller-visible engine error."""
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ConfigurationError(ClipwaveError):
    """Bad binary directory hint or a missing executable."""
    path: Optional[str] = None


@dataclass(frozen=True)
class ValidationError(ClipwaveError):
    """Rejected request: missing input, bad time text or range, bad mode."""


@dataclass(frozen=True)
class ExecutionError(ClipwaveError):
    """The external program could not be started."""
    program: Optional[str] = None
    not_found: bool = False


@dataclass(frozen=True)
class _ToolFailure(ClipwaveError):
    stderr: Optional[str] = None
    rc: Optional[int] = None

    def __str__(self) -> str:
        tail = (self.stderr or "").strip()
        return f"{self.message}: {tail}" if tail else self.message


@dataclass(frozen=True)
class InspectionError(_ToolFailure):
    """ffprobe exited non-zero."""


@dataclass(frozen=True)
class EncodingError(_ToolFailure):
    """ffmpeg exited non-zero."""


@dataclass(frozen=True)
class ParseError(ClipwaveError):
    """ffprobe produced output we could not interpret."""
    raw: Optional[str] = None


@dataclass(frozen=True)
class CorruptOutputError(ClipwaveError):
    """Trim output was undersized; the file has already been removed."""
    path: Optional[str] = None
    size_bytes: int = 0
