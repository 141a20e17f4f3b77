from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Generic, List, Optional, Protocol, TypeVar, Union

from clipwave.domain.entities.probe import AudioStream, SubtitleStream

if TYPE_CHECKING:
    from clipwave.common.process.runner import SpawnOutcome

T = TypeVar("T")


class NotAvailable:
    """
    Returned by a backend that cannot answer for this file or platform.
    Distinct from an exception: the dispatcher simply tries the next backend.
    """
    _instance: Optional["NotAvailable"] = None

    def __new__(cls) -> "NotAvailable":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_AVAILABLE"

    def __bool__(self) -> bool:
        return False


NOT_AVAILABLE = NotAvailable()


@dataclass
class BackendAnswer(Generic[T]):
    """A backend's answer plus what it cost: elapsed time and any spawned processes."""
    value: T
    runner: str
    elapsed_ms: float = 0.0
    spawns: List["SpawnOutcome"] = field(default_factory=list)


BackendOutcome = Union[BackendAnswer[T], NotAvailable]


class MetadataBackend(Protocol):
    name: str

    def probe_duration(self, path: Path) -> BackendOutcome[Optional[float]]: ...

    def probe_audio(self, path: Path) -> BackendOutcome[List[AudioStream]]: ...

    def probe_subtitles(self, path: Path) -> BackendOutcome[List[SubtitleStream]]: ...
