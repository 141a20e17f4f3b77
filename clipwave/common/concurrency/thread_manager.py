# clipwave/common/concurrency/thread_manager.py
from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from clipwave.common.logging import get_logger

R = TypeVar("R")

logger = get_logger(__name__)


class QueueFullError(RuntimeError):
    """Raised (on the returned Future) when the pool already holds `max_queue` tasks."""


@dataclass
class PoolStats:
    started_at: float
    submitted: int = 0
    completed: int = 0
    failed: int = 0
    last_error: Optional[str] = None

    @property
    def uptime_sec(self) -> float:
        return time.time() - self.started_at

    @property
    def in_flight(self) -> int:
        return max(0, self.submitted - self.completed - self.failed)


class ThreadManager:
    """
    Worker pool that keeps preflight, trim and warm-up work off the host's
    event thread.

    - `submit()` returns a Future holding the result or the raised error.
    - `max_queue` bounds outstanding tasks; past it `submit()` hands back a
      failed Future instead of blocking.
    - Failed tasks are logged once, from the done-callback.
    - `shutdown()` drops tasks that have not started. Running tasks (and any
      ffmpeg/ffprobe child they spawned) are never interrupted.
    """

    def __init__(
        self,
        name: str = "clipwave",
        max_workers: int = 2,
        max_queue: Optional[int] = None,
        log_exceptions: bool = True,
    ) -> None:
        self.name = name
        self._pool = ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix=name)
        self._max_queue = max_queue
        self._slots = threading.Semaphore(max_queue) if max_queue and max_queue > 0 else None
        self._log_exceptions = log_exceptions
        self._lock = threading.Lock()
        self._stats = PoolStats(started_at=time.time())
        self._closed = False

    # ---- lifecycle ----------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> "ThreadManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)

    def stats(self) -> PoolStats:
        """Copy of the counters; safe to read from any thread."""
        with self._lock:
            s = self._stats
            return PoolStats(
                started_at=s.started_at,
                submitted=s.submitted,
                completed=s.completed,
                failed=s.failed,
                last_error=s.last_error,
            )

    # ---- submission -----------------------------------------------------------------
    def submit(self, fn: Callable[..., R], /, *args, **kwargs) -> Future[R]:
        """
        Never blocks the caller. When `max_queue` tasks are already outstanding
        the returned Future is failed with QueueFullError.
        """
        if self._closed:
            raise RuntimeError(f"{self.name}: submit() after shutdown")

        if self._slots is not None and not self._slots.acquire(blocking=False):
            return self._rejected()
        try:
            fut: Future[R] = self._pool.submit(fn, *args, **kwargs)
        except RuntimeError:
            # pool shut down between the check above and here
            if self._slots is not None:
                self._slots.release()
            raise

        with self._lock:
            self._stats.submitted += 1
        fut.add_done_callback(self._on_done)
        return fut

    def _rejected(self) -> Future:
        err = QueueFullError(f"{self.name}: busy, {self._max_queue} tasks already queued; try again shortly")
        with self._lock:
            self._stats.submitted += 1
            self._stats.failed += 1
            self._stats.last_error = str(err)
        logger.warning("%s", err)
        fut: Future = Future()
        fut.set_exception(err)
        return fut

    def _on_done(self, fut: Future) -> None:
        if self._slots is not None:
            self._slots.release()

        exc = None if fut.cancelled() else fut.exception()
        with self._lock:
            if fut.cancelled() or exc is not None:
                self._stats.failed += 1
                self._stats.last_error = "cancelled" if exc is None else str(exc)
            else:
                self._stats.completed += 1

        if exc is not None and self._log_exceptions:
            logger.error("%s task failed: %s", self.name, exc, exc_info=exc)
