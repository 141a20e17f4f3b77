# clipwave/services/probe/cache.py
from __future__ import annotations

import threading
from typing import Dict, Optional

from clipwave.domain.entities.probe import MediaFingerprint, ProbeRecord, ProbeUpdate


class ProbeCache:
    """
    Process-lifetime store of partial probe results, one record per fingerprint.
    No eviction: it grows with the distinct files a session touches.

    Every access is a short critical section under one lock; never hold it
    across subprocess I/O.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, ProbeRecord] = {}

    def get(self, fp: MediaFingerprint) -> Optional[ProbeRecord]:
        with self._lock:
            return self._records.get(fp.key)

    def merge(self, fp: MediaFingerprint, update: ProbeUpdate) -> ProbeRecord:
        """Apply a partial update; parts absent from `update` are left untouched."""
        with self._lock:
            current = self._records.get(fp.key) or ProbeRecord(input_path=fp.path)
            merged = current.merge(update)
            self._records[fp.key] = merged
            return merged

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
