from __future__ import annotations
from enum import StrEnum


class TrimPhase(StrEnum):
    validating = "validating"
    resolving = "resolving"
    rotation_probe = "rotation_probe"
    building = "building"
    spawned = "spawned"
    draining = "draining"
    waited = "waited"
    validated = "validated"
    done = "done"
    failed = "failed"
