# tests/conftest.py
from __future__ import annotations
import sys
from pathlib import Path

import pytest

from clipwave.common import settings as s
from clipwave.common.settings import BinariesConfig
from clipwave.services.binaries.resolver import BinaryResolver


@pytest.fixture(autouse=True)
def _fresh_settings():
    s.get_settings.cache_clear()
    yield
    s.get_settings.cache_clear()


def make_bin_dir(root: Path, platform: str = sys.platform) -> Path:
    """A directory that looks like an ffmpeg install (empty placeholder files)."""
    root.mkdir(parents=True, exist_ok=True)
    suffix = ".exe" if platform.startswith("win") else ""
    for tool in ("ffmpeg", "ffprobe"):
        (root / f"{tool}{suffix}").write_bytes(b"")
    return root


@pytest.fixture()
def bin_dir(tmp_path) -> Path:
    return make_bin_dir(tmp_path / "ffbin")


@pytest.fixture()
def isolated_resolver(tmp_path) -> BinaryResolver:
    """Resolver that cannot see the real machine: no env vars, empty program dir."""
    prog = tmp_path / "prog"
    prog.mkdir()
    return BinaryResolver(BinariesConfig(), environ={}, program_dir=prog)


@pytest.fixture()
def media_file(tmp_path) -> Path:
    f = tmp_path / "movie.mp4"
    f.write_bytes(b"\x00" * 64)
    return f


def spawn_outcome(stdout: bytes = b"", *, rc: int = 0, stderr: bytes = b"", program: str = "ffprobe", args=()):
    """Stand-in for what run_drained returns, without a process."""
    from clipwave.common.process.runner import SpawnOutcome
    from clipwave.domain.dataclasses.probe import SpawnDebugInfo

    return SpawnOutcome(
        program=program,
        args=list(args),
        returncode=rc,
        stdout=stdout,
        stderr=stderr,
        execution_ms=1.0,
        debug=SpawnDebugInfo(phase="fake", program=program, args=list(args), exit_code=rc, success=rc == 0),
    )
