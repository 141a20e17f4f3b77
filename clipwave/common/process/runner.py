# clipwave/common/process/runner.py
from __future__ import annotations

import queue
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, Dict, List, Optional, Sequence

from clipwave.common.errors import ExecutionError
from clipwave.common.logging import get_logger
from clipwave.common.probe.ffprobe_helpers import stderr_head
from clipwave.domain.dataclasses.probe import SpawnDebugInfo

logger = get_logger(__name__)

_CHUNK = 8192


@dataclass
class DrainMessage:
    """One per stream, sent when the stream closes (or its read fails)."""
    stream: str
    data: bytes
    first_byte_ms: Optional[float]
    error: Optional[str] = None


@dataclass
class SpawnOutcome:
    program: str
    args: List[str]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""
    spawn_ms: float = 0.0
    first_stdout_byte_ms: Optional[float] = None
    first_stderr_byte_ms: Optional[float] = None
    execution_ms: float = 0.0
    wait_ms: float = 0.0
    debug: SpawnDebugInfo = field(default_factory=lambda: SpawnDebugInfo(phase="", program=""))

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _ms_since(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000.0


def _discard(name: str, stream: IO[bytes]) -> None:
    """Keep reading after a failure so the child never blocks on a full pipe."""
    try:
        while stream.read(_CHUNK):
            pass
    except (OSError, ValueError) as e:
        logger.debug("%s: stopped discarding: %s", name, e)


def _drain_chunks(name: str, stream: IO[bytes], t0: float, out: "queue.Queue[DrainMessage]") -> None:
    buf = bytearray()
    first: Optional[float] = None
    try:
        while True:
            chunk = stream.read1(_CHUNK) if hasattr(stream, "read1") else stream.read(_CHUNK)
            if not chunk:
                break
            if first is None:
                first = _ms_since(t0)
            buf.extend(chunk)
    except (OSError, ValueError) as e:
        _discard(name, stream)
        out.put(DrainMessage(name, bytes(buf), first, f"Failed reading {name}: {e}"))
        return
    out.put(DrainMessage(name, bytes(buf), first))


def _drain_lines(
    name: str,
    stream: IO[bytes],
    t0: float,
    out: "queue.Queue[DrainMessage]",
    on_line: Callable[[str], None],
) -> None:
    buf = bytearray()
    first: Optional[float] = None
    callback_ok = True
    try:
        for raw in iter(stream.readline, b""):
            if first is None:
                first = _ms_since(t0)
            buf.extend(raw)
            if not callback_ok:
                continue
            try:
                on_line(raw.decode("utf-8", "replace").rstrip("\r\n"))
            except Exception:
                # the stream must still be read to the end
                callback_ok = False
                logger.exception("%s line callback failed; draining without it", name)
    except (OSError, ValueError) as e:
        _discard(name, stream)
        out.put(DrainMessage(name, bytes(buf), first, f"Failed reading {name}: {e}"))
        return
    out.put(DrainMessage(name, bytes(buf), first))


def run_drained(
    program: str | Path,
    args: Sequence[str],
    *,
    phase: str,
    cwd: Optional[Path] = None,
    on_stdout_line: Optional[Callable[[str], None]] = None,
    stderr_limit: int = 200,
) -> SpawnOutcome:
    """
    Spawn `program args`, draining stdout and stderr on two threads so a full
    pipe on one side can never block the child. The caller gets both buffers,
    the exit code, a timing breakdown and a debug record.

    When `on_stdout_line` is given stdout is read line by line and each line is
    handed to the callback from the drain thread.

    Raises ExecutionError if the program cannot be started. A non-zero exit is
    *not* raised here; callers map it to their own error type.
    """
    program_text = str(program)
    arg_list = [str(a) for a in args]
    cmd = [program_text, *arg_list]
    logger.debug("%s cmd: %s", phase, " ".join(shlex.quote(p) for p in cmd))

    t0 = time.perf_counter()
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except FileNotFoundError as e:
        name = Path(program_text).name
        raise ExecutionError(
            f"Failed to run {name}: program not found (set the FFmpeg bin folder or add {name} to PATH)",
            program=program_text,
            not_found=True,
        ) from e
    except OSError as e:
        raise ExecutionError(f"Failed to run {Path(program_text).name}: {e}", program=program_text) from e
    spawn_ms = _ms_since(t0)

    inbox: "queue.Queue[DrainMessage]" = queue.Queue()
    if on_stdout_line is not None:
        t_out = threading.Thread(
            target=_drain_lines, args=("stdout", proc.stdout, t0, inbox, on_stdout_line),
            name=f"{phase}-stdout", daemon=True,
        )
    else:
        t_out = threading.Thread(
            target=_drain_chunks, args=("stdout", proc.stdout, t0, inbox),
            name=f"{phase}-stdout", daemon=True,
        )
    t_err = threading.Thread(
        target=_drain_chunks, args=("stderr", proc.stderr, t0, inbox),
        name=f"{phase}-stderr", daemon=True,
    )
    t_out.start()
    t_err.start()

    t_wait = time.perf_counter()
    returncode = proc.wait()
    wait_ms = _ms_since(t_wait)

    # exactly one message per stream
    msgs: Dict[str, DrainMessage] = {}
    for _ in range(2):
        m = inbox.get()
        msgs[m.stream] = m
    for stream in (proc.stdout, proc.stderr):
        if stream is not None:
            stream.close()

    for name in ("stdout", "stderr"):
        if msgs[name].error:
            raise ExecutionError(msgs[name].error, program=program_text)

    out, err = msgs["stdout"], msgs["stderr"]
    execution_ms = _ms_since(t0)
    logger.debug(
        "%s rc=%s spawn=%.1fms first_out=%s exec=%.1fms wait=%.1fms",
        phase, returncode, spawn_ms, out.first_byte_ms, execution_ms, wait_ms,
    )

    debug = SpawnDebugInfo(
        phase=phase,
        program=program_text,
        args=arg_list,
        cwd=str(cwd) if cwd else "",
        program_exists=Path(program_text).exists(),
        exit_code=returncode,
        success=returncode == 0,
        stdout_len=len(out.data),
        stderr_len=len(err.data),
        stderr_head=stderr_head(err.data, stderr_limit),
    )
    return SpawnOutcome(
        program=program_text,
        args=arg_list,
        returncode=returncode,
        stdout=out.data,
        stderr=err.data,
        spawn_ms=spawn_ms,
        first_stdout_byte_ms=out.first_byte_ms,
        first_stderr_byte_ms=err.first_byte_ms,
        execution_ms=execution_ms,
        wait_ms=wait_ms,
        debug=debug,
    )
