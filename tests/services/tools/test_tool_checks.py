from pathlib import Path

import pytest

import clipwave.services.probe.ffprobe_adapter as ff_mod
import clipwave.services.tools.checks as checks_mod
from conftest import spawn_outcome
from clipwave.common.errors import ExecutionError, InspectionError
from clipwave.services.tools.checks import check_tools, detect_bin_dir, warm_inspector


def _fake_runner(results):
    """results: tool name -> SpawnOutcome or exception."""
    seen = []

    def _run(program, args, *, phase, cwd=None, on_stdout_line=None, stderr_limit=200):
        seen.append((Path(program).name, list(args)))
        res = results[Path(program).stem]
        if isinstance(res, Exception):
            raise res
        return res

    _run.seen = seen
    return _run


def test_check_tools_ok(monkeypatch, isolated_resolver, bin_dir):
    run = _fake_runner({"ffmpeg": spawn_outcome(), "ffprobe": spawn_outcome()})
    monkeypatch.setattr(checks_mod, "run_drained", run, raising=True)

    res = check_tools(isolated_resolver, str(bin_dir))
    assert res.ok is True
    assert res.message == "FFmpeg detected."
    assert res.bin_dir_used == str(bin_dir)
    assert [a for _, a in run.seen] == [["-version"], ["-version"]]


def test_check_tools_collects_failures(monkeypatch, isolated_resolver):
    run = _fake_runner({
        "ffmpeg": ExecutionError("Failed to run ffmpeg: program not found", not_found=True),
        "ffprobe": spawn_outcome(rc=1, stderr=b"bad build\n"),
    })
    monkeypatch.setattr(checks_mod, "run_drained", run, raising=True)

    res = check_tools(isolated_resolver, "")
    assert res.ok is False
    assert res.message == "ffmpeg not found | ffprobe failed: bad build"
    assert res.as_dict() == {"ok": False, "message": res.message, "bin_dir_used": ""}


def test_warm_inspector(monkeypatch, isolated_resolver, bin_dir):
    run = _fake_runner({"ffprobe": spawn_outcome()})
    monkeypatch.setattr(ff_mod, "run_drained", run, raising=True)

    res = warm_inspector(isolated_resolver, str(bin_dir))
    assert res.runner == "direct"
    assert run.seen == [(Path(res.ffprobe_path).name, ["-version"])]
    assert res.ffprobe_path.startswith(str(bin_dir))
    assert res.ms >= 0.0


def test_warm_inspector_failure(monkeypatch, isolated_resolver):
    run = _fake_runner({"ffprobe": spawn_outcome(rc=1, stderr=b"bad build\n")})
    monkeypatch.setattr(ff_mod, "run_drained", run, raising=True)
    with pytest.raises(InspectionError, match="warmup failed") as ei:
        warm_inspector(isolated_resolver, "")
    assert ei.value.rc == 1
    assert ei.value.stderr == "bad build"


def test_detect_bin_dir(isolated_resolver, bin_dir):
    assert detect_bin_dir(isolated_resolver, str(bin_dir)) == str(bin_dir)
    assert detect_bin_dir(isolated_resolver, "") == ""
