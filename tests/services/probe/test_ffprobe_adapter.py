import json
from pathlib import Path

import pytest

import clipwave.services.probe.ffprobe_adapter as mod
from conftest import spawn_outcome
from clipwave.common.errors import InspectionError
from clipwave.services.probe.ffprobe_adapter import FFprobeBackend


@pytest.fixture()
def calls(monkeypatch):
    """Queue canned outcomes for run_drained and record each invocation."""
    state = {"queue": [], "seen": []}

    def _fake(program, args, *, phase, cwd=None, on_stdout_line=None, stderr_limit=200):
        state["seen"].append((program, list(args), phase))
        return state["queue"].pop(0)

    monkeypatch.setattr(mod, "run_drained", _fake, raising=True)
    return state


def test_probe_duration(calls):
    calls["queue"].append(spawn_outcome(b"42.5\n"))
    ans = FFprobeBackend("/opt/ff/ffprobe").probe_duration(Path("/m.mp4"))
    assert ans.value == 42.5
    assert ans.runner == "direct"
    assert len(ans.spawns) == 1
    program, args, phase = calls["seen"][0]
    assert program == "/opt/ff/ffprobe"
    assert phase == "duration"
    assert args[-1] == "/m.mp4"


def test_probe_audio_and_subtitles(calls):
    audio = {"streams": [{"index": 3, "codec_type": "audio"}, {"index": 1, "codec_type": "audio"}]}
    subs = {"streams": [{"index": 2, "codec_type": "subtitle"}]}
    calls["queue"] += [spawn_outcome(json.dumps(audio).encode()), spawn_outcome(json.dumps(subs).encode())]

    be = FFprobeBackend("ffprobe")
    a = be.probe_audio(Path("m.mkv")).value
    s = be.probe_subtitles(Path("m.mkv")).value
    assert [(x.index, x.order) for x in a] == [(1, 0), (3, 1)]
    assert [(x.index, x.order) for x in s] == [(2, 0)]


def test_nonzero_exit_raises_with_stderr_head(calls):
    calls["queue"].append(spawn_outcome(rc=1, stderr=b"moov atom not found" + b"x" * 500))
    with pytest.raises(InspectionError) as ei:
        FFprobeBackend("ffprobe").probe_duration(Path("bad.mp4"))
    err = ei.value
    assert err.rc == 1
    assert err.stderr.startswith("moov atom not found")
    assert len(err.stderr) <= 200
    assert str(err).startswith("ffprobe failed: moov")


def test_keyframe_times_and_rotation(calls):
    frames = {"frames": [{"best_effort_timestamp_time": "4.0"}, {"best_effort_timestamp_time": "6.0"}]}
    rot = {"streams": [{"tags": {"rotate": "90"}}]}
    calls["queue"] += [spawn_outcome(json.dumps(frames).encode()), spawn_outcome(json.dumps(rot).encode())]

    be = FFprobeBackend("ffprobe")
    assert be.keyframe_times(Path("m.mp4"), 0.0, 60.0) == [4.0, 6.0]
    assert be.raw_rotation(Path("m.mp4")) == 90
    args = calls["seen"][0][1]
    assert args[args.index("-read_intervals") + 1] == "0.000000%60.000000"
