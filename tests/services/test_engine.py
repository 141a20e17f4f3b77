import json
import threading

import pytest

import clipwave.services.probe.ffprobe_adapter as ff_mod
from conftest import spawn_outcome
from clipwave.common.errors import ValidationError
from clipwave.common.settings import Settings
from clipwave.domain.dataclasses.reports import TrimResult
from clipwave.domain.ports.probe import NOT_AVAILABLE
from clipwave.services.engine import ClipEngine


class _NoNative:
    name = "none"

    def probe_duration(self, path):
        return NOT_AVAILABLE

    def probe_audio(self, path):
        return NOT_AVAILABLE

    def probe_subtitles(self, path):
        return NOT_AVAILABLE


@pytest.fixture()
def engine(isolated_resolver):
    eng = ClipEngine(Settings(), resolver=isolated_resolver, native=_NoNative())
    yield eng
    eng.close()


def test_probe_duration_through_ffprobe(monkeypatch, engine, media_file):
    monkeypatch.setattr(ff_mod, "run_drained", lambda *a, **kw: spawn_outcome(b"7.25\n"), raising=True)
    res = engine.probe_duration(str(media_file))
    assert res.duration_seconds == 7.25
    assert res.runner == "direct"
    assert engine.probe_duration(str(media_file)).timing_ms.cache_hit is True
    assert len(engine.cache) == 1


def test_submit_preflight(monkeypatch, engine, media_file):
    frames = {"frames": [{"best_effort_timestamp_time": t} for t in ("0.0", "4.0", "6.0", "12.0")]}

    def _run(program, args, **kw):
        start, end = (float(x) for x in args[args.index("-read_intervals") + 1].split("%"))
        hits = [f for f in frames["frames"] if start <= float(f["best_effort_timestamp_time"]) <= end]
        return spawn_outcome(json.dumps({"frames": hits}).encode())

    monkeypatch.setattr(ff_mod, "run_drained", _run, raising=True)
    res = engine.submit_preflight(str(media_file), "00:00:05", "00:00:10").result(timeout=10)
    assert res.nearest_keyframe_seconds == 4.0
    assert res.start_shift_seconds == pytest.approx(1.0)
    assert res.out_next_keyframe_seconds == 12.0
    assert res.end_shift_seconds == pytest.approx(2.0)


def test_submit_trim_runs_on_worker(monkeypatch, engine, media_file):
    seen = {}

    def _trim(req):
        seen["thread"] = threading.current_thread().name
        seen["req"] = req
        return TrimResult(output_path="out.mp4", requested_duration_seconds=1.0)

    monkeypatch.setattr(engine.trimmer, "trim", _trim)
    fut = engine.submit_trim(str(media_file), "00:00:00", "00:00:01", "exact", 0, -1)
    assert fut.result(timeout=10).output_path == "out.mp4"
    assert seen["thread"] != threading.current_thread().name
    assert seen["req"].mode == "exact"
    assert seen["req"].audio_order == 0


def test_trim_errors_arrive_on_future(engine, media_file):
    fut = engine.submit_trim(str(media_file), "00:00:02", "00:00:01", "lossless")
    with pytest.raises(ValidationError, match="OUT must be greater than IN"):
        fut.result(timeout=10)


def test_configured_hint_is_default(tmp_path, isolated_resolver, bin_dir):
    cfg = Settings(ffmpeg_bin_dir=str(bin_dir))
    with ClipEngine(cfg, resolver=isolated_resolver, native=_NoNative()) as eng:
        assert eng.detect_bin_dir() == str(bin_dir)
        assert eng.detect_bin_dir("") == ""


def test_prewarm_failure_stays_in_future(monkeypatch, engine):
    def _boom(*a, **kw):
        raise OSError("no exec")

    monkeypatch.setattr(ff_mod, "run_drained", _boom, raising=True)
    fut = engine.prewarm()
    with pytest.raises(OSError):
        fut.result(timeout=10)
