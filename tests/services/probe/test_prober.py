from pathlib import Path

import pytest

from conftest import spawn_outcome
from clipwave.common.errors import ConfigurationError, ValidationError
from clipwave.common.settings import ProbeConfig, Settings
from clipwave.domain.entities.probe import AudioStream, SubtitleStream
from clipwave.domain.ports.probe import NOT_AVAILABLE, BackendAnswer
from clipwave.services.probe.cache import ProbeCache
from clipwave.services.probe.prober import Prober

A1 = AudioStream(order=0, index=1, codec_name="aac")
A3 = AudioStream(order=1, index=3, codec_name="ac3")
S2 = SubtitleStream(order=0, index=2, codec_name="subrip")


class _FakeNative:
    name = "fake-native"

    def __init__(self, duration=None, audio=None):
        self.duration = duration
        self.audio = audio
        self.calls = []

    def probe_duration(self, path: Path):
        self.calls.append("duration")
        if self.duration is None:
            return NOT_AVAILABLE
        return BackendAnswer(value=self.duration, runner="native", elapsed_ms=0.5)

    def probe_audio(self, path: Path):
        self.calls.append("audio")
        if self.audio is None:
            return NOT_AVAILABLE
        return BackendAnswer(value=list(self.audio), runner="native", elapsed_ms=0.5)

    def probe_subtitles(self, path: Path):
        self.calls.append("subtitles")
        return NOT_AVAILABLE


class _FakeFFprobe:
    name = "ffprobe"

    def __init__(self):
        self.calls = []

    def _ans(self, value, phase):
        self.calls.append(phase)
        return BackendAnswer(value=value, runner="direct", elapsed_ms=2.0,
                             spawns=[spawn_outcome(args=["-v", "error", phase])])

    def probe_duration(self, path: Path):
        return self._ans(90.0, "duration")

    def probe_audio(self, path: Path):
        return self._ans([A1, A3], "audio")

    def probe_subtitles(self, path: Path):
        return self._ans([S2], "subtitles")

    def probe_media(self, path: Path):
        return self._ans((90.0, [A1, A3], [S2]), "media")


@pytest.fixture()
def ff():
    return _FakeFFprobe()


def _prober(resolver, ff, native=None) -> Prober:
    cfg = Settings(probe=ProbeConfig(native_enabled=False))
    return Prober(ProbeCache(), resolver, settings=cfg, native=native, ffprobe_factory=lambda exe, cwd: ff)


def test_duration_prefers_native_and_caches(isolated_resolver, media_file, bin_dir, ff):
    native = _FakeNative(duration=12.0)
    p = _prober(isolated_resolver, ff, native)

    first = p.probe_duration(str(media_file), str(bin_dir))
    assert first.duration_seconds == 12.0
    assert first.runner == "native"
    assert first.ffprobe_path.startswith(str(bin_dir))
    assert first.bin_dir_used == str(bin_dir)
    assert first.timing_ms.cache_hit is False
    assert ff.calls == []

    again = p.probe_duration(str(media_file), str(bin_dir))
    assert again.timing_ms.cache_hit is True
    assert again.duration_seconds == 12.0
    assert again.runner == "native"
    assert native.calls == ["duration"]


def test_duration_falls_through_to_ffprobe(isolated_resolver, media_file, ff):
    p = _prober(isolated_resolver, ff, _FakeNative())
    res = p.probe_duration(str(media_file))
    assert res.duration_seconds == 90.0
    assert res.runner == "direct"
    assert res.ffprobe_args == ["-v", "error", "duration"]
    assert res.debug is not None and res.debug.success
    assert res.bin_dir_used == ""
    assert ff.calls == ["duration"]


def test_tracks_via_ffprobe_fill_subtitles_too(isolated_resolver, media_file, ff):
    p = _prober(isolated_resolver, ff)
    res = p.probe_tracks(str(media_file))
    assert res.audio_streams == [A1, A3]
    assert res.subtitle_streams == [S2]
    assert len(res.debug) == 2
    assert ff.calls == ["audio", "subtitles"]

    subs = p.probe_subtitles(str(media_file))
    assert subs.timing_ms.cache_hit is True
    assert subs.subtitle_streams == [S2]
    assert ff.calls == ["audio", "subtitles"]


def test_native_tracks_do_not_claim_subtitles(isolated_resolver, media_file, ff):
    native_audio = [AudioStream(order=0, index=-1, codec_name="aac")]
    p = _prober(isolated_resolver, ff, _FakeNative(audio=native_audio))

    res = p.probe_tracks(str(media_file))
    assert res.runner == "native"
    assert res.audio_streams == native_audio
    assert res.subtitle_streams == []

    # subtitles were never probed, so this goes to ffprobe
    subs = p.probe_subtitles(str(media_file))
    assert subs.timing_ms.cache_hit is False
    assert subs.subtitle_streams == [S2]
    assert ff.calls == ["subtitles"]


def test_native_tracks_reuse_cached_subtitles(isolated_resolver, media_file, ff):
    p = _prober(isolated_resolver, ff, _FakeNative(audio=[AudioStream(order=0, index=-1)]))
    p.probe_subtitles(str(media_file))
    res = p.probe_tracks(str(media_file))
    assert res.subtitle_streams == [S2]


def test_probe_media_fills_everything(isolated_resolver, media_file, ff):
    p = _prober(isolated_resolver, ff)
    res = p.probe_media(str(media_file))
    assert res.duration_seconds == 90.0
    assert res.audio_streams == [A1, A3]
    assert res.subtitle_streams == [S2]

    assert p.probe_duration(str(media_file)).timing_ms.cache_hit is True
    assert p.probe_tracks(str(media_file)).timing_ms.cache_hit is True
    assert p.probe_media(str(media_file)).timing_ms.cache_hit is True
    assert ff.calls == ["media"]


def test_partial_record_does_not_satisfy_probe_media(isolated_resolver, media_file, ff):
    p = _prober(isolated_resolver, ff)
    p.probe_duration(str(media_file))
    assert p.probe_media(str(media_file)).timing_ms.cache_hit is False
    assert ff.calls == ["duration", "media"]


def test_file_url_input(isolated_resolver, media_file, ff):
    p = _prober(isolated_resolver, ff)
    res = p.probe_duration(media_file.as_uri())
    assert Path(res.input_path) == media_file


def test_validation_happens_before_any_backend(isolated_resolver, tmp_path, ff):
    native = _FakeNative(duration=1.0)
    p = _prober(isolated_resolver, ff, native)
    with pytest.raises(ValidationError):
        p.probe_duration(str(tmp_path / "missing.mp4"))
    with pytest.raises(ValidationError):
        p.probe_duration(str(tmp_path), "")  # a directory is not a file
    assert native.calls == [] and ff.calls == []


def test_bad_hint_is_configuration_error(isolated_resolver, media_file, tmp_path, ff):
    p = _prober(isolated_resolver, ff)
    with pytest.raises(ConfigurationError):
        p.probe_tracks(str(media_file), str(tmp_path / "no-bin"))
