from clipwave.domain.entities.probe import (
    AudioStream,
    MediaFingerprint,
    ProbeRecord,
    ProbeUpdate,
    SubtitleStream,
    assign_orders,
)


def test_merge_is_non_destructive():
    a = AudioStream(order=0, index=1, codec_name="aac")
    rec = ProbeRecord(input_path="/x.mp4")

    rec = rec.merge(ProbeUpdate(has_duration=True, duration_seconds=12.5, runner="native"))
    rec = rec.merge(ProbeUpdate(has_tracks=True, audio_streams=(a,), runner="direct"))

    assert rec.has_duration and rec.duration_seconds == 12.5
    assert rec.has_tracks and rec.audio_streams == (a,)
    assert rec.has_subtitles is False
    assert rec.runner == "direct"
    assert rec.input_path == "/x.mp4"


def test_merge_without_changes_returns_same_record():
    rec = ProbeRecord(input_path="/x.mp4")
    assert rec.merge(ProbeUpdate()) is rec


def test_subtitle_merge_keeps_tracks():
    s = SubtitleStream(order=0, index=2)
    rec = ProbeRecord(has_tracks=True, audio_streams=(AudioStream(0, 1),))
    rec = rec.merge(ProbeUpdate(has_subtitles=True, subtitle_streams=(s,)))
    assert rec.audio_streams == (AudioStream(0, 1),)
    assert rec.subtitle_streams == (s,)


def test_fingerprint_key(tmp_path):
    f = tmp_path / "a.mkv"
    f.write_bytes(b"12345")
    fp = MediaFingerprint.from_path(f)
    assert fp.size_bytes == 5
    assert fp.key.startswith(f"{f}|5|")

    missing = MediaFingerprint.from_path(tmp_path / "gone.mkv")
    assert missing.key == str(tmp_path / "gone.mkv")


def test_fingerprint_changes_when_file_changes(tmp_path):
    f = tmp_path / "a.mkv"
    f.write_bytes(b"1")
    before = MediaFingerprint.from_path(f).key
    f.write_bytes(b"12")
    assert MediaFingerprint.from_path(f).key != before


def test_assign_orders_dense():
    rows = assign_orders([{"index": 7}, {"index": 2}, {"index": 5}])
    assert [(r["index"], r["order"]) for r in rows] == [(2, 0), (5, 1), (7, 2)]
