import threading

from clipwave.domain.entities.probe import AudioStream, MediaFingerprint, ProbeUpdate
from clipwave.services.probe.cache import ProbeCache


def test_merge_creates_and_accumulates():
    cache = ProbeCache()
    fp = MediaFingerprint(path="/a.mp4", size_bytes=10, mtime=1.0)
    assert cache.get(fp) is None

    cache.merge(fp, ProbeUpdate(has_duration=True, duration_seconds=3.0))
    rec = cache.merge(fp, ProbeUpdate(has_tracks=True, audio_streams=(AudioStream(0, 1),)))

    assert rec.input_path == "/a.mp4"
    assert rec.has_duration and rec.duration_seconds == 3.0
    assert rec.has_tracks
    assert cache.get(fp) == rec
    assert len(cache) == 1


def test_changed_file_is_a_different_entry():
    cache = ProbeCache()
    old = MediaFingerprint(path="/a.mp4", size_bytes=10, mtime=1.0)
    new = MediaFingerprint(path="/a.mp4", size_bytes=11, mtime=2.0)
    cache.merge(old, ProbeUpdate(has_duration=True, duration_seconds=3.0))
    assert cache.get(new) is None
    cache.clear()
    assert len(cache) == 0


def test_concurrent_merges_do_not_lose_parts():
    cache = ProbeCache()
    fps = [MediaFingerprint(path=f"/f{i}.mp4") for i in range(20)]
    updates = [
        ProbeUpdate(has_duration=True, duration_seconds=1.0),
        ProbeUpdate(has_tracks=True),
        ProbeUpdate(has_subtitles=True),
    ]

    def work(upd):
        for fp in fps:
            cache.merge(fp, upd)

    threads = [threading.Thread(target=work, args=(u,)) for u in updates]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for fp in fps:
        rec = cache.get(fp)
        assert rec.has_duration and rec.has_tracks and rec.has_subtitles
