"""
Tests for the watch history store and entry helpers
"""
import json

from conftest import FakeClock

from streamhub.models.addon import Stream, StreamBehaviorHints
from streamhub.models.history import ProgressUnit, WatchHistoryEntry
from streamhub.services.history import WatchHistoryStore, pick_binge_stream


def movie(meta_id: str, position: float = 600.0, duration: float = 7200.0) -> WatchHistoryEntry:
    return WatchHistoryEntry(
        meta_id=meta_id, meta_type="movie", video_id=meta_id,
        title=meta_id, position=position, duration=duration,
    )


def episode(meta_id: str, season: int, number: int, position: float = 600.0) -> WatchHistoryEntry:
    return WatchHistoryEntry(
        meta_id=meta_id, meta_type="series", video_id=f"{meta_id}:{season}:{number}",
        title=f"Episode {number}", series_title=meta_id, season=season, episode=number,
        position=position, duration=2700.0,
    )


def keys(entries):
    return [entry.video_id for entry in entries]


def test_upsert_new_entry_goes_to_front(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", clock=clock)
    store.upsert(movie("tt1"))
    clock.advance(10)
    stored = store.upsert(movie("tt2"))

    assert len(store) == 2
    assert keys(store.all_history()) == ["tt2", "tt1"]
    assert stored.last_watched == int(clock.now)


def test_upsert_existing_replaces_and_moves_to_front(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", clock=clock)
    for meta_id in ("tt1", "tt2", "tt3"):
        store.upsert(movie(meta_id))
        clock.advance(1)

    store.upsert(movie("tt1", position=1200.0))

    assert len(store) == 3
    assert keys(store.all_history()) == ["tt1", "tt3", "tt2"]
    assert store.get_entry("tt1", "tt1").position == 1200.0


def test_upsert_caps_store_evicting_oldest(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", max_entries=3, clock=clock)
    for meta_id in ("tt1", "tt2", "tt3", "tt4"):
        store.upsert(movie(meta_id))
        clock.advance(1)

    assert keys(store.all_history()) == ["tt4", "tt3", "tt2"]
    assert store.get_entry("tt1", "tt1") is None


def test_update_position_touches_existing_only(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", clock=clock)
    store.upsert(movie("tt1"))
    store.upsert(movie("tt2"))
    saved = (tmp_path / "history.json").read_text()
    clock.advance(30)

    assert store.update_position("tt1", "tt1", 900.0, 0.0)
    assert not store.update_position("tt9", "tt9", 900.0, 7200.0)

    entry = store.get_entry("tt1", "tt1")
    assert entry.position == 900.0
    assert entry.duration == 7200.0
    assert entry.last_watched == int(clock.now)
    # No reordering and no save
    assert keys(store.all_history()) == ["tt2", "tt1"]
    assert (tmp_path / "history.json").read_text() == saved


def test_remove_entry_and_series(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", clock=clock)
    store.upsert(episode("tt0903747", 1, 1))
    store.upsert(episode("tt0903747", 1, 2))
    store.upsert(movie("tt0137523"))

    assert store.remove_entry("tt0137523", "tt0137523")
    assert not store.remove_entry("tt0137523", "tt0137523")
    assert store.remove_series("tt0903747") == 2
    assert len(store) == 0


def test_clear_and_notify(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", clock=clock)
    notified = []
    store.on_change(lambda: notified.append(len(store)))

    store.upsert(movie("tt1"))
    store.clear()

    assert notified == [1, 0]
    assert json.loads((tmp_path / "history.json").read_text()) == []


def test_latest_for_series(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", clock=clock)
    store.upsert(episode("tt0903747", 1, 1))
    clock.advance(100)
    store.upsert(episode("tt0903747", 1, 2))

    assert store.latest_for_series("tt0903747").episode == 2
    assert store.latest_for_series("tt0000000") is None


def test_continue_watching_one_per_series(tmp_path, clock):
    store = WatchHistoryStore(tmp_path / "history.json", clock=clock)
    store.upsert(episode("tt0903747", 1, 1))
    clock.advance(1)
    store.upsert(movie("tt0137523", position=10.0))  # not started
    clock.advance(1)
    store.upsert(movie("tt0468569", position=7000.0))  # finished
    clock.advance(1)
    store.upsert(episode("tt0903747", 1, 2))
    clock.advance(1)
    store.upsert(movie("tt0111161"))

    assert keys(store.continue_watching()) == ["tt0111161", "tt0903747:1:2"]
    assert keys(store.continue_watching(limit=1)) == ["tt0111161"]


def test_persistence_round_trip(tmp_path, clock):
    path = tmp_path / "history.json"
    store = WatchHistoryStore(path, clock=clock)
    store.upsert(movie("tt1"))
    clock.advance(5)
    store.upsert(episode("tt0903747", 2, 5).model_copy(update={"binge_group": "torrentio|1080p"}))

    records = json.loads(path.read_text())
    assert records[0]["video_id"] == "tt0903747:2:5"
    assert records[0]["binge_group"] == "torrentio|1080p"
    assert "series_title" not in records[1]
    assert "unit" not in records[0]

    reloaded = WatchHistoryStore(path, clock=clock)
    reloaded.load()
    assert reloaded.all_history() == store.all_history()


def test_load_skips_invalid_and_sorts(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps([
        {"meta_id": "tt1", "video_id": "tt1", "position": 100, "duration": 200, "last_watched": 10},
        {"meta_id": "", "video_id": "tt2", "last_watched": 99},
        {"meta_id": "tt3", "last_watched": 99},
        "junk",
        {"meta_id": "tt4", "video_id": "tt4", "position": "far", "last_watched": 50},
        {"meta_id": "tt5", "video_id": "tt5", "last_watched": 20},
    ]))

    store = WatchHistoryStore(path, clock=FakeClock())
    store.load()

    assert keys(store.all_history()) == ["tt5", "tt1"]


def test_resumable_thresholds():
    assert not movie("tt1", position=30.0).is_resumable()
    assert movie("tt1", position=31.0).is_resumable()
    assert not movie("tt1", position=6480.0).is_resumable()  # exactly 90%
    assert movie("tt1", position=6479.0).is_resumable()
    assert not movie("tt1", position=0.0, duration=0.0).is_resumable()


def test_short_local_video_uses_seconds():
    """A 100 second local video is not mistaken for a percentage entry"""
    entry = movie("tt1", position=20.0, duration=100.0)

    assert entry.unit == ProgressUnit.SECONDS
    assert not entry.is_resumable()
    assert entry.progress_string() == "0:20 / 1:40"


def test_percent_entries():
    entry = WatchHistoryEntry(
        meta_id="tt1", video_id="tt1", position=12.5, duration=100.0, unit=ProgressUnit.PERCENT,
    )

    assert entry.is_resumable()
    assert entry.progress == 0.125
    assert entry.progress_string() == "12%"
    assert entry.remaining_string() == "88% left"


def test_progress_strings():
    entry = movie("tt1", position=5025.0, duration=7200.0)
    assert entry.progress_string() == "1:23:45 / 2:00:00"
    assert entry.remaining_string() == "36m left"

    assert movie("tt1", position=0.0, duration=3900.0).remaining_string() == "1h 5m left"
    assert movie("tt1", position=7170.0).remaining_string() == "< 1m left"
    assert movie("tt1", position=7200.0).remaining_string() == "Finished"


def test_pick_binge_stream():
    streams = [
        Stream(url="https://a.example/720.mp4", behaviorHints=StreamBehaviorHints(bingeGroup="a|720p")),
        Stream(infoHash="f" * 40, behaviorHints=StreamBehaviorHints(bingeGroup="torrentio|1080p")),
        Stream(url="https://b.example/1080.mp4"),
    ]

    assert pick_binge_stream(streams, "torrentio|1080p") is streams[1]
    assert pick_binge_stream(streams, "other") is None
    assert pick_binge_stream(streams, None) is None
