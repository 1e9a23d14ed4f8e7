import math

import pytest

from sceneforge.timeline_engine.models import (
    PlaybackState,
    TimelineConfig,
    TimelineItem,
    Track,
)
from sceneforge.timeline_engine.service import (
    TimelineEngineService,
    get_timeline_engine_service,
    set_timeline_engine_service,
)
from sceneforge.timeline_engine.timecode import MAX_DURATION_SECONDS


def _items(*durations, prefix=""):
    return [
        TimelineItem(id=f"{prefix}{chr(ord('a') + i)}", duration_seconds=d)
        for i, d in enumerate(durations)
    ]


@pytest.fixture
def svc():
    return TimelineEngineService(TimelineConfig())


@pytest.fixture
def two_track_state(svc):
    # v1 totals 30s, v2 totals 45s
    return svc.create_state(tracks=[
        Track(track_id="v1", items=_items(10, 20)),
        Track(track_id="v2", items=_items(45, prefix="x")),
    ])


def test_total_duration_is_longest_track(svc, two_track_state):
    assert svc.total_duration(two_track_state) == 45
    assert two_track_state.current_item_id == "a"


def test_layout_is_cached_until_inputs_change(svc, two_track_state):
    first = svc.layout(two_track_state)
    assert svc.layout(two_track_state) == first
    assert list(svc._cache) == [first.key]

    svc.set_zoom(two_track_state, 2)
    zoomed = svc.layout(two_track_state)
    assert zoomed.key != first.key
    assert zoomed.scale == 0.5
    assert len(svc._cache) == 2

    svc.invalidate_cache()
    assert svc._cache == {}
    assert svc.layout(two_track_state) == zoomed


def test_layout_mutation_does_not_leak_into_cache(svc, two_track_state):
    layout = svc.layout(two_track_state)
    layout.tracks.clear()
    layout.ticks.clear()
    layout.total_duration = -1

    fresh = svc.layout(two_track_state)
    assert fresh is not layout
    assert [t.track_id for t in fresh.tracks] == ["v1", "v2"]
    assert fresh.ticks
    assert fresh.total_duration == 45
    assert svc.total_duration(two_track_state) == 45


def test_cache_is_bounded():
    svc = TimelineEngineService(TimelineConfig(layout_cache_size=2))
    state = svc.create_state(tracks=[Track(track_id="v1", items=_items(5))])
    for zoom in (1, 2, 4, 8):
        svc.set_zoom(state, zoom)
        svc.layout(state)
    assert len(svc._cache) == 2


def test_seek_past_end_clamps_and_selects_last(svc):
    state = svc.create_state(tracks=[Track(track_id="v1", items=_items(20, 30))])
    update = svc.seek(state, 100)
    assert update.current_time_seconds == 50
    assert update.current_item_id == "b"
    assert update.item_changed is True


def test_playback_notifies_only_on_item_change(svc):
    state = svc.create_state(tracks=[Track(track_id="v1", items=_items(5, 3, 2))])
    assert state.current_item_id == "a"

    svc.play(state)
    changes = []
    while state.playhead.state == PlaybackState.PLAYING:
        update = svc.tick(state, 1.0)
        if update.item_changed:
            changes.append(update.current_item_id)

    assert changes == ["b", "c"]
    assert state.playhead.current_time_seconds == 10
    assert state.playhead.state == PlaybackState.STOPPED


def test_replacing_items_reclamps_playhead(svc, two_track_state):
    svc.seek(two_track_state, 40)
    svc.set_items(two_track_state, [TimelineItem(id="y", duration_seconds=5, track_id="v2")])

    assert [i.id for i in two_track_state.get_track("v2").items] == ["y"]
    assert svc.total_duration(two_track_state) == 30
    assert two_track_state.playhead.current_time_seconds == 30


def test_set_items_without_track_goes_to_active_track(svc, two_track_state):
    two_track_state.active_track_id = "v2"
    svc.set_items(two_track_state, _items(7, prefix="n"))
    assert [i.id for i in two_track_state.get_track("v2").items] == ["na"]
    assert two_track_state.get_track("v2").items[0].track_id == "v2"


def test_set_items_creates_missing_track(svc):
    state = svc.create_state()
    svc.set_track_items(state, "v3", _items(12))
    assert state.get_track("v3").items[0].duration_seconds == 12
    assert svc.total_duration(state) == 12


def test_invalid_durations_get_defaults(svc):
    state = svc.create_state(tracks=[
        Track(track_id="v1", items=_items(0, None)),
        Track(track_id="v2", items=_items(-3, prefix="g"), default_duration_seconds=8),
    ])
    assert [i.duration_seconds for i in state.get_track("v1").items] == [5, 5]
    assert state.get_track("v2").items[0].duration_seconds == 8


def test_reorder_changes_current_item(svc):
    state = svc.create_state(tracks=[Track(track_id="v1", items=_items(5, 3, 2))])
    svc.reorder(state, "v1", 2, 0)
    assert [i.id for i in state.get_track("v1").items] == ["c", "a", "b"]
    assert state.current_item_id == "c"

    # unknown track and out-of-range indices are ignored
    svc.reorder(state, "nope", 0, 1)
    svc.reorder(state, "v1", 0, 9)
    assert [i.id for i in state.get_track("v1").items] == ["c", "a", "b"]


def test_invalid_zoom_clamped(svc, two_track_state):
    svc.set_zoom(two_track_state, -3)
    assert two_track_state.zoom_level == 0.1
    assert svc.layout(two_track_state).scale == 10


def test_zoom_in_and_out(svc, two_track_state):
    svc.zoom_in(two_track_state)
    assert two_track_state.zoom_level == 2
    svc.zoom_out(two_track_state)
    svc.zoom_out(two_track_state)
    assert two_track_state.zoom_level == 0.5


def test_snapshot_scroll_target(svc):
    state = svc.create_state(tracks=[Track(track_id="v1", items=_items(600, 600))], viewport_width_pixels=800)
    svc.seek(state, 1000)
    view = svc.snapshot(state)

    assert view.layout.total_pixel_width == 1232
    assert view.playhead_pixel == 1000
    # centred would be 600, but the track only scrolls to 1232 - 800
    assert view.scroll_target == 432
    assert view.current_item_id == "b"


def test_empty_timeline(svc):
    state = svc.create_state()
    assert svc.total_duration(state) == 10
    assert state.current_item_id is None

    update = svc.play(state)
    assert update.state == PlaybackState.PLAYING
    assert update.current_item_id is None


def test_zero_length_timeline_never_plays():
    svc = TimelineEngineService(TimelineConfig(min_timeline_duration=0))
    state = svc.create_state()
    assert svc.play(state).state == PlaybackState.STOPPED


def test_hidden_track_toggle(svc, two_track_state):
    svc.set_track_visible(two_track_state, "v2", False)
    layout = svc.layout(two_track_state)
    assert layout.get_track("v2").visible is False
    assert layout.total_duration == 45


def test_active_track_drives_current_item(svc, two_track_state):
    two_track_state.active_track_id = "v2"
    assert svc.seek(two_track_state, 1).current_item_id == "xa"


def test_default_service_singleton():
    set_timeline_engine_service(None)
    first = get_timeline_engine_service()
    assert get_timeline_engine_service() is first

    custom = TimelineEngineService(TimelineConfig(min_timeline_duration=0))
    set_timeline_engine_service(custom)
    assert get_timeline_engine_service() is custom
    set_timeline_engine_service(None)


def test_huge_durations_still_lay_out(svc):
    state = svc.create_state(tracks=[Track(track_id="v1", items=_items(1e308, 1e308))])
    layout = svc.layout(state)

    assert math.isfinite(layout.total_duration)
    assert layout.total_duration == 2 * MAX_DURATION_SECONDS
    assert math.isfinite(layout.total_pixel_width)
    assert 0 < len(layout.ticks) <= svc.config.max_ruler_ticks

    update = svc.seek(state, 1e308)
    assert update.current_time_seconds == layout.total_duration
    assert update.current_item_id == "b"


class TestItemQueries:

    @pytest.fixture
    def state(self, svc):
        return svc.create_state(tracks=[
            Track(track_id="v1", items=[
                TimelineItem(id="a", duration_seconds=10, kind="generated_video"),
                TimelineItem(id="b", order=1, duration_seconds=20, kind="live_action"),
            ]),
            Track(track_id="v2", items=[TimelineItem(id="xa", duration_seconds=45)]),
        ])

    def test_time_stats(self, svc, state):
        stats = svc.time_stats(state)
        assert (stats.total, stats.generated, stats.live_action, stats.average) == (75, 10, 20, 25)
        assert svc.time_stats(state, "v1").total == 30
        assert svc.time_stats(state, "missing").total == 0

    def test_items_in_range(self, svc, state):
        assert [i.id for i in svc.items_in_range(state, 5, 12)] == ["a", "b", "xa"]
        assert [i.id for i in svc.items_in_range(state, 5, 12, "v1")] == ["a", "b"]
        assert [i.id for i in svc.items_in_range(state, 30, 40, "v1")] == []

    def test_items_by_duration(self, svc, state):
        assert [i.id for i in svc.items_by_duration(state)] == ["xa", "b", "a"]
        assert [i.id for i in svc.items_by_duration(state, "v1", descending=False)] == ["a", "b"]

    def test_seek_timecode(self, svc, state):
        update = svc.seek_timecode(state, "00:00:20")
        assert update.current_time_seconds == 20
        assert update.current_item_id == "b"

        update = svc.seek_timecode(state, "garbage")
        assert update.current_time_seconds == 0
        assert update.current_item_id == "a"
