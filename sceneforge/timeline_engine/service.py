"""
Timeline Engine Service.

Sequences the pure layout and playback functions over a caller-owned
TimelineState: scale, then widths and positions, then scroll target and
current item. Layouts are cached by content key.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from sceneforge.timeline_engine.layout import (
    CurrentItemLocator,
    build_layout,
    layout_cache_key,
    normalize_items,
    plan_scroll_target,
    reorder_items,
)
from sceneforge.timeline_engine.models import (
    Playhead,
    PlaybackUpdate,
    TimelineConfig,
    TimelineItem,
    TimelineLayout,
    TimelineState,
    TimelineView,
    TimeStats,
    Track,
)
from sceneforge.timeline_engine.playhead import PlayheadTracker
from sceneforge.timeline_engine.scale import normalize_zoom, time_to_pixels
from sceneforge.timeline_engine.scale import zoom_in as _zoom_in
from sceneforge.timeline_engine.scale import zoom_out as _zoom_out
from sceneforge.timeline_engine.timecode import (
    calculate_time_stats,
    filter_items_by_time_range,
    parse_time_hms,
    resolve_duration,
    sort_items_by_duration,
)

logger = logging.getLogger(__name__)

DEFAULT_TRACK_ID = "v1"


class TimelineEngineService:
    """
    Stateless apart from the layout cache; every call takes the TimelineState
    it should read and mutate.
    """

    def __init__(self, config: Optional[TimelineConfig] = None):
        self.config = config or TimelineConfig.from_runtime()
        self._cache: "OrderedDict[str, TimelineLayout]" = OrderedDict()

    # --- State setup ---

    def create_state(
        self,
        tracks: Optional[Iterable[Track]] = None,
        zoom_level: float = 1.0,
        base_scale: float = 1.0,
        viewport_width_pixels: float = 800.0,
        active_track_id: Optional[str] = None,
        playhead: Optional[Playhead] = None,
    ) -> TimelineState:
        state = TimelineState(
            zoom_level=normalize_zoom(zoom_level, self.config.min_zoom),
            base_scale=base_scale if base_scale > 0 else 1.0,
            viewport_width_pixels=max(viewport_width_pixels, 0.0),
            playhead=playhead.model_copy() if playhead else Playhead(),
            active_track_id=active_track_id,
        )
        for track in tracks or []:
            if state.get_track(track.track_id) is not None:
                logger.warning("Duplicate track %s; later definition replaces earlier", track.track_id)
            self._put_track(state, track.model_copy(update={
                "items": self._normalize(track, track.items),
            }))
        self._sync(state)
        return state

    def _default_duration(self, track: Optional[Track]) -> float:
        override = track.default_duration_seconds if track else None
        return resolve_duration(override, self.config.default_item_duration)

    def _normalize(self, track: Track, items: Iterable[TimelineItem]) -> List[TimelineItem]:
        return normalize_items(list(items), track.track_id, self._default_duration(track))

    def _put_track(self, state: TimelineState, track: Track) -> None:
        for index, existing in enumerate(state.tracks):
            if existing.track_id == track.track_id:
                state.tracks[index] = track
                return
        state.tracks.append(track)

    def _ensure_track(self, state: TimelineState, track_id: str) -> Track:
        track = state.get_track(track_id)
        if track is None:
            track = Track(track_id=track_id)
            state.tracks.append(track)
        return track

    # --- Item provider / reorder ---

    def set_track_items(self, state: TimelineState, track_id: str, items: Iterable[TimelineItem]) -> None:
        """Replace a track's items wholesale."""
        track = self._ensure_track(state, track_id)
        track.items = self._normalize(track, items)
        self._sync(state)

    def set_items(self, state: TimelineState, items: Iterable[TimelineItem]) -> None:
        """
        Replace the contents of every track named by the items' track_id.
        Items without a track_id go to the active track.
        """
        fallback = self._active_track_id(state) or DEFAULT_TRACK_ID
        grouped: Dict[str, List[TimelineItem]] = {}
        for item in items:
            grouped.setdefault(item.track_id or fallback, []).append(item)

        for track_id, track_items in grouped.items():
            track = self._ensure_track(state, track_id)
            track.items = self._normalize(track, track_items)
        self._sync(state)

    def set_track_visible(self, state: TimelineState, track_id: str, visible: bool) -> None:
        track = state.get_track(track_id)
        if track is None:
            return
        track.visible = visible
        self._sync(state)

    def reorder(self, state: TimelineState, track_id: str, old_index: int, new_index: int) -> None:
        track = state.get_track(track_id)
        if track is None:
            return
        track.items = reorder_items(track.items, old_index, new_index)
        self._sync(state)

    # --- Zoom / viewport ---

    def set_zoom(self, state: TimelineState, zoom_level: float) -> None:
        state.zoom_level = normalize_zoom(zoom_level, self.config.min_zoom)
        self._sync(state)

    def zoom_in(self, state: TimelineState) -> None:
        self.set_zoom(state, _zoom_in(state.zoom_level))

    def zoom_out(self, state: TimelineState) -> None:
        self.set_zoom(state, _zoom_out(state.zoom_level))

    def set_viewport(self, state: TimelineState, width_pixels: float) -> None:
        state.viewport_width_pixels = max(width_pixels, 0.0)

    # --- Layout ---

    def layout(self, state: TimelineState) -> TimelineLayout:
        """Layout for the state. Returns a copy; the cached instance stays private."""
        return self._cached_layout(state).model_copy(deep=True)

    def _cached_layout(self, state: TimelineState) -> TimelineLayout:
        key = layout_cache_key(state.tracks, state.zoom_level, state.base_scale, self.config)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Layout cache hit %s", key[:12])
            self._cache.move_to_end(key)
            return cached

        layout = build_layout(state.tracks, state.zoom_level, state.base_scale, self.config)
        self._cache[key] = layout
        while len(self._cache) > self.config.layout_cache_size:
            self._cache.popitem(last=False)
        logger.debug("Built layout %s (%d tracks, %.2fs)", key[:12], len(layout.tracks), layout.total_duration)
        return layout

    def invalidate_cache(self, key: Optional[str] = None) -> None:
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)

    def total_duration(self, state: TimelineState) -> float:
        return self._cached_layout(state).total_duration

    # --- Item queries ---

    def _items_for(self, state: TimelineState, track_id: Optional[str] = None) -> List[TimelineItem]:
        if track_id is not None:
            track = state.get_track(track_id)
            return list(track.items) if track else []
        return [item for track in state.tracks for item in track.items]

    def time_stats(self, state: TimelineState, track_id: Optional[str] = None) -> TimeStats:
        """Total / generated / live-action / average seconds for one track, or all of them."""
        return calculate_time_stats(self._items_for(state, track_id), self.config.default_item_duration)

    def items_in_range(
        self,
        state: TimelineState,
        start_seconds: float,
        end_seconds: float,
        track_id: Optional[str] = None,
    ) -> List[TimelineItem]:
        tracks = [state.get_track(track_id)] if track_id is not None else state.tracks
        result: List[TimelineItem] = []
        for track in tracks:
            if track is None:
                continue
            result.extend(filter_items_by_time_range(
                track.items, start_seconds, end_seconds, self._default_duration(track)
            ))
        return result

    def items_by_duration(
        self,
        state: TimelineState,
        track_id: Optional[str] = None,
        descending: bool = True,
    ) -> List[TimelineItem]:
        return sort_items_by_duration(
            self._items_for(state, track_id), descending, self.config.default_item_duration
        )

    def _active_track_id(self, state: TimelineState) -> Optional[str]:
        if state.active_track_id and state.get_track(state.active_track_id):
            return state.active_track_id
        return state.tracks[0].track_id if state.tracks else None

    def current_item_id(self, state: TimelineState) -> Optional[str]:
        track_id = self._active_track_id(state)
        if track_id is None:
            return None
        track_layout = self._cached_layout(state).get_track(track_id)
        item = CurrentItemLocator.from_track_layout(track_layout).locate(state.playhead.current_time_seconds)
        return item.item_id if item else None

    def _refresh_current_item(self, state: TimelineState) -> PlaybackUpdate:
        item_id = self.current_item_id(state)
        changed = item_id != state.current_item_id
        if changed:
            logger.debug("Current item %s -> %s", state.current_item_id, item_id)
        state.current_item_id = item_id
        return PlaybackUpdate(
            current_time_seconds=state.playhead.current_time_seconds,
            state=state.playhead.state,
            current_item_id=item_id,
            item_changed=changed,
        )

    def _sync(self, state: TimelineState) -> PlaybackUpdate:
        """Re-clamp the playhead to the (possibly new) total duration and re-resolve the current item."""
        self._tracker(state)
        return self._refresh_current_item(state)

    # --- Playback ---

    def _tracker(self, state: TimelineState) -> PlayheadTracker:
        # Construction clamps current_time into [0, total_duration].
        return PlayheadTracker(state.playhead, self.total_duration(state))

    def play(self, state: TimelineState) -> PlaybackUpdate:
        self._tracker(state).play()
        return self._refresh_current_item(state)

    def pause(self, state: TimelineState) -> PlaybackUpdate:
        self._tracker(state).pause()
        return self._refresh_current_item(state)

    def stop(self, state: TimelineState) -> PlaybackUpdate:
        self._tracker(state).stop()
        return self._refresh_current_item(state)

    def toggle(self, state: TimelineState) -> PlaybackUpdate:
        self._tracker(state).toggle()
        return self._refresh_current_item(state)

    def seek(self, state: TimelineState, time_seconds: float) -> PlaybackUpdate:
        self._tracker(state).seek(time_seconds)
        return self._refresh_current_item(state)

    def seek_timecode(self, state: TimelineState, timecode: str) -> PlaybackUpdate:
        """Seek to an HH:MM:SS timecode; malformed input seeks to 0."""
        return self.seek(state, parse_time_hms(timecode))

    def nudge(self, state: TimelineState, delta_seconds: float) -> PlaybackUpdate:
        self._tracker(state).nudge(delta_seconds)
        return self._refresh_current_item(state)

    def step_forward(self, state: TimelineState, large: bool = False) -> PlaybackUpdate:
        self._tracker(state).step(forward=True, large=large)
        return self._refresh_current_item(state)

    def step_back(self, state: TimelineState, large: bool = False) -> PlaybackUpdate:
        self._tracker(state).step(forward=False, large=large)
        return self._refresh_current_item(state)

    def jump_to_start(self, state: TimelineState) -> PlaybackUpdate:
        self._tracker(state).jump_to_start()
        return self._refresh_current_item(state)

    def jump_to_end(self, state: TimelineState) -> PlaybackUpdate:
        self._tracker(state).jump_to_end()
        return self._refresh_current_item(state)

    def set_speed(self, state: TimelineState, multiplier: float) -> PlaybackUpdate:
        self._tracker(state).set_speed(multiplier)
        return self._refresh_current_item(state)

    def tick(self, state: TimelineState, elapsed_seconds: float) -> PlaybackUpdate:
        self._tracker(state).tick(elapsed_seconds)
        return self._refresh_current_item(state)

    # --- Frame output ---

    def snapshot(self, state: TimelineState) -> TimelineView:
        layout = self.layout(state)
        current_time = state.playhead.current_time_seconds
        return TimelineView(
            layout=layout,
            current_time_seconds=current_time,
            state=state.playhead.state,
            current_item_id=state.current_item_id,
            playhead_pixel=time_to_pixels(current_time, layout.scale),
            scroll_target=plan_scroll_target(
                current_time, layout.scale, state.viewport_width_pixels, layout.total_pixel_width
            ),
        )


_default_service: Optional[TimelineEngineService] = None


def get_timeline_engine_service() -> TimelineEngineService:
    """Get default timeline engine service."""
    global _default_service
    if _default_service is None:
        _default_service = TimelineEngineService()
    return _default_service


def set_timeline_engine_service(service: Optional[TimelineEngineService]) -> None:
    """Override default service (for testing)."""
    global _default_service
    _default_service = service
