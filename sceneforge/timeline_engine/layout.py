"""
Timeline layout.

Pure functions turning tracks of items plus a zoom level into pixel layout,
aggregated durations, current-item lookups and scroll targets. Nothing here
holds state; TimelineEngineService decides when to call what.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
from bisect import bisect_right
from typing import Iterable, List, Optional, Sequence, Tuple

from sceneforge.timeline_engine.models import (
    ItemLayout,
    TimelineConfig,
    TimelineItem,
    TimelineLayout,
    Track,
    TrackLayout,
)
from sceneforge.timeline_engine.scale import (
    build_ruler_ticks,
    calculate_tick_interval,
    calculate_time_scale,
    normalize_zoom,
    time_to_pixels,
)
from sceneforge.timeline_engine.timecode import resolve_duration

logger = logging.getLogger(__name__)

MIN_CARD_WIDTH = 50.0

# (min zoom, card floor px), checked in order
CARD_WIDTH_FLOORS: Tuple[Tuple[float, float], ...] = (
    (16.0, 200.0),
    (8.0, 150.0),
    (4.0, 120.0),
    (2.0, 100.0),
)


# --- Items ---

def normalize_items(
    items: Sequence[TimelineItem],
    track_id: str,
    default_duration: float,
) -> List[TimelineItem]:
    """
    Copy items into track order with usable durations.

    Items are sorted by `order` (stable, so equal orders keep list position),
    renumbered 0..n-1, stamped with track_id, and any missing, non-positive or
    non-finite duration is replaced by default_duration.
    """
    ordered = sorted(items, key=lambda item: item.order)
    result = []
    for index, item in enumerate(ordered):
        duration = resolve_duration(item.duration_seconds, default_duration)
        if duration != item.duration_seconds:
            logger.warning(
                "Item %s on track %s has invalid duration %r; using %ss",
                item.id, track_id, item.duration_seconds, duration,
            )
        result.append(item.model_copy(update={
            "order": index,
            "duration_seconds": duration,
            "track_id": track_id,
        }))
    return result


def reorder_items(items: Sequence[TimelineItem], old_index: int, new_index: int) -> List[TimelineItem]:
    """Move the item at old_index to new_index. Out-of-range indices leave the order untouched."""
    moved = list(items)
    size = len(moved)
    if old_index == new_index or not (0 <= old_index < size) or not (0 <= new_index < size):
        if old_index != new_index:
            logger.debug("Ignoring reorder %s -> %s on %s items", old_index, new_index, size)
        return moved

    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return [item.model_copy(update={"order": index}) for index, item in enumerate(moved)]


# --- Durations ---

def item_durations(items: Sequence[TimelineItem], default_duration: float) -> List[float]:
    return [resolve_duration(item.duration_seconds, default_duration) for item in items]


def cumulative_starts(durations: Sequence[float]) -> List[float]:
    starts = []
    cursor = 0.0
    for duration in durations:
        starts.append(cursor)
        cursor += duration
    return starts


def track_duration(items: Sequence[TimelineItem], default_duration: float) -> float:
    return math.fsum(item_durations(items, default_duration))


def aggregate_total_duration(track_durations: Iterable[float], min_duration: float = 10.0) -> float:
    """Longest track wins; the result never drops below min_duration."""
    return max(max(track_durations, default=0.0), min_duration)


# --- Card widths ---

def min_card_width(zoom_level: float, base_width: float = 100.0) -> float:
    """Zoom-dependent floor for a card's pixel width."""
    zoom = normalize_zoom(zoom_level)
    for min_zoom, floor in CARD_WIDTH_FLOORS:
        if zoom >= min_zoom:
            return floor
    return max(base_width * zoom, MIN_CARD_WIDTH)


def allocate_card_widths(
    durations: Sequence[float],
    scale: float,
    zoom_level: float,
    base_width: float = 100.0,
) -> List[Tuple[float, float, float]]:
    """
    Returns (start_pixel, width_pixel, raw_width_pixel) per duration.
    Cards sit edge to edge, so each start is the sum of the preceding final widths.
    """
    floor = min_card_width(zoom_level, base_width)
    result = []
    cursor = 0.0
    for duration in durations:
        raw = time_to_pixels(duration, scale)
        width = max(raw, floor)
        result.append((cursor, width, raw))
        cursor += width
    return result


def track_pixel_width(widths: Iterable[float], padding: float = 32.0, min_width: float = 800.0) -> float:
    return max(math.fsum(widths) + padding, min_width)


def layout_track(track: Track, scale: float, zoom_level: float, config: TimelineConfig) -> TrackLayout:
    default_duration = resolve_duration(track.default_duration_seconds, config.default_item_duration)
    durations = item_durations(track.items, default_duration)
    starts = cumulative_starts(durations)
    cards = allocate_card_widths(durations, scale, zoom_level, config.card_base_width)

    items = []
    for index, (item, duration, start, card) in enumerate(zip(track.items, durations, starts, cards)):
        start_pixel, width, raw = card
        items.append(ItemLayout(
            item_id=item.id,
            track_id=track.track_id,
            index=index,
            start_seconds=start,
            duration_seconds=duration,
            start_pixel=start_pixel,
            width_pixel=width,
            raw_width_pixel=raw,
        ))

    return TrackLayout(
        track_id=track.track_id,
        visible=track.visible,
        duration_seconds=math.fsum(durations),
        total_pixel_width=track_pixel_width(
            (card[1] for card in cards), config.track_padding, config.min_track_width
        ),
        items=items,
    )


def layout_cache_key(
    tracks: Sequence[Track],
    zoom_level: float,
    base_scale: float,
    config: TimelineConfig,
) -> str:
    """sha256 over everything a layout depends on."""
    payload = {
        "tracks": [
            {
                "id": track.track_id,
                "visible": track.visible,
                "default": track.default_duration_seconds,
                "items": [[item.id, item.duration_seconds] for item in track.items],
            }
            for track in tracks
        ],
        "zoom": zoom_level,
        "base_scale": base_scale,
        "config": config.model_dump(),
    }
    raw = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def build_layout(
    tracks: Sequence[Track],
    zoom_level: float,
    base_scale: float,
    config: TimelineConfig,
) -> TimelineLayout:
    """Scale first, then per-track widths, then the aggregates that depend on them."""
    zoom = normalize_zoom(zoom_level, config.min_zoom)
    scale = calculate_time_scale(zoom, base_scale, config.min_scale, config.max_scale, config.min_zoom)

    track_layouts = [layout_track(track, scale, zoom, config) for track in tracks]
    total_duration = aggregate_total_duration(
        (t.duration_seconds for t in track_layouts), config.min_timeline_duration
    )

    ruler_width = max(time_to_pixels(total_duration, scale) + config.track_padding, config.min_track_width)
    visible_widths = [t.total_pixel_width for t in track_layouts if t.visible]
    total_pixel_width = max(visible_widths + [ruler_width])

    return TimelineLayout(
        key=layout_cache_key(tracks, zoom_level, base_scale, config),
        zoom_level=zoom,
        scale=scale,
        pixels_per_second=1.0 / scale,
        card_floor_width=min_card_width(zoom, config.card_base_width),
        total_duration=total_duration,
        total_pixel_width=total_pixel_width,
        tick_interval=calculate_tick_interval(zoom),
        tracks=track_layouts,
        ticks=build_ruler_ticks(total_duration, zoom, scale, config.max_ruler_ticks),
    )


# --- Current item ---

class CurrentItemLocator:
    """
    Resolves the item under a point in time for one track.

    `update` reports whether the resolved item id differs from the previous
    call, so callers only react when the playhead crosses an item boundary.
    """

    def __init__(self, items: Sequence[ItemLayout]):
        self._items = list(items)
        self._starts = [item.start_seconds for item in self._items]
        self._total = self._items[-1].end_seconds if self._items else 0.0
        self._last_id: Optional[str] = None

    @classmethod
    def from_track_layout(cls, track_layout: TrackLayout) -> CurrentItemLocator:
        return cls(track_layout.items)

    def locate(self, current_time: float) -> Optional[ItemLayout]:
        if not self._items:
            return None
        if math.isnan(current_time) or current_time < 0:
            current_time = 0.0
        if current_time >= self._total:
            return self._items[-1]
        index = bisect_right(self._starts, current_time) - 1
        return self._items[max(index, 0)]

    def update(self, current_time: float) -> Tuple[Optional[str], bool]:
        item = self.locate(current_time)
        item_id = item.item_id if item else None
        changed = item_id != self._last_id
        self._last_id = item_id
        return item_id, changed


def locate_item(
    items: Sequence[TimelineItem],
    current_time: float,
    default_duration: float,
) -> Optional[TimelineItem]:
    """Item whose [start, start + duration) contains current_time; last item past the end."""
    if not items:
        return None
    durations = item_durations(items, default_duration)
    starts = cumulative_starts(durations)
    if math.isnan(current_time) or current_time < 0:
        current_time = 0.0
    if current_time >= starts[-1] + durations[-1]:
        return items[-1]
    index = bisect_right(starts, current_time) - 1
    return items[max(index, 0)]


# --- Viewport ---

def plan_scroll_target(
    current_time: float,
    scale: float,
    viewport_width: float,
    total_pixel_width: float,
) -> float:
    """Scroll offset that centres the playhead, kept within the scrollable range."""
    playhead_pixel = time_to_pixels(current_time, scale)
    viewport = viewport_width if math.isfinite(viewport_width) and viewport_width > 0 else 0.0
    max_scroll = max(0.0, total_pixel_width - viewport)
    return min(max(playhead_pixel - viewport / 2, 0.0), max_scroll)


def visible_items(track_layout: TrackLayout, scroll_left: float, viewport_width: float) -> List[ItemLayout]:
    """Cards overlapping [scroll_left, scroll_left + viewport_width), for virtualized rendering."""
    right = scroll_left + viewport_width
    return [
        item for item in track_layout.items
        if item.start_pixel < right and item.end_pixel > scroll_left
    ]
