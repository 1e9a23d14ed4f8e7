"""
Time scale and pixel conversion.

Scale is seconds per pixel. Higher zoom means fewer seconds per pixel.
Ruler tick spacing and zoom control helpers live here too since they are
keyed only by zoom.
"""
from __future__ import annotations

import math
from typing import List, Tuple

from sceneforge.timeline_engine.models import RulerTick, ZoomControls
from sceneforge.timeline_engine.timecode import format_tick_label

MIN_ZOOM = 0.1
MIN_SCALE = 0.01
MAX_SCALE = 10.0

# Zoom controls operate on a narrower range than the engine accepts.
ZOOM_CONTROL_MIN = 0.5
ZOOM_CONTROL_MAX = 100.0
ZOOM_PRESETS: Tuple[float, ...] = (0.5, 1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 50.0, 100.0)

# (max zoom, tick interval seconds), checked in order
TICK_INTERVALS: Tuple[Tuple[float, float], ...] = (
    (0.5, 300.0),
    (1.0, 60.0),
    (2.0, 30.0),
    (4.0, 10.0),
    (8.0, 5.0),
    (16.0, 2.0),
    (32.0, 1.0),
    (50.0, 0.5),
)
FINEST_TICK_INTERVAL = 0.2
MAJOR_TICK_SECONDS = 60.0


def normalize_zoom(zoom_level: float, min_zoom: float = MIN_ZOOM) -> float:
    """Clamp zoom to min_zoom; zero, negative and non-finite zoom become min_zoom."""
    try:
        zoom = float(zoom_level)
    except (TypeError, ValueError):
        return min_zoom
    if not math.isfinite(zoom) or zoom <= 0:
        return min_zoom
    return max(zoom, min_zoom)


def calculate_time_scale(
    zoom_level: float,
    base_scale: float = 1.0,
    min_scale: float = MIN_SCALE,
    max_scale: float = MAX_SCALE,
    min_zoom: float = MIN_ZOOM,
) -> float:
    """Seconds per pixel for a zoom level, clamped to [min_scale, max_scale]."""
    zoom = normalize_zoom(zoom_level, min_zoom)
    if not math.isfinite(base_scale) or base_scale <= 0:
        base_scale = 1.0
    return max(min_scale, min(max_scale, base_scale / zoom))


def _check_scale(scale: float) -> None:
    if not math.isfinite(scale) or scale <= 0:
        raise ValueError(f"scale must be a positive finite number, got {scale}")


def _non_negative(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(value, 0.0)


def time_to_pixels(seconds: float, scale: float) -> float:
    _check_scale(scale)
    return _non_negative(seconds) / scale


def pixels_to_time(pixels: float, scale: float) -> float:
    _check_scale(scale)
    return _non_negative(pixels) * scale


def calculate_tick_interval(zoom_level: float) -> float:
    """Ruler tick spacing in seconds for a zoom level."""
    zoom = normalize_zoom(zoom_level)
    for max_zoom, interval in TICK_INTERVALS:
        if zoom <= max_zoom:
            return interval
    return FINEST_TICK_INTERVAL


def _is_multiple(value: float, step: float) -> bool:
    ratio = value / step
    return abs(ratio - round(ratio)) < 1e-6


def build_ruler_ticks(
    total_duration: float,
    zoom_level: float,
    scale: float,
    max_ticks: int = 5000,
) -> List[RulerTick]:
    """
    Ticks from 0 to total_duration inclusive at the zoom's tick interval.

    When the interval would produce more than max_ticks ticks it is widened
    by an integer factor, so labels stay on multiples of the planned spacing.
    """
    if not math.isfinite(total_duration) or total_duration <= 0:
        return []

    interval = calculate_tick_interval(zoom_level)
    count = int(math.floor(total_duration / interval + 1e-9)) + 1
    if count > max_ticks:
        interval *= math.ceil(count / max_ticks)
        count = int(math.floor(total_duration / interval + 1e-9)) + 1

    ticks = []
    for index in range(min(count, max_ticks)):
        # Multiply rather than accumulate so sub-second spacing doesn't drift.
        time_seconds = round(index * interval, 6)
        ticks.append(RulerTick(
            time_seconds=time_seconds,
            pixel_position=time_to_pixels(time_seconds, scale),
            label=format_tick_label(time_seconds, interval),
            is_major=_is_multiple(time_seconds, MAJOR_TICK_SECONDS),
        ))
    return ticks


# --- Zoom controls ---

def clamp_zoom(zoom_level: float, min_zoom: float = ZOOM_CONTROL_MIN, max_zoom: float = ZOOM_CONTROL_MAX) -> float:
    return max(min_zoom, min(max_zoom, normalize_zoom(zoom_level)))


def zoom_in(zoom_level: float) -> float:
    return clamp_zoom(normalize_zoom(zoom_level) * 2)


def zoom_out(zoom_level: float) -> float:
    return clamp_zoom(normalize_zoom(zoom_level) / 2)


def zoom_to_slider(zoom_level: float, min_zoom: float = ZOOM_CONTROL_MIN, max_zoom: float = ZOOM_CONTROL_MAX) -> float:
    """Map zoom onto a 0-100 logarithmic slider."""
    zoom = clamp_zoom(zoom_level, min_zoom, max_zoom)
    return math.log2(zoom / min_zoom) / math.log2(max_zoom / min_zoom) * 100


def slider_to_zoom(value: float, min_zoom: float = ZOOM_CONTROL_MIN, max_zoom: float = ZOOM_CONTROL_MAX) -> float:
    ratio = max(0.0, min(100.0, value)) / 100
    return min_zoom * math.pow(max_zoom / min_zoom, ratio)


def describe_zoom_controls(zoom_level: float) -> ZoomControls:
    """Everything the zoom toolbar shows for the current zoom."""
    zoom = clamp_zoom(zoom_level)
    return ZoomControls(
        zoom_level=zoom,
        slider_value=zoom_to_slider(zoom),
        presets=list(ZOOM_PRESETS),
        can_zoom_in=zoom < ZOOM_CONTROL_MAX,
        can_zoom_out=zoom > ZOOM_CONTROL_MIN,
        tick_interval=calculate_tick_interval(zoom),
    )
