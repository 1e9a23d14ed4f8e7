"""Time formatting, parsing and statistics helpers for timeline items."""
from __future__ import annotations

import math
from typing import Any, Iterable, List, Optional, Sequence

from sceneforge.timeline_engine.models import TimelineItem, TimeStats

# ~31 years
MAX_DURATION_SECONDS = 1e9


def is_valid_time(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def resolve_duration(value: Optional[float], default: float) -> float:
    """
    Return value when it is a usable duration (> 0, finite), else default.
    Both are capped at MAX_DURATION_SECONDS so track sums stay finite.
    """
    if is_valid_time(value) and value > 0:
        return min(float(value), MAX_DURATION_SECONDS)
    return min(default, MAX_DURATION_SECONDS)


def _split(seconds: float) -> tuple[int, int, int]:
    whole = int(math.floor(seconds))
    return whole // 3600, (whole % 3600) // 60, whole % 60


def format_time_hms(seconds: Optional[float]) -> str:
    """Format seconds as HH:MM:SS; invalid or negative input renders as 00:00:00."""
    if not is_valid_time(seconds):
        return "00:00:00"
    hours, minutes, secs = _split(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_time_short(seconds: Optional[float]) -> str:
    """Format seconds as MM:SS (minutes are not wrapped at the hour)."""
    if not is_valid_time(seconds):
        return "00:00"
    whole = int(math.floor(seconds))
    return f"{whole // 60:02d}:{whole % 60:02d}"


def format_time_human(seconds: Optional[float]) -> str:
    """Format seconds as e.g. '1h 2m 3s'."""
    if not is_valid_time(seconds):
        return "0s"
    hours, minutes, secs = _split(seconds)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_tick_label(seconds: float, interval: float) -> str:
    """Ruler label; sub-second intervals get a tenths digit."""
    if interval >= 1:
        return format_time_hms(seconds)
    tenths = int(round((seconds - math.floor(seconds)) * 10)) % 10
    return f"{format_time_hms(seconds)}.{tenths}"


def parse_time_hms(text: Optional[str]) -> float:
    """Parse HH:MM:SS into seconds. Anything malformed parses as 0."""
    if not text or not isinstance(text, str):
        return 0.0
    parts = text.strip().split(":")
    if len(parts) != 3:
        return 0.0
    try:
        hours, minutes, secs = (float(p) for p in parts)
    except ValueError:
        return 0.0
    total = hours * 3600 + minutes * 60 + secs
    return total if is_valid_time(total) else 0.0


def calculate_time_stats(items: Sequence[TimelineItem], default_duration: float = 0.0) -> TimeStats:
    """
    Total, generated-video and live-action time across items.
    Items without a usable duration count as default_duration.
    """
    stats = TimeStats()
    if not items:
        return stats

    for item in items:
        duration = resolve_duration(item.duration_seconds, default_duration)
        stats.total += duration
        if item.kind == "generated_video":
            stats.generated += duration
        elif item.kind == "live_action":
            stats.live_action += duration

    stats.average = stats.total / len(items)
    return stats


def filter_items_by_time_range(
    items: Sequence[TimelineItem],
    start_seconds: float,
    end_seconds: float,
    default_duration: float,
) -> List[TimelineItem]:
    """Items whose [start, end) span overlaps the given range, in track order."""
    result = []
    cursor = 0.0
    for item in items:
        duration = resolve_duration(item.duration_seconds, default_duration)
        item_start, item_end = cursor, cursor + duration
        if item_start < end_seconds and item_end > start_seconds:
            result.append(item)
        cursor = item_end
    return result


def sort_items_by_duration(
    items: Iterable[TimelineItem],
    descending: bool = True,
    default_duration: float = 0.0,
) -> List[TimelineItem]:
    return sorted(
        items,
        key=lambda item: resolve_duration(item.duration_seconds, default_duration),
        reverse=descending,
    )
