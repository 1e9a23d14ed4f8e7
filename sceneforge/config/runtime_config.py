"""Runtime configuration helpers for the timeline engine."""
from __future__ import annotations

import logging
import math
import os
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MIN_TIMELINE_DURATION = 10.0
DEFAULT_ITEM_DURATION = 5.0
DEFAULT_MIN_TRACK_WIDTH = 800.0
DEFAULT_TRACK_PADDING = 32.0
DEFAULT_CARD_BASE_WIDTH = 100.0
DEFAULT_LAYOUT_CACHE_SIZE = 64
DEFAULT_MAX_RULER_TICKS = 5000


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def _get_float(name: str, default: float) -> float:
    raw = _get_env(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if not math.isfinite(value) or value < 0:
        logger.warning("Ignoring %s=%r: must be a finite non-negative number, using %s", name, raw, default)
        return default
    return value


def _get_int(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive, using %s", name, raw, default)
        return default
    return value


def get_min_timeline_duration() -> float:
    return _get_float("SCENEFORGE_TIMELINE_MIN_DURATION", DEFAULT_MIN_TIMELINE_DURATION)


def get_default_item_duration() -> float:
    value = _get_float("SCENEFORGE_TIMELINE_DEFAULT_ITEM_DURATION", DEFAULT_ITEM_DURATION)
    # A zero default would reintroduce the invalid durations it replaces.
    return value if value > 0 else DEFAULT_ITEM_DURATION


def get_min_track_width() -> float:
    return _get_float("SCENEFORGE_TIMELINE_MIN_TRACK_WIDTH", DEFAULT_MIN_TRACK_WIDTH)


def get_track_padding() -> float:
    return _get_float("SCENEFORGE_TIMELINE_TRACK_PADDING", DEFAULT_TRACK_PADDING)


def get_card_base_width() -> float:
    return _get_float("SCENEFORGE_TIMELINE_CARD_BASE_WIDTH", DEFAULT_CARD_BASE_WIDTH)


def get_layout_cache_size() -> int:
    return _get_int("SCENEFORGE_TIMELINE_LAYOUT_CACHE_SIZE", DEFAULT_LAYOUT_CACHE_SIZE)


def get_max_ruler_ticks() -> int:
    return _get_int("SCENEFORGE_TIMELINE_MAX_RULER_TICKS", DEFAULT_MAX_RULER_TICKS)
