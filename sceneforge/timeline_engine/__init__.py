"""Timeline engine - layout, ruler and playhead synchronization for the cut timeline."""

from sceneforge.timeline_engine.models import (
    ItemLayout,
    PlaybackState,
    PlaybackUpdate,
    Playhead,
    RulerTick,
    TimelineConfig,
    TimelineItem,
    TimelineLayout,
    TimelineState,
    TimelineView,
    Track,
    TrackLayout,
    ZoomControls,
)
from sceneforge.timeline_engine.playhead import PlayheadTracker
from sceneforge.timeline_engine.service import (
    TimelineEngineService,
    get_timeline_engine_service,
    set_timeline_engine_service,
)

__all__ = [
    "ItemLayout",
    "PlaybackState",
    "PlaybackUpdate",
    "Playhead",
    "RulerTick",
    "TimelineConfig",
    "TimelineItem",
    "TimelineLayout",
    "TimelineState",
    "TimelineView",
    "Track",
    "TrackLayout",
    "ZoomControls",
    "PlayheadTracker",
    "TimelineEngineService",
    "get_timeline_engine_service",
    "set_timeline_engine_service",
]
