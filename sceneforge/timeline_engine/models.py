"""
Timeline Engine Models.

Defines the data structures shared by the layout, playback and HTTP layers of
the SceneForge timeline engine.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from sceneforge.config import runtime_config


def _uuid() -> str:
    return uuid.uuid4().hex


class PlaybackState(str, Enum):
    """Playhead state."""
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class TimelineConfig(BaseModel):
    """
    Tunables for layout and playback.
    Defaults mirror the values the timeline UI has always rendered with.
    """
    min_timeline_duration: float = Field(default=runtime_config.DEFAULT_MIN_TIMELINE_DURATION, ge=0)
    default_item_duration: float = Field(default=runtime_config.DEFAULT_ITEM_DURATION, gt=0)
    min_track_width: float = Field(default=runtime_config.DEFAULT_MIN_TRACK_WIDTH, ge=0)
    track_padding: float = Field(default=runtime_config.DEFAULT_TRACK_PADDING, ge=0)
    card_base_width: float = Field(default=runtime_config.DEFAULT_CARD_BASE_WIDTH, ge=0)

    min_zoom: float = Field(default=0.1, gt=0)
    min_scale: float = Field(default=0.01, gt=0)
    max_scale: float = Field(default=10.0, gt=0)

    layout_cache_size: int = Field(default=runtime_config.DEFAULT_LAYOUT_CACHE_SIZE, ge=1)
    max_ruler_ticks: int = Field(default=runtime_config.DEFAULT_MAX_RULER_TICKS, ge=1)

    @model_validator(mode='after')
    def validate_bounds(self):
        if self.min_scale > self.max_scale:
            raise ValueError("min_scale must be <= max_scale")
        return self

    @classmethod
    def from_runtime(cls) -> TimelineConfig:
        """Build a config from SCENEFORGE_TIMELINE_* environment variables."""
        return cls(
            min_timeline_duration=runtime_config.get_min_timeline_duration(),
            default_item_duration=runtime_config.get_default_item_duration(),
            min_track_width=runtime_config.get_min_track_width(),
            track_padding=runtime_config.get_track_padding(),
            card_base_width=runtime_config.get_card_base_width(),
            layout_cache_size=runtime_config.get_layout_cache_size(),
            max_ruler_ticks=runtime_config.get_max_ruler_ticks(),
        )


class TimelineItem(BaseModel):
    """
    A cut or scene placed on a track.
    duration_seconds may arrive missing or malformed; the engine substitutes
    a default before laying it out.
    """
    id: str = Field(default_factory=_uuid)
    order: int = 0
    duration_seconds: Optional[float] = None
    track_id: Optional[str] = None

    kind: Optional[str] = None  # e.g. "generated_video", "live_action"
    label: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class Track(BaseModel):
    """An ordered, gapless lane of items."""
    track_id: str
    name: Optional[str] = None
    items: List[TimelineItem] = Field(default_factory=list)
    visible: bool = True
    # Overrides TimelineConfig.default_item_duration for this lane only
    default_duration_seconds: Optional[float] = None


class Playhead(BaseModel):
    current_time_seconds: float = 0.0
    state: PlaybackState = PlaybackState.STOPPED
    speed_multiplier: float = 1.0


class TimelineState(BaseModel):
    """
    Everything the engine needs to lay out and play a timeline.
    Owned by the host application and handed to TimelineEngineService calls.
    """
    tracks: List[Track] = Field(default_factory=list)
    zoom_level: float = 1.0
    base_scale: float = 1.0
    viewport_width_pixels: float = 800.0
    playhead: Playhead = Field(default_factory=Playhead)

    active_track_id: Optional[str] = None  # lane used for current-item lookup
    current_item_id: Optional[str] = None

    def get_track(self, track_id: str) -> Optional[Track]:
        for track in self.tracks:
            if track.track_id == track_id:
                return track
        return None


# --- Layout output ---

class ItemLayout(BaseModel):
    item_id: str
    track_id: str
    index: int
    start_seconds: float
    duration_seconds: float
    start_pixel: float
    width_pixel: float
    raw_width_pixel: float

    @property
    def end_seconds(self) -> float:
        return self.start_seconds + self.duration_seconds

    @property
    def end_pixel(self) -> float:
        return self.start_pixel + self.width_pixel


class TrackLayout(BaseModel):
    track_id: str
    visible: bool = True
    duration_seconds: float = 0.0
    total_pixel_width: float = 0.0
    items: List[ItemLayout] = Field(default_factory=list)


class RulerTick(BaseModel):
    time_seconds: float
    pixel_position: float
    label: str
    is_major: bool = False


class TimelineLayout(BaseModel):
    """Pixel layout of every track at one zoom level."""
    key: str
    zoom_level: float
    scale: float
    pixels_per_second: float
    card_floor_width: float
    total_duration: float
    total_pixel_width: float
    tick_interval: float
    tracks: List[TrackLayout] = Field(default_factory=list)
    ticks: List[RulerTick] = Field(default_factory=list)

    def get_track(self, track_id: str) -> Optional[TrackLayout]:
        for track in self.tracks:
            if track.track_id == track_id:
                return track
        return None


class PlaybackUpdate(BaseModel):
    current_time_seconds: float
    state: PlaybackState
    current_item_id: Optional[str] = None
    item_changed: bool = False


class TimelineView(BaseModel):
    """Layout plus the playback-dependent values a renderer needs for one frame."""
    layout: TimelineLayout
    current_time_seconds: float
    state: PlaybackState
    current_item_id: Optional[str] = None
    playhead_pixel: float
    scroll_target: float


class ZoomControls(BaseModel):
    zoom_level: float
    slider_value: float  # 0-100, logarithmic
    presets: List[float] = Field(default_factory=list)
    can_zoom_in: bool = True
    can_zoom_out: bool = True
    tick_interval: float


class TimeStats(BaseModel):
    total: float = 0.0
    generated: float = 0.0
    live_action: float = 0.0
    average: float = 0.0


# --- HTTP payloads ---

class LayoutRequest(BaseModel):
    tracks: List[Track] = Field(default_factory=list)
    zoom_level: float = 1.0
    base_scale: float = 1.0
    viewport_width_pixels: float = 800.0
    current_time_seconds: float = 0.0
    current_timecode: Optional[str] = None  # HH:MM:SS, wins over current_time_seconds
    active_track_id: Optional[str] = None


class PlaybackCommandRequest(BaseModel):
    state: TimelineState
    command: str
    value: Optional[float] = None


class PlaybackCommandResponse(BaseModel):
    state: TimelineState
    update: PlaybackUpdate
    view: TimelineView


class StatsRequest(BaseModel):
    tracks: List[Track] = Field(default_factory=list)
    track_id: Optional[str] = None  # all tracks when omitted
    start_seconds: float = 0.0
    end_seconds: Optional[float] = None  # end of the timeline when omitted


class TimelineStatsResponse(BaseModel):
    stats: TimeStats
    total_label: str  # "1h 2m 3s"
    average_label: str  # "MM:SS"
    longest_item_ids: List[str] = Field(default_factory=list)
    range_item_ids: List[str] = Field(default_factory=list)
