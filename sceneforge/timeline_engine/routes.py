"""
FastAPI routes for the timeline engine.

The router is stateless: the caller sends its TimelineState (or the tracks to
build one from) and gets the recomputed state and frame back.

POST /timeline/layout    - tracks + zoom + viewport -> TimelineView
POST /timeline/stats     - time stats, longest items and items in a time range
GET  /timeline/ticks     - ruler ticks for a zoom level and duration
GET  /timeline/zoom      - zoom toolbar state (slider, presets, limits)
POST /timeline/playback  - apply one playback command to a TimelineState
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query

from sceneforge.common.error_envelope import error_response, missing_field_error, unknown_command_error
from sceneforge.timeline_engine.models import (
    LayoutRequest,
    PlaybackCommandRequest,
    PlaybackCommandResponse,
    RulerTick,
    StatsRequest,
    TimelineStatsResponse,
    TimelineView,
    ZoomControls,
)
from sceneforge.timeline_engine.scale import build_ruler_ticks, calculate_time_scale, describe_zoom_controls
from sceneforge.timeline_engine.service import get_timeline_engine_service
from sceneforge.timeline_engine.timecode import format_time_human, format_time_short

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timeline", tags=["timeline"])

# Commands that carry no value
_SIMPLE_COMMANDS = {
    "play", "pause", "stop", "toggle",
    "jump_to_start", "jump_to_end", "step_forward", "step_back",
}
# Commands that need `value`
_VALUE_COMMANDS = {"seek", "nudge", "tick", "set_speed"}


@router.post("/layout", response_model=TimelineView)
def compute_layout(req: LayoutRequest):
    svc = get_timeline_engine_service()
    try:
        state = svc.create_state(
            tracks=req.tracks,
            zoom_level=req.zoom_level,
            base_scale=req.base_scale,
            viewport_width_pixels=req.viewport_width_pixels,
            active_track_id=req.active_track_id,
        )
        if req.current_timecode is not None:
            svc.seek_timecode(state, req.current_timecode)
        else:
            svc.seek(state, req.current_time_seconds)
        return svc.snapshot(state)
    except Exception as exc:
        logger.exception("Timeline layout failed")
        error_response(
            code="timeline.layout_failed",
            message=str(exc),
            status_code=500,
            resource_kind="timeline",
        )


@router.post("/stats", response_model=TimelineStatsResponse)
def compute_stats(req: StatsRequest):
    svc = get_timeline_engine_service()
    try:
        state = svc.create_state(tracks=req.tracks)
        end = req.end_seconds if req.end_seconds is not None else svc.total_duration(state)
        stats = svc.time_stats(state, req.track_id)
        return TimelineStatsResponse(
            stats=stats,
            total_label=format_time_human(stats.total),
            average_label=format_time_short(stats.average),
            longest_item_ids=[item.id for item in svc.items_by_duration(state, req.track_id)],
            range_item_ids=[item.id for item in svc.items_in_range(state, req.start_seconds, end, req.track_id)],
        )
    except Exception as exc:
        logger.exception("Timeline stats failed")
        error_response(
            code="timeline.stats_failed",
            message=str(exc),
            status_code=500,
            resource_kind="timeline",
        )


@router.get("/ticks", response_model=List[RulerTick])
def get_ruler_ticks(
    zoom_level: float = Query(1.0),
    total_duration: float = Query(..., ge=0),
    base_scale: float = Query(1.0, gt=0),
):
    svc = get_timeline_engine_service()
    config = svc.config
    scale = calculate_time_scale(zoom_level, base_scale, config.min_scale, config.max_scale, config.min_zoom)
    return build_ruler_ticks(total_duration, zoom_level, scale, config.max_ruler_ticks)


@router.get("/zoom", response_model=ZoomControls)
def get_zoom_controls(zoom_level: float = Query(1.0)):
    return describe_zoom_controls(zoom_level)


@router.post("/playback", response_model=PlaybackCommandResponse)
def apply_playback_command(req: PlaybackCommandRequest):
    command = req.command.strip().lower()
    if command not in _SIMPLE_COMMANDS and command not in _VALUE_COMMANDS:
        unknown_command_error(req.command, _SIMPLE_COMMANDS | _VALUE_COMMANDS)
    if command in _VALUE_COMMANDS and req.value is None:
        missing_field_error("value", f"Command {command} requires a value", resource_kind="playback")

    svc = get_timeline_engine_service()
    try:
        # Rebuild through create_state so incoming items get normalized.
        state = svc.create_state(
            tracks=req.state.tracks,
            zoom_level=req.state.zoom_level,
            base_scale=req.state.base_scale,
            viewport_width_pixels=req.state.viewport_width_pixels,
            active_track_id=req.state.active_track_id,
            playhead=req.state.playhead,
        )
        # item_changed is reported relative to what the caller last saw
        state.current_item_id = req.state.current_item_id

        handler = getattr(svc, command)
        update = handler(state, req.value) if command in _VALUE_COMMANDS else handler(state)
        return PlaybackCommandResponse(state=state, update=update, view=svc.snapshot(state))
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Playback command %s failed", command)
        error_response(
            code="timeline.playback_failed",
            message=str(exc),
            status_code=500,
            resource_kind="playback",
        )
