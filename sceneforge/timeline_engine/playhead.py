"""Playhead state machine.

stopped --play--> playing --pause--> paused --play--> playing
any --stop--> stopped (time reset to 0)
playing --tick reaching the end--> stopped

Invalid transitions (tick while stopped, pause while paused, ...) are no-ops.
"""
from __future__ import annotations

import logging
import math

from sceneforge.timeline_engine.models import Playhead, PlaybackState

logger = logging.getLogger(__name__)

NUDGE_STEP_SECONDS = 1.0
NUDGE_STEP_LARGE_SECONDS = 10.0


def _finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


class PlayheadTracker:
    """Drives a Playhead within [0, total_duration]. Owns no timer; call tick(dt)."""

    def __init__(self, playhead: Playhead, total_duration: float):
        self.playhead = playhead
        self.total_duration = 0.0
        self.set_total_duration(total_duration)
        speed = playhead.speed_multiplier
        if not _finite(speed) or speed <= 0:
            logger.warning("Playhead speed %r is not positive; resetting to 1.0", speed)
            playhead.speed_multiplier = 1.0

    @property
    def state(self) -> PlaybackState:
        return self.playhead.state

    @property
    def current_time(self) -> float:
        return self.playhead.current_time_seconds

    def set_total_duration(self, total_duration: float) -> None:
        """Update the bound and pull the playhead back inside it."""
        self.total_duration = total_duration if _finite(total_duration) and total_duration > 0 else 0.0
        current = self.playhead.current_time_seconds
        if not _finite(current):
            current = 0.0
        self.playhead.current_time_seconds = min(max(current, 0.0), self.total_duration)

    def _transition(self, new_state: PlaybackState) -> None:
        logger.debug("Playhead %s -> %s at %.3fs", self.playhead.state.value, new_state.value, self.current_time)
        self.playhead.state = new_state

    def play(self) -> None:
        if self.total_duration == 0:
            return
        if self.playhead.state in (PlaybackState.STOPPED, PlaybackState.PAUSED):
            self._transition(PlaybackState.PLAYING)

    def pause(self) -> None:
        if self.playhead.state == PlaybackState.PLAYING:
            self._transition(PlaybackState.PAUSED)

    def stop(self) -> None:
        if self.playhead.state != PlaybackState.STOPPED:
            self._transition(PlaybackState.STOPPED)
        self.playhead.current_time_seconds = 0.0

    def toggle(self) -> None:
        if self.playhead.state == PlaybackState.PLAYING:
            self.pause()
        else:
            self.play()

    def seek(self, time_seconds: float) -> None:
        if not _finite(time_seconds):
            logger.debug("Ignoring seek to %r", time_seconds)
            return
        self.playhead.current_time_seconds = min(max(float(time_seconds), 0.0), self.total_duration)

    def nudge(self, delta_seconds: float) -> None:
        """Relative seek."""
        if not _finite(delta_seconds):
            return
        self.seek(self.current_time + delta_seconds)

    def step(self, forward: bool = True, large: bool = False) -> None:
        """Arrow-key stepping: 1s, or 10s with shift."""
        delta = NUDGE_STEP_LARGE_SECONDS if large else NUDGE_STEP_SECONDS
        self.nudge(delta if forward else -delta)

    def jump_to_start(self) -> None:
        self.seek(0.0)

    def jump_to_end(self) -> None:
        self.seek(self.total_duration)

    def set_speed(self, multiplier: float) -> None:
        if not _finite(multiplier) or multiplier <= 0:
            logger.debug("Ignoring playback speed %r", multiplier)
            return
        self.playhead.speed_multiplier = float(multiplier)

    def tick(self, elapsed_seconds: float) -> None:
        if self.playhead.state != PlaybackState.PLAYING:
            return
        if not _finite(elapsed_seconds) or elapsed_seconds <= 0:
            return
        advanced = self.current_time + elapsed_seconds * self.playhead.speed_multiplier
        if advanced >= self.total_duration:
            self.playhead.current_time_seconds = self.total_duration
            self._transition(PlaybackState.STOPPED)
        else:
            self.playhead.current_time_seconds = max(advanced, 0.0)
