"""Two-threshold hysteresis state machine for open/closed eye classification."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from calibration.baseline import Thresholds
from domain.models import ClosureEvent, EyeState

logger = logging.getLogger(__name__)


class EyeStateMachine:
    """Flips to CLOSED only when both eyes exceed the close threshold and back
    to OPEN only when both drop below the open threshold.  Anything in between
    leaves the state untouched, so borderline values cannot chatter."""

    def __init__(self) -> None:
        self._state: EyeState = EyeState.OPEN
        self._closed_since: Optional[float] = None
        self._last_both_open = False

        self._events: list[ClosureEvent] = []
        self._on_transition: Optional[Callable[[ClosureEvent], None]] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reset(self, mono_time: float) -> None:
        self._state = EyeState.OPEN
        self._closed_since = None
        self._last_both_open = False
        self._events.clear()
        logger.debug("Eye state reset at %.3f", mono_time)

    def update(
        self, left: float, right: float, thresholds: Thresholds, mono_time: float
    ) -> EyeState:
        """Feed smoothed closedness for both eyes; return the resulting state."""
        both_closed = left > thresholds.close and right > thresholds.close
        both_open = left < thresholds.open and right < thresholds.open
        self._last_both_open = both_open

        if self._state == EyeState.OPEN and both_closed:
            self._state = EyeState.CLOSED
            self._closed_since = mono_time
            logger.debug("Eyes: OPEN → CLOSED at %.3f", mono_time)
        elif self._state == EyeState.CLOSED and both_open:
            self._commit(mono_time)

        return self._state

    def closed_duration(self, mono_time: float) -> float:
        """Seconds since the current closure began, 0 while open."""
        if self._state != EyeState.CLOSED or self._closed_since is None:
            return 0.0
        return max(0.0, mono_time - self._closed_since)

    def force_end_segment(self, mono_time: float) -> Optional[ClosureEvent]:
        """Close a still-running closure (call when the session ends)."""
        if self._state != EyeState.CLOSED or self._closed_since is None:
            return None
        if mono_time <= self._closed_since:
            return None
        event = ClosureEvent(start_time=self._closed_since, end_time=mono_time)
        self._events.append(event)
        return event

    def set_on_transition(self, callback: Optional[Callable[[ClosureEvent], None]]) -> None:
        self._on_transition = callback

    @property
    def current_state(self) -> EyeState:
        return self._state

    @property
    def closed_start_time(self) -> Optional[float]:
        return self._closed_since

    @property
    def last_both_open(self) -> bool:
        return self._last_both_open

    @property
    def events(self) -> list[ClosureEvent]:
        return list(self._events)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _commit(self, mono_time: float) -> None:
        assert self._closed_since is not None
        event = ClosureEvent(start_time=self._closed_since, end_time=mono_time)
        self._events.append(event)
        logger.debug("Eyes: CLOSED → OPEN  (%.0f ms)", event.duration_ms)
        if self._on_transition:
            self._on_transition(event)

        self._state = EyeState.OPEN
        self._closed_since = None
