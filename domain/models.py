"""Core data models for the drowsiness evaluation core."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class AlertLevel(str, Enum):
    NONE = "NONE"
    WARNING = "WARNING"
    ALARM = "ALARM"
    NO_FACE = "NO_FACE"

    @property
    def severity(self) -> int:
        """Ordering for reporting and tests; the decision policy never uses it."""
        return _SEVERITY[self]


_SEVERITY = {
    AlertLevel.NONE: 0,
    AlertLevel.WARNING: 1,
    AlertLevel.ALARM: 2,
    AlertLevel.NO_FACE: 3,
}


class EyeState(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class Measurement:
    """One analysed frame from the tracking collaborator."""

    timestamp: float         # monotonic seconds, caller-supplied
    left_closedness: float   # 0 = fully open, 1 = fully closed
    right_closedness: float


@dataclass(frozen=True)
class EvaluationState:
    """Snapshot emitted for every ingested measurement or heartbeat."""

    alert: AlertLevel = AlertLevel.NONE
    perclos: float = 0.0
    is_calibrated: bool = False
    calibration_progress: float = 0.0
    continuous_closure_progress: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["alert"] = self.alert.value
        return data


@dataclass(frozen=True)
class WindowSample:
    time: float
    is_closed: bool


@dataclass
class ClosureEvent:
    """A committed closed-eye episode with timing."""

    start_time: float  # monotonic seconds (OPEN -> CLOSED transition)
    end_time: float    # monotonic seconds (CLOSED -> OPEN, or session end)

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000.0


@dataclass
class TimedState:
    """An emitted state together with the timestamp that produced it."""

    timestamp: float
    state: EvaluationState


@dataclass
class SessionMeta:
    session_id: str
    started_at: str    # ISO8601
    ended_at: Optional[str] = None
    source: str = ""
    fast_recovery: bool = True
    config: dict = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)
