"""Priority-ordered alert decision."""

from __future__ import annotations

from dataclasses import dataclass

from domain.models import AlertLevel


@dataclass(frozen=True)
class AlertPolicy:
    """Stateless mapping from session signals to an :class:`AlertLevel`.

    Priority: face lost, then the calibration-phase safety net (continuous
    closure only), then continuous closure and windowed PERCLOS once the
    thresholds are trustworthy.
    """

    continuous_alarm_s: float = 1.2
    perclos_warning: float = 0.22
    perclos_alarm: float = 0.35

    def decide(
        self,
        face_lost: bool,
        is_calibrated: bool,
        closed_duration: float,
        perclos: float,
    ) -> AlertLevel:
        if face_lost:
            return AlertLevel.NO_FACE
        long_closure = closed_duration >= self.continuous_alarm_s
        if not is_calibrated:
            return AlertLevel.ALARM if long_closure else AlertLevel.NONE
        if long_closure:
            return AlertLevel.ALARM
        if perclos >= self.perclos_alarm:
            return AlertLevel.ALARM
        if perclos >= self.perclos_warning:
            return AlertLevel.WARNING
        return AlertLevel.NONE

    def closure_progress(self, closed_duration: float) -> float:
        return min(1.0, max(0.0, closed_duration / self.continuous_alarm_s))
