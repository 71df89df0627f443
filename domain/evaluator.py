"""Drowsiness evaluator: turns a stream of eye-closure measurements into alert states.

Pipeline per measurement::

    sanitise -> smooth -> calibrate -> hysteresis -> PERCLOS window -> policy

The evaluator is synchronous and holds no locks.  Callers must serialise
``reset``/``ingest``/``ingest_face_lost`` on one instance and supply
non-decreasing timestamps within a session.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from app.config import EvaluatorConfig
from calibration.baseline import BaselineCalibrator, Thresholds
from domain.filters import ClosednessFilter
from domain.models import (
    AlertLevel,
    ClosureEvent,
    EvaluationState,
    EyeState,
    Measurement,
)
from domain.perclos import PerclosWindow
from domain.policy import AlertPolicy
from domain.state_machine import EyeStateMachine

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """All mutable per-session state.  Owned by exactly one evaluator."""

    smoother: ClosednessFilter
    calibrator: BaselineCalibrator
    eyes: EyeStateMachine
    window: PerclosWindow
    last_face_seen_time: float = 0.0
    is_face_lost: bool = True
    last_timestamp: Optional[float] = None

    @classmethod
    def from_config(cls, cfg: EvaluatorConfig) -> "SessionContext":
        return cls(
            smoother=ClosednessFilter(alpha=cfg.smoothing_alpha),
            calibrator=BaselineCalibrator(
                duration=cfg.calibration_duration_s,
                sample_ceiling=cfg.calibration_sample_ceiling,
                min_samples=cfg.calibration_min_samples,
                defaults=Thresholds(
                    open=cfg.default_open_threshold,
                    close=cfg.default_close_threshold,
                ),
                open_offset=cfg.open_offset,
                close_offset=cfg.close_offset,
                open_range=tuple(cfg.open_range),
                close_range=tuple(cfg.close_range),
            ),
            eyes=EyeStateMachine(),
            window=PerclosWindow(
                window_s=cfg.window_s,
                fast_recovery=cfg.fast_recovery,
                recovery_evictions=cfg.recovery_evictions,
            ),
        )


class DrowsinessEvaluator:
    def __init__(self, config: Optional[EvaluatorConfig] = None) -> None:
        self.config = config or EvaluatorConfig()
        self.config.validate()
        self.policy = AlertPolicy(
            continuous_alarm_s=self.config.continuous_alarm_s,
            perclos_warning=self.config.perclos_warning,
            perclos_alarm=self.config.perclos_alarm,
        )
        self.context = SessionContext.from_config(self.config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reset(self, now: float) -> None:
        ctx = self.context
        ctx.smoother.reset()
        ctx.calibrator.reset()
        ctx.eyes.reset(now)
        ctx.window.clear()
        ctx.last_face_seen_time = now
        ctx.is_face_lost = True
        ctx.last_timestamp = now
        logger.info(
            "Evaluator reset at %.3f  (fast_recovery=%s)", now, ctx.window.fast_recovery
        )

    def ingest(self, measurement: Measurement) -> EvaluationState:
        ctx = self.context
        now = self._checked_time(measurement.timestamp)
        ctx.last_face_seen_time = now
        ctx.is_face_lost = False

        left, right = ctx.smoother.update(
            measurement.left_closedness, measurement.right_closedness
        )

        ctx.calibrator.observe(now, left, right)

        state = ctx.eyes.update(left, right, ctx.calibrator.thresholds, now)

        ctx.window.append(
            now,
            is_closed=state == EyeState.CLOSED,
            both_open=ctx.eyes.last_both_open,
        )
        perclos = ctx.window.perclos()

        closed_for = ctx.eyes.closed_duration(now)
        alert = self.policy.decide(
            face_lost=ctx.is_face_lost,
            is_calibrated=ctx.calibrator.is_calibrated,
            closed_duration=closed_for,
            perclos=perclos,
        )

        return EvaluationState(
            alert=alert,
            perclos=perclos,
            is_calibrated=ctx.calibrator.is_calibrated,
            calibration_progress=ctx.calibrator.progress(now),
            continuous_closure_progress=self.policy.closure_progress(closed_for),
        )

    def ingest_face_lost(self, timestamp: float) -> EvaluationState:
        """Heartbeat from the tracker when no face was found in the frame.

        Does not feed the window, the calibrator or the eye-state tracker.
        """
        ctx = self.context
        now = self._checked_time(timestamp)
        if now - ctx.last_face_seen_time > self.config.face_lost_timeout_s:
            if not ctx.is_face_lost:
                logger.info(
                    "Face lost: no measurement for %.2fs", now - ctx.last_face_seen_time
                )
            ctx.is_face_lost = True
            return self._snapshot(now, AlertLevel.NO_FACE)
        return self._snapshot(now, AlertLevel.NONE)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def thresholds(self) -> Thresholds:
        return self.context.calibrator.thresholds

    @property
    def eye_state(self) -> EyeState:
        return self.context.eyes.current_state

    @property
    def is_calibrated(self) -> bool:
        return self.context.calibrator.is_calibrated

    @property
    def is_face_lost(self) -> bool:
        return self.context.is_face_lost

    @property
    def perclos(self) -> float:
        return self.context.window.perclos()

    @property
    def closure_events(self) -> list[ClosureEvent]:
        return self.context.eyes.events

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _checked_time(self, timestamp: float) -> float:
        """Enforce finite, non-decreasing time; bad stamps are clamped, not replayed."""
        ctx = self.context
        last = ctx.last_timestamp
        if not math.isfinite(timestamp):
            clamped = last if last is not None else ctx.last_face_seen_time
            logger.warning(
                "Non-finite timestamp %r; clamping to %.6f", timestamp, clamped
            )
            return clamped
        if last is not None and timestamp < last:
            logger.warning(
                "Timestamp went backwards (%.6f < %.6f); clamping to last seen time",
                timestamp,
                last,
            )
            return last
        ctx.last_timestamp = timestamp
        return timestamp

    def _snapshot(self, now: float, alert: AlertLevel) -> EvaluationState:
        ctx = self.context
        return EvaluationState(
            alert=alert,
            perclos=ctx.window.perclos(),
            is_calibrated=ctx.calibrator.is_calibrated,
            calibration_progress=ctx.calibrator.progress(now),
            continuous_closure_progress=0.0,
        )
