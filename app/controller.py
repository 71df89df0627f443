"""Session lifecycle controller – feeds the evaluator and drives the alert sink."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from app.alerting import AlertSink, LoggingAlertSink, dispatch_alert
from app.config import Config
from domain.evaluator import DrowsinessEvaluator
from domain.metrics import compute_debrief
from domain.models import (
    AlertLevel,
    ClosureEvent,
    EvaluationState,
    Measurement,
    SessionMeta,
    TimedState,
)
from storage.session_writer import SessionWriter

logger = logging.getLogger(__name__)


class SessionController:
    """Owns one evaluator and the consumer-side policy around it.

    Alerts are edge-triggered: the sink is only called when the alert level
    differs from the last one applied.  Face-lost heartbeats are applied only
    when they actually report NO_FACE.  Not thread-safe; funnel measurements
    and heartbeats through one thread.
    """

    def __init__(self, config: Config, sink: Optional[AlertSink] = None) -> None:
        self.config = config
        self.sink: AlertSink = sink or LoggingAlertSink()
        self.evaluator = DrowsinessEvaluator(config.evaluator)

        # Push-style listener (set by the caller)
        self.on_state_changed: Optional[Callable[[EvaluationState], None]] = None

        self._state = EvaluationState()
        self._last_alert = AlertLevel.NONE
        self._history: list[TimedState] = []

        self._session_writer: Optional[SessionWriter] = None
        self._session_dir: Optional[Path] = None
        self._session_meta: Optional[SessionMeta] = None
        self._session_start: Optional[float] = None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(self, now: float, source: str = "") -> Optional[Path]:
        """Reset the evaluator and, if a runs dir is configured, open a writer."""
        if self._session_writer is not None:
            self._session_writer.close()
            self._session_writer = None

        ts = datetime.now()
        session_id = ts.strftime("%Y-%m-%d_%H-%M-%S")
        self._session_meta = SessionMeta(
            session_id=session_id,
            started_at=ts.isoformat(),
            source=source,
            fast_recovery=self.config.evaluator.fast_recovery,
            config=asdict(self.config.evaluator),
        )

        self._session_dir = None
        if self.config.runs_dir:
            self._session_dir = Path(self.config.runs_dir) / session_id
            self._session_writer = SessionWriter(self._session_dir)
            self._session_writer.write_meta(self._session_meta)

        self.evaluator.reset(now)
        self.evaluator.context.eyes.set_on_transition(self._on_closure)
        self._session_start = now
        self._history = []
        self._last_alert = AlertLevel.NONE
        self._state = EvaluationState(alert=AlertLevel.NO_FACE)
        self._record(now)
        self._emit()

        logger.info("Session started: %s  source=%s", session_id, source or "-")
        return self._session_dir

    def stop_session(self, now: float) -> dict[str, Any]:
        if self._session_start is None:
            raise RuntimeError("Cannot stop session: no session running.")

        self.sink.stop()
        duration = max(0.0, now - self._session_start)

        # Close a closure still in progress
        last_ev = self.evaluator.context.eyes.force_end_segment(now)
        if last_ev and self._session_writer:
            self._session_writer.write_event(last_ev)

        debrief = compute_debrief(
            self._history,
            self.evaluator.closure_events,
            duration,
            session_start=self._session_start,
        )

        if self._session_meta:
            self._session_meta.ended_at = datetime.now().isoformat()
        if self._session_writer:
            if self._session_meta:
                self._session_writer.write_meta(self._session_meta)
            self._session_writer.write_debrief(debrief)
            self._session_writer.close()
            self._session_writer = None

        self._session_start = None
        logger.info(
            "Session stopped.  Duration=%.1fs  States=%d",
            duration,
            len(self._history),
        )
        return debrief

    # ------------------------------------------------------------------
    # Input from the tracking collaborator
    # ------------------------------------------------------------------

    def handle_measurement(self, measurement: Measurement) -> EvaluationState:
        self._require_session()
        if self._session_writer:
            self._session_writer.write_measurement(measurement)
        new_state = self.evaluator.ingest(measurement)
        self._apply(measurement.timestamp, new_state)
        return new_state

    def handle_face_lost(self, timestamp: float) -> EvaluationState:
        self._require_session()
        if self._session_writer:
            self._session_writer.write_face_lost(timestamp)
        new_state = self.evaluator.ingest_face_lost(timestamp)
        if new_state.alert == AlertLevel.NO_FACE:
            self._apply(timestamp, new_state)
        return new_state

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @property
    def state(self) -> EvaluationState:
        return self._state

    @property
    def history(self) -> list[TimedState]:
        return list(self._history)

    @property
    def session_dir(self) -> Optional[Path]:
        return self._session_dir

    @property
    def is_running(self) -> bool:
        return self._session_start is not None

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _require_session(self) -> None:
        if self._session_start is None:
            raise RuntimeError("No session running: call start_session() first.")

    def _apply(self, timestamp: float, new_state: EvaluationState) -> None:
        if new_state.alert != self._last_alert:
            logger.info("Alert: %s → %s", self._last_alert.value, new_state.alert.value)
            self._last_alert = new_state.alert
            dispatch_alert(self.sink, new_state.alert)

        self._state = new_state
        self._record(timestamp)
        self._emit()

    def _record(self, timestamp: float) -> None:
        timed = TimedState(timestamp=timestamp, state=self._state)
        self._history.append(timed)
        if self._session_writer:
            self._session_writer.write_state(timed)

    def _emit(self) -> None:
        if self.on_state_changed:
            self.on_state_changed(self._state)

    def _on_closure(self, event: ClosureEvent) -> None:
        if self._session_writer:
            self._session_writer.write_event(event)
