"""Safe, buffered writer for session data files."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

from domain.models import ClosureEvent, Measurement, SessionMeta, TimedState

logger = logging.getLogger(__name__)

_MEASUREMENT_FIELDS = ["timestamp", "left", "right"]
_STATE_FIELDS = [
    "timestamp", "alert", "perclos",
    "is_calibrated", "calibration_progress", "continuous_closure_progress",
]
_EVENT_FIELDS = ["start_time", "end_time", "duration_ms"]


class SessionWriter:
    """Creates a session directory and writes CSV/JSON files with line-buffering
    so data is not lost if the process crashes."""

    def __init__(self, session_dir: Path) -> None:
        self.session_dir = session_dir
        session_dir.mkdir(parents=True, exist_ok=True)

        # Open files in line-buffered mode (buffering=1 applies to text mode)
        self._mf = open(session_dir / "measurements.csv", "w", newline="", buffering=1, encoding="utf-8")
        self._sf = open(session_dir / "states.csv", "w", newline="", buffering=1, encoding="utf-8")
        self._ef = open(session_dir / "events.csv", "w", newline="", buffering=1, encoding="utf-8")

        self._mw = csv.DictWriter(self._mf, fieldnames=_MEASUREMENT_FIELDS)
        self._sw = csv.DictWriter(self._sf, fieldnames=_STATE_FIELDS)
        self._ew = csv.DictWriter(self._ef, fieldnames=_EVENT_FIELDS)

        self._mw.writeheader()
        self._sw.writeheader()
        self._ew.writeheader()

        self._closed = False
        logger.info("SessionWriter opened at %s", session_dir)

    # ------------------------------------------------------------------
    # Write methods
    # ------------------------------------------------------------------

    def write_measurement(self, m: Measurement) -> None:
        if self._closed:
            return
        self._mw.writerow(
            {
                "timestamp": f"{m.timestamp:.6f}",
                "left": f"{m.left_closedness:.4f}",
                "right": f"{m.right_closedness:.4f}",
            }
        )

    def write_face_lost(self, timestamp: float) -> None:
        """A heartbeat without a face: blank closedness columns."""
        if self._closed:
            return
        self._mw.writerow({"timestamp": f"{timestamp:.6f}", "left": "", "right": ""})

    def write_state(self, ts: TimedState) -> None:
        if self._closed:
            return
        s = ts.state
        self._sw.writerow(
            {
                "timestamp": f"{ts.timestamp:.6f}",
                "alert": s.alert.value,
                "perclos": f"{s.perclos:.4f}",
                "is_calibrated": int(s.is_calibrated),
                "calibration_progress": f"{s.calibration_progress:.4f}",
                "continuous_closure_progress": f"{s.continuous_closure_progress:.4f}",
            }
        )

    def write_event(self, ev: ClosureEvent) -> None:
        if self._closed:
            return
        self._ew.writerow(
            {
                "start_time": f"{ev.start_time:.6f}",
                "end_time": f"{ev.end_time:.6f}",
                "duration_ms": f"{ev.duration_ms:.2f}",
            }
        )

    def write_meta(self, meta: SessionMeta) -> None:
        _write_json(self.session_dir / "session_meta.json", meta.to_dict())

    def write_debrief(self, debrief: dict[str, Any]) -> None:
        _write_json(self.session_dir / "debrief.json", debrief)

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._mf.close()
        self._sf.close()
        self._ef.close()
        logger.info("SessionWriter closed.")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _write_json(path: Path, data: Any) -> None:
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, default=str)
    except OSError as exc:
        logger.error("Failed to write %s: %s", path, exc)
