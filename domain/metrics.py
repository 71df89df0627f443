"""Compute debrief statistics from session data."""

from __future__ import annotations

import statistics
from typing import Any, Optional

import numpy as np

from domain.models import AlertLevel, ClosureEvent, TimedState


def compute_debrief(
    states: list[TimedState],
    events: list[ClosureEvent],
    session_duration_s: float,
    session_start: Optional[float] = None,
) -> dict[str, Any]:
    """Return a flat dict of debrief metrics suitable for JSON serialisation.

    *session_start* anchors the level totals; without it the first state
    is taken as the start.  Time before the first state counts as NO_FACE.
    """

    # ── Time per alert level ──────────────────────────────────────────────
    # Each state is held until the next one; the last is held to session end.
    level_s: dict[AlertLevel, float] = {a: 0.0 for a in AlertLevel}
    t0 = session_start
    if t0 is None:
        t0 = states[0].timestamp if states else 0.0
    if states:
        level_s[AlertLevel.NO_FACE] += max(0.0, states[0].timestamp - t0)
        session_end = max(states[-1].timestamp, t0 + session_duration_s)
        for cur, nxt in zip(states, states[1:]):
            level_s[cur.state.alert] += max(0.0, nxt.timestamp - cur.timestamp)
        level_s[states[-1].state.alert] += max(0.0, session_end - states[-1].timestamp)

    total = session_duration_s if session_duration_s > 0 else 1.0

    # ── Alert onsets (edges into WARNING / ALARM) ─────────────────────────
    n_warnings = 0
    n_alarms = 0
    previous = AlertLevel.NONE
    for ts in states:
        alert = ts.state.alert
        if alert != previous:
            if alert == AlertLevel.WARNING:
                n_warnings += 1
            elif alert == AlertLevel.ALARM:
                n_alarms += 1
        previous = alert

    # ── Closure episodes ──────────────────────────────────────────────────
    closure_ms: list[float] = [ev.duration_ms for ev in events]

    # ── PERCLOS (face-present states only) ────────────────────────────────
    perclos_values = np.array(
        [ts.state.perclos for ts in states if ts.state.alert != AlertLevel.NO_FACE],
        dtype=np.float64,
    )

    # ── Timeline for charts (every 3rd state ≈ 10 Hz at 30 fps) ───────────
    timeline: list[dict[str, Any]] = []
    if states:
        timeline = [
            {
                "t_s": round(ts.timestamp - t0, 3),
                "perclos": round(ts.state.perclos, 4),
                "alert": ts.state.alert.value,
            }
            for ts in states[::3]
        ]

    return {
        "total_duration_s": round(session_duration_s, 3),
        "none_s": round(level_s[AlertLevel.NONE], 3),
        "warning_s": round(level_s[AlertLevel.WARNING], 3),
        "alarm_s": round(level_s[AlertLevel.ALARM], 3),
        "no_face_s": round(level_s[AlertLevel.NO_FACE], 3),
        "warning_pct": round(level_s[AlertLevel.WARNING] / total * 100, 1),
        "alarm_pct": round(level_s[AlertLevel.ALARM] / total * 100, 1),
        "no_face_pct": round(level_s[AlertLevel.NO_FACE] / total * 100, 1),
        "n_warnings": n_warnings,
        "n_alarms": n_alarms,
        "n_closures": len(closure_ms),
        "closure_durations_ms": [round(d, 1) for d in closure_ms],
        "avg_closure_ms": round(statistics.mean(closure_ms), 1) if closure_ms else 0.0,
        "max_closure_ms": round(max(closure_ms), 1) if closure_ms else 0.0,
        "mean_perclos": round(float(perclos_values.mean()), 4) if perclos_values.size else 0.0,
        "peak_perclos": round(float(perclos_values.max()), 4) if perclos_values.size else 0.0,
        "calibrated": bool(states[-1].state.is_calibrated) if states else False,
        "total_states": len(states),
        "timeline": timeline,
    }
