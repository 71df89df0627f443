"""Alert sinks driven by the session controller."""

from __future__ import annotations

import logging
from typing import Protocol

from domain.models import AlertLevel

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    """Audio/haptic output.  Implementations live outside the evaluation core."""

    def play_warning(self) -> None: ...

    def play_alarm(self) -> None: ...

    def stop(self) -> None: ...


def dispatch_alert(sink: AlertSink, alert: AlertLevel) -> None:
    """Map an alert level onto the sink: NONE and NO_FACE silence it."""
    if alert == AlertLevel.WARNING:
        sink.play_warning()
    elif alert == AlertLevel.ALARM:
        sink.play_alarm()
    else:
        sink.stop()


class LoggingAlertSink:
    """Headless sink that reports alerts through the log."""

    def play_warning(self) -> None:
        logger.warning("ALERT: drowsiness warning")

    def play_alarm(self) -> None:
        logger.error("ALERT: drowsiness alarm")

    def stop(self) -> None:
        logger.info("Alert stopped.")


class RecordingAlertSink:
    """Collects the calls it receives, in order."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def play_warning(self) -> None:
        self.calls.append("warning")

    def play_alarm(self) -> None:
        self.calls.append("alarm")

    def stop(self) -> None:
        self.calls.append("stop")
