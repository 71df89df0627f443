"""Per-subject open/closed threshold calibration from the first seconds of a session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Thresholds:
    open: float = 0.55
    close: float = 0.80


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


class BaselineCalibrator:
    """Learns hysteresis thresholds from the smoothed closedness of open eyes.

    Collecting starts on the first observation after :meth:`reset`.  Only
    averages below *sample_ceiling* are kept so a blink or an already
    drooping subject does not drag the baseline up.  The first observation
    later than *duration* seconds finalises the thresholds exactly once;
    with fewer than *min_samples* clean samples the defaults are kept.
    """

    def __init__(
        self,
        duration: float = 6.0,
        sample_ceiling: float = 0.35,
        min_samples: int = 30,
        defaults: Thresholds = Thresholds(),
        open_offset: float = 0.25,
        close_offset: float = 0.60,
        open_range: tuple[float, float] = (0.35, 0.70),
        close_range: tuple[float, float] = (0.70, 0.92),
    ) -> None:
        self.duration = duration
        self.sample_ceiling = sample_ceiling
        self.min_samples = min_samples
        self.defaults = defaults
        self.open_offset = open_offset
        self.close_offset = close_offset
        self.open_range = open_range
        self.close_range = close_range

        self._start: Optional[float] = None
        self._samples: list[float] = []
        self._thresholds = defaults
        self._is_calibrated = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self._start = None
        self._samples.clear()
        self._thresholds = self.defaults
        self._is_calibrated = False

    def observe(self, now: float, smoothed_left: float, smoothed_right: float) -> None:
        if self._start is None:
            self._start = now
            self._samples.clear()
        if self._is_calibrated:
            return

        elapsed = now - self._start
        if elapsed <= self.duration:
            avg = (smoothed_left + smoothed_right) / 2.0
            if avg < self.sample_ceiling:
                self._samples.append(avg)
        else:
            self._finalize()

    def progress(self, now: float) -> float:
        if self._is_calibrated:
            return 1.0
        if self._start is None:
            return 0.0
        return min(1.0, max(0.0, (now - self._start) / self.duration))

    @property
    def thresholds(self) -> Thresholds:
        return self._thresholds

    @property
    def is_calibrated(self) -> bool:
        return self._is_calibrated

    @property
    def started_at(self) -> Optional[float]:
        return self._start

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _finalize(self) -> None:
        self._is_calibrated = True
        if len(self._samples) < self.min_samples:
            logger.warning(
                "Calibration collected only %d/%d clean samples; keeping defaults "
                "(open=%.2f close=%.2f)",
                len(self._samples),
                self.min_samples,
                self.defaults.open,
                self.defaults.close,
            )
            return

        median = float(np.median(self._samples))
        self._thresholds = Thresholds(
            open=_clamp(median + self.open_offset, *self.open_range),
            close=_clamp(median + self.close_offset, *self.close_range),
        )
        logger.info(
            "Calibration complete.  median=%.3f  open=%.3f  close=%.3f  N=%d",
            median,
            self._thresholds.open,
            self._thresholds.close,
            len(self._samples),
        )
