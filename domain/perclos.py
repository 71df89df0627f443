"""Trailing-window PERCLOS (percentage of eye closure) aggregator."""

from __future__ import annotations

import logging
from collections import deque

from domain.models import WindowSample

logger = logging.getLogger(__name__)


class PerclosWindow:
    """Time-ordered window of open/closed samples.

    With *fast_recovery* enabled, every frame on which both eyes are clearly
    open drops up to *recovery_evictions* of the oldest closed samples, so the
    ratio falls quickly once the subject reopens their eyes instead of waiting
    for the full window to age out.  With it disabled the window is trimmed by
    time only.
    """

    def __init__(
        self,
        window_s: float = 60.0,
        fast_recovery: bool = True,
        recovery_evictions: int = 5,
    ) -> None:
        self.window_s = window_s
        self.fast_recovery = fast_recovery
        self.recovery_evictions = recovery_evictions
        self._samples: deque[WindowSample] = deque()
        self._closed = 0

    def append(self, now: float, is_closed: bool, both_open: bool = False) -> None:
        self._samples.append(WindowSample(time=now, is_closed=is_closed))
        if is_closed:
            self._closed += 1

        if self.fast_recovery and both_open:
            self._evict_oldest_closed(self.recovery_evictions)

        # Samples must satisfy time > now - window
        cutoff = now - self.window_s
        while self._samples and self._samples[0].time <= cutoff:
            if self._samples.popleft().is_closed:
                self._closed -= 1

    def perclos(self) -> float:
        if not self._samples:
            return 0.0
        return self._closed / len(self._samples)

    def clear(self) -> None:
        self._samples.clear()
        self._closed = 0

    @property
    def closed_count(self) -> int:
        return self._closed

    @property
    def samples(self) -> list[WindowSample]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _evict_oldest_closed(self, limit: int) -> None:
        scanned: deque[WindowSample] = deque()
        removed = 0
        while self._samples and removed < limit and self._closed > 0:
            sample = self._samples.popleft()
            if sample.is_closed:
                removed += 1
                self._closed -= 1
            else:
                scanned.append(sample)
        # Open samples scanned past go back in front, order preserved
        self._samples.extendleft(reversed(scanned))
        if removed:
            logger.debug("Fast recovery dropped %d closed samples", removed)
