"""Exponential smoothing of per-eye closedness values."""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)


def smooth(new: float, old: float, alpha: float) -> float:
    return alpha * new + (1.0 - alpha) * old


def sanitize_closedness(value: float, fallback: float) -> float:
    """Map a raw closedness reading into [0, 1].

    ``+inf`` becomes 1, ``-inf`` becomes 0 and ``NaN`` is replaced by
    *fallback* (normally the eye's current smoothed value, so the filter
    does not move).
    """
    raw = float(value)
    clean = float(
        np.clip(np.nan_to_num(raw, nan=fallback, posinf=1.0, neginf=0.0), 0.0, 1.0)
    )
    if clean != raw:
        logger.debug("Closedness %r sanitised to %.3f", value, clean)
    return clean


class ClosednessFilter:
    """Exponential moving average applied independently to each eye.

    Both eyes start at 0.0 (fully open) rather than being seeded from the
    first reading, so the first frames after a reset ramp up gradually.
    """

    def __init__(self, alpha: float = 0.25) -> None:
        self.alpha = alpha
        self.left: float = 0.0
        self.right: float = 0.0

    def update(self, left: float, right: float) -> tuple[float, float]:
        left = sanitize_closedness(left, self.left)
        right = sanitize_closedness(right, self.right)
        self.left = smooth(left, self.left, self.alpha)
        self.right = smooth(right, self.right, self.alpha)
        return self.left, self.right

    def reset(self) -> None:
        self.left = 0.0
        self.right = 0.0
