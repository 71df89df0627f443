"""Application-wide configuration with typed fields and sane defaults."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path("config.json")


@dataclass
class EvaluatorConfig:
    # Smoothing
    smoothing_alpha: float = 0.25          # EMA weight for the new closedness sample

    # Calibration
    calibration_duration_s: float = 6.0
    calibration_sample_ceiling: float = 0.35  # averages at/above this are not collected
    calibration_min_samples: int = 30
    default_open_threshold: float = 0.55
    default_close_threshold: float = 0.80
    open_offset: float = 0.25              # open threshold = median + offset
    close_offset: float = 0.60
    open_range: tuple[float, float] = (0.35, 0.70)
    close_range: tuple[float, float] = (0.70, 0.92)

    # PERCLOS window
    window_s: float = 60.0
    fast_recovery: bool = True             # False = trim the window by time only
    recovery_evictions: int = 5            # closed samples dropped per both-open frame

    # Alert policy
    continuous_alarm_s: float = 1.2
    perclos_warning: float = 0.22
    perclos_alarm: float = 0.35

    # Face lost
    face_lost_timeout_s: float = 1.0

    def validate(self) -> None:
        """Raise ``ValueError`` if the values cannot produce a sane evaluator."""
        if not 0.0 < self.smoothing_alpha <= 1.0:
            raise ValueError(f"smoothing_alpha must be in (0, 1], got {self.smoothing_alpha}")
        for name in ("calibration_duration_s", "window_s", "continuous_alarm_s", "face_lost_timeout_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.calibration_min_samples < 1:
            raise ValueError("calibration_min_samples must be at least 1")
        if self.recovery_evictions < 0:
            raise ValueError("recovery_evictions must not be negative")
        if not self.default_open_threshold < self.default_close_threshold:
            raise ValueError("default_open_threshold must be below default_close_threshold")
        open_lo, open_hi = self.open_range
        close_lo, close_hi = self.close_range
        if open_lo > open_hi or close_lo > close_hi:
            raise ValueError("clamp ranges must be (low, high)")
        # Collected medians lie in [0, ceiling); the highest learnable open
        # threshold must stay below the lowest learnable close threshold.
        highest_open = min(open_hi, max(open_lo, self.calibration_sample_ceiling + self.open_offset))
        lowest_close = max(close_lo, min(close_hi, self.close_offset))
        if highest_open >= lowest_close:
            raise ValueError(
                f"open_range {self.open_range} and close_range {self.close_range} "
                "can produce open_threshold >= close_threshold"
            )
        if not 0.0 <= self.perclos_warning <= self.perclos_alarm <= 1.0:
            raise ValueError("expected 0 <= perclos_warning <= perclos_alarm <= 1")

    @classmethod
    def from_dict(cls, data: dict) -> "EvaluatorConfig":
        cfg = cls()
        known = {f.name for f in fields(cls)}
        for k, v in data.items():
            if k not in known:
                logger.debug("Ignoring unknown evaluator setting %r", k)
                continue
            if k in ("open_range", "close_range"):
                v = (float(v[0]), float(v[1]))
            setattr(cfg, k, v)
        return cfg


@dataclass
class Config:
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)

    # Session output
    runs_dir: Optional[str] = "runs"

    # Logging
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Path = _CONFIG_PATH) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(asdict(self), fh, indent=2)
        logger.debug("Config saved.")

    @classmethod
    def load(cls, path: Path = _CONFIG_PATH) -> "Config":
        if not path.exists():
            return cls()
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
            cfg = cls()
            for k, v in data.items():
                if k == "evaluator":
                    cfg.evaluator = EvaluatorConfig.from_dict(v)
                elif hasattr(cfg, k):
                    setattr(cfg, k, v)
            cfg.evaluator.validate()
            logger.debug("Config loaded from %s", path)
            return cfg
        except (OSError, json.JSONDecodeError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Could not load config (%s); using defaults.", exc)
            return cls()
