"""Read recorded closedness streams for offline replay."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from domain.models import Measurement

logger = logging.getLogger(__name__)

_REQUIRED = ("timestamp", "left", "right")


@dataclass
class MeasurementRow:
    """One row of a recording.  ``measurement`` is None for a face-lost tick."""

    timestamp: float
    measurement: Optional[Measurement]

    @property
    def is_face_lost(self) -> bool:
        return self.measurement is None


def read_measurements(path: Path) -> Iterator[MeasurementRow]:
    """Yield rows from a ``timestamp,left,right`` CSV.

    Rows with blank ``left``/``right`` are heartbeats without a face.
    Malformed rows are skipped with a warning.  Raises ``ValueError`` if
    the header lacks a required column.
    """
    with open(path, newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        missing = [c for c in _REQUIRED if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"{path}: missing column(s) {', '.join(missing)}")

        for line_no, row in enumerate(reader, start=2):
            try:
                ts = float(row["timestamp"])
                left = (row["left"] or "").strip()
                right = (row["right"] or "").strip()
                if not left and not right:
                    yield MeasurementRow(timestamp=ts, measurement=None)
                    continue
                yield MeasurementRow(
                    timestamp=ts,
                    measurement=Measurement(
                        timestamp=ts,
                        left_closedness=float(left),
                        right_closedness=float(right),
                    ),
                )
            except (TypeError, ValueError) as exc:
                logger.warning("%s:%d: skipping malformed row (%s)", path, line_no, exc)
