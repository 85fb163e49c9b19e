"""
Circadian baseline — the fixed 24-hour reference curve of typical scores.

Population assumption, identical for every user and never learned:
night trough around 02:00-03:00, ramp from 06:00, late-morning peak,
slight post-lunch dip at 14:00, afternoon plateau, evening decline.
"""

import numpy as np
from datetime import datetime
from typing import List, Sequence

from .types import BaselinePoint


GLOBAL_BASELINE_VALUES = (
    38, 36, 35, 35, 36, 38,  # 00-05 night
    40, 50, 60, 70,          # 06-09 waking up
    80, 80, 80, 78,          # 10-13 peak
    75,                      # 14 post-lunch dip
    80, 80, 78, 75, 70,      # 15-19 plateau
    65, 60, 50, 42,          # 20-23 evening
)

# Day segments: (name, start hour inclusive, end hour exclusive)
DAY_SEGMENTS = (
    ("morning", 6, 10),
    ("forenoon", 10, 12),
    ("midday", 12, 16),
    ("afternoon", 16, 20),
)
EVENING = "evening"  # 20:00-05:59, wraps midnight


def normalize_hour(hour: int) -> int:
    return int(hour) % 24


def day_segment(hour: int) -> str:
    h = normalize_hour(hour)
    for name, start, end in DAY_SEGMENTS:
        if start <= h < end:
            return name
    return EVENING


class CircadianBaseline:
    """Immutable hour -> typical score lookup with sub-hour interpolation."""

    def __init__(self, values: Sequence[float] = GLOBAL_BASELINE_VALUES):
        if len(values) != 24:
            raise ValueError(f"Circadian table needs 24 values, got {len(values)}")
        if any(not 0 <= v <= 100 for v in values):
            raise ValueError("Circadian values must lie in [0, 100]")
        self._values = tuple(values)

    @property
    def values(self) -> tuple:
        return self._values

    def value_for_hour(self, hour: int) -> float:
        return self._values[normalize_hour(hour)]

    def value_for_time(self, hour: int, minute: float = 0) -> float:
        """Linear interpolation between this hour and the next (wrapping)."""
        h = normalize_hour(hour)
        current = self._values[h]
        if minute == 0:
            return current
        nxt = self._values[(h + 1) % 24]
        return current + (nxt - current) * (minute / 60.0)

    def value_at(self, moment: datetime) -> float:
        return self.value_for_time(moment.hour, moment.minute + moment.second / 60.0)

    def bin_value(self, bin_index: int, bin_width: int) -> float:
        """Mean of the hours that make up one time-of-day bin."""
        start = bin_index * bin_width
        return float(np.mean([self.value_for_hour(h) for h in range(start, start + bin_width)]))

    def points(self) -> List[BaselinePoint]:
        return [
            BaselinePoint(hour=h, global_value=self._values[h])
            for h in range(24)
        ]

    def stats(self) -> dict:
        arr = np.array(self._values, dtype=float)
        return {
            "min": float(arr.min()),
            "max": float(arr.max()),
            "average": int(np.floor(arr.mean() + 0.5)),
            "peak_hour": int(np.argmax(arr)),
            "trough_hour": int(np.argmin(arr)),
        }


DEFAULT_CIRCADIAN = CircadianBaseline()
