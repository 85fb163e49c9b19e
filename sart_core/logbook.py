"""
Daily logbook — per-day aggregation of session scores and 7-day stats.
"""

import numpy as np
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Dict

from .history import parse_session_records
from .scoring import round_half_up
from .types import SessionRecord


# Score bands: (name, lower bound inclusive)
SCORE_BANDS = (
    ("good", 70.0),
    ("okay", 40.0),
    ("low", 0.0),
)
NO_DATA = "no_data"


def score_band(score: Optional[float]) -> str:
    if score is None or np.isnan(score):
        return NO_DATA
    for name, lower in SCORE_BANDS:
        if score >= lower:
            return name
    return SCORE_BANDS[-1][0]


@dataclass(frozen=True)
class DailyScore:
    day: date
    daily_score: int
    test_count: int
    first_test_at: datetime
    last_test_at: datetime


@dataclass(frozen=True)
class WeeklyStats:
    seven_day_average: Optional[int]
    best_daily_score: Optional[int]
    worst_daily_score: Optional[int]
    active_days: int


def aggregate_daily_scores(history: Iterable) -> List[DailyScore]:
    """Mean score per calendar day, newest day first. Invalid sessions skipped."""
    by_day: Dict[date, List[SessionRecord]] = {}
    for rec in parse_session_records(history):
        if rec.valid:
            by_day.setdefault(rec.timestamp.date(), []).append(rec)

    daily = []
    for day, records in by_day.items():
        ordered = sorted(records, key=lambda r: r.timestamp)
        daily.append(DailyScore(
            day=day,
            daily_score=int(round_half_up(np.mean([r.score for r in records]))),
            test_count=len(records),
            first_test_at=ordered[0].timestamp,
            last_test_at=ordered[-1].timestamp,
        ))
    daily.sort(key=lambda d: d.day, reverse=True)
    return daily


def weekly_stats(daily: Iterable[DailyScore], reference: date, days: int = 7) -> WeeklyStats:
    cutoff = reference - timedelta(days=days)
    recent = [d.daily_score for d in daily if cutoff <= d.day <= reference]
    if not recent:
        return WeeklyStats(None, None, None, 0)
    return WeeklyStats(
        seven_day_average=int(round_half_up(np.mean(recent))),
        best_daily_score=max(recent),
        worst_daily_score=min(recent),
        active_days=len(recent),
    )
