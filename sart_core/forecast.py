"""
Forecast engine — a point estimate of the user's score for "right now".

Combines the user baseline at the current hour with the sessions of the
current local window (the time-of-day bin containing now):

  - no local sessions:       forecast = baseline
  - last local session fresh (<= fresh_minutes ago):
                             forecast ~ that measurement (95% weight)
  - otherwise:               blend local mean and baseline; the local
                             weight steps down as the last local test ages

Confidence comes from the local-window count first and the total history
second, so stale out-of-window history alone can never read as "high".
"""

import logging
import numpy as np
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from .baseline import UserBaselineEstimator
from .circadian import day_segment
from .history import prepare_history, start_of_day, bin_index
from .scoring import clamp, round_half_up
from .types import (
    BaselinePoint,
    ForecastResult,
    SessionDeviation,
    TodayDeviations,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    CONFIDENCE_HIGH,
)

logger = logging.getLogger(__name__)


# Forecast labels
FOCUSED = "focused"
STABLE = "stable"
FRAGILE = "fragile"
SCATTERED = "scattered"


@dataclass(frozen=True)
class DecayStep:
    max_hours: float
    local_weight: float


@dataclass(frozen=True)
class LabelBand:
    min_score: float
    label: str


@dataclass(frozen=True)
class ForecastPolicy:
    fresh_minutes: float = 5.0
    fresh_local_weight: float = 0.95
    decay_steps: Tuple[DecayStep, ...] = (
        DecayStep(2.0, 0.7),
        DecayStep(6.0, 0.5),
        DecayStep(24.0, 0.3),
    )
    stale_local_weight: float = 0.2
    recent_count: int = 2
    # 0 = today only; N also admits the same bin on the previous N days
    local_window_days: int = 0
    min_total_for_confidence: int = 5
    high_confidence_local: int = 3
    label_bands: Tuple[LabelBand, ...] = (
        LabelBand(75.0, FOCUSED),
        LabelBand(60.0, STABLE),
        LabelBand(45.0, FRAGILE),
    )
    floor_label: str = SCATTERED

    def local_weight(self, hours_ago: float) -> float:
        for step in sorted(self.decay_steps, key=lambda s: s.max_hours):
            if hours_ago <= step.max_hours:
                return step.local_weight
        return self.stale_local_weight

    def label_for(self, score: Optional[float]) -> Optional[str]:
        if score is None:
            return None
        for band in sorted(self.label_bands, key=lambda b: b.min_score, reverse=True):
            if score >= band.min_score:
                return band.label
        return self.floor_label

    def confidence_for(self, n_local: int, n_total: int) -> str:
        if n_total < self.min_total_for_confidence or n_local == 0:
            return CONFIDENCE_LOW
        if n_local < self.high_confidence_local:
            return CONFIDENCE_MEDIUM
        return CONFIDENCE_HIGH


DEFAULT_FORECAST_POLICY = ForecastPolicy()


@dataclass(frozen=True)
class LocalWindow:
    n_local: int
    recent_mean: Optional[float]
    last_timestamp: Optional[datetime]
    total_sessions: int

    def minutes_since_last(self, now: datetime) -> Optional[float]:
        if self.last_timestamp is None:
            return None
        return (now - self.last_timestamp).total_seconds() / 60.0


class ForecastEngine:
    """Forecast for one moment from a history snapshot. Holds no state."""

    def __init__(
        self,
        estimator: Optional[UserBaselineEstimator] = None,
        policy: ForecastPolicy = DEFAULT_FORECAST_POLICY,
    ):
        self.estimator = estimator if estimator is not None else UserBaselineEstimator()
        self.policy = policy

    def local_window(self, history: Iterable, now: datetime) -> LocalWindow:
        sessions = prepare_history(history, now, self.estimator.policy.lookback_days)
        width = self.estimator.policy.bin_width_hours
        current_bin = bin_index(now.hour, width)
        window_start = start_of_day(now) - timedelta(days=self.policy.local_window_days)

        local = [
            s for s in sessions
            if s.timestamp >= window_start and bin_index(s.timestamp.hour, width) == current_bin
        ]
        if not local:
            return LocalWindow(0, None, None, len(sessions))

        recent = [s.score for s in local[: self.policy.recent_count]]
        return LocalWindow(
            n_local=len(local),
            recent_mean=float(np.mean(recent)),
            last_timestamp=local[0].timestamp,
            total_sessions=len(sessions),
        )

    def forecast(
        self,
        history: Optional[Iterable],
        now: datetime,
        baseline: Optional[List[BaselinePoint]] = None,
    ) -> ForecastResult:
        history = list(history or [])
        if baseline is None:
            baseline = self.estimator.estimate(history, now)

        typical = baseline[now.hour].value
        window = self.local_window(history, now)
        minutes_ago = window.minutes_since_last(now)

        if window.recent_mean is None:
            logger.debug("No local-window sessions; forecasting from baseline")
            combined = typical
        else:
            if minutes_ago <= self.policy.fresh_minutes:
                w_local = self.policy.fresh_local_weight
            else:
                w_local = self.policy.local_weight(minutes_ago / 60.0)
            logger.debug(
                "Local window: n=%d, last %.1f min ago, weight %.2f",
                window.n_local, minutes_ago, w_local,
            )
            combined = w_local * window.recent_mean + (1.0 - w_local) * typical

        score = int(round_half_up(clamp(combined)))
        return ForecastResult(
            forecast_score=score,
            label=self.policy.label_for(score),
            confidence=self.policy.confidence_for(window.n_local, window.total_sessions),
            segment=day_segment(now.hour),
            typical_at_this_time=typical,
            total_sessions=window.total_sessions,
            local_sessions=window.n_local,
        )

    def today_deviations(
        self,
        history: Optional[Iterable],
        now: datetime,
        baseline: Optional[List[BaselinePoint]] = None,
    ) -> TodayDeviations:
        """How each of today's sessions compares to the baseline at its hour."""
        history = list(history or [])
        if baseline is None:
            baseline = self.estimator.estimate(history, now)

        today = start_of_day(now)
        sessions = [
            s for s in prepare_history(history, now, self.estimator.policy.lookback_days)
            if s.timestamp >= today
        ]
        sessions.sort(key=lambda s: s.timestamp)

        deviations = []
        for s in sessions:
            expected = baseline[s.timestamp.hour].value
            deviations.append(SessionDeviation(
                timestamp=s.timestamp,
                hour=s.timestamp.hour,
                score=s.score,
                baseline_at_hour=expected,
                delta=s.score - expected,
            ))
        if not deviations:
            return TodayDeviations()
        return TodayDeviations(
            sessions=tuple(deviations),
            average_delta=float(np.mean([d.delta for d in deviations])),
        )
