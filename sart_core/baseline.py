"""
User baseline estimation — blend sparse personal history into the
circadian curve, one value per hour of the day.

Algorithm:
  1. Keep counted sessions from the lookback window (default 30 days).
  2. Temporal split: sessions from before today train the baseline, so
     today's tests are compared against it instead of being folded in.
     Users still in onboarding (fewer than onboarding_threshold sessions)
     train on everything, today included, or they would have no baseline.
  3. Group training sessions into fixed-width time-of-day bins.
  4. Per bin with n sessions, blend the mean of the most recent min(2, n)
     sessions, the bin mean and the circadian bin value. Circadian weight
     shrinks as n grows. Empty bins fall back to the circadian curve.
  5. Broadcast each bin's value to its hours and clamp to [0, 100].

The result is a pure function of (history, now) and is never persisted.
"""

import logging
import math
import numpy as np
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from .circadian import CircadianBaseline, DEFAULT_CIRCADIAN
from .history import prepare_history, start_of_day, bin_index
from .scoring import clamp, round_half_up
from .types import BaselinePoint, SessionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlendWeights:
    recent: float
    bin_mean: float
    circadian: float

    def __post_init__(self):
        total = self.recent + self.bin_mean + self.circadian
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Blend weights must sum to 1, got {total}")


@dataclass(frozen=True)
class BaselinePolicy:
    lookback_days: int = 30
    bin_width_hours: int = 2
    onboarding_threshold: int = 15
    recent_count: int = 2
    single_sample: BlendWeights = BlendWeights(recent=0.6, bin_mean=0.0, circadian=0.4)
    few_samples: BlendWeights = BlendWeights(recent=0.6, bin_mean=0.2, circadian=0.2)
    many_samples: BlendWeights = BlendWeights(recent=0.6, bin_mean=0.3, circadian=0.1)
    many_samples_min: int = 5

    def __post_init__(self):
        if self.bin_width_hours <= 0 or 24 % self.bin_width_hours != 0:
            raise ValueError(f"bin_width_hours must divide 24, got {self.bin_width_hours}")
        if self.lookback_days <= 0:
            raise ValueError("lookback_days must be positive")

    @property
    def n_bins(self) -> int:
        return 24 // self.bin_width_hours

    def weights_for(self, n: int) -> BlendWeights:
        if n <= 1:
            return self.single_sample
        if n < self.many_samples_min:
            return self.few_samples
        return self.many_samples


DEFAULT_BASELINE_POLICY = BaselinePolicy()


@dataclass(frozen=True)
class BinEstimate:
    bin_index: int
    n: int
    value: float
    has_user_data: bool


class UserBaselineEstimator:
    """Produce 24 BaselinePoints from a user's session history.

    Usage:
        estimator = UserBaselineEstimator()
        points = estimator.estimate(history, now)
        points[now.hour].value
    """

    def __init__(
        self,
        circadian: CircadianBaseline = DEFAULT_CIRCADIAN,
        policy: BaselinePolicy = DEFAULT_BASELINE_POLICY,
    ):
        self.circadian = circadian
        self.policy = policy

    def training_sessions(self, history: Iterable, now: datetime) -> List[SessionRecord]:
        """Sessions that feed the baseline after the onboarding/stable split."""
        sessions = prepare_history(history, now, self.policy.lookback_days)
        if len(sessions) < self.policy.onboarding_threshold:
            logger.debug("Onboarding baseline: %d sessions, today included", len(sessions))
            return sessions
        today = start_of_day(now)
        return [s for s in sessions if s.timestamp < today]

    def bin_estimates(self, sessions: List[SessionRecord]) -> List[BinEstimate]:
        """Blend per-bin user data with the circadian bin value.

        sessions must be newest first (as returned by training_sessions).
        """
        width = self.policy.bin_width_hours
        bins: List[List[float]] = [[] for _ in range(self.policy.n_bins)]
        for s in sessions:
            bins[bin_index(s.timestamp.hour, width)].append(s.score)

        estimates = []
        for i, scores in enumerate(bins):
            global_value = self.circadian.bin_value(i, width)
            n = len(scores)
            if n == 0:
                estimates.append(BinEstimate(i, 0, global_value, False))
                continue

            recent_mean = float(np.mean(scores[: self.policy.recent_count]))
            bin_mean = float(np.mean(scores))
            w = self.policy.weights_for(n)
            value = w.recent * recent_mean + w.bin_mean * bin_mean + w.circadian * global_value
            estimates.append(BinEstimate(i, n, clamp(value), True))
        return estimates

    def estimate(self, history: Optional[Iterable], now: datetime) -> List[BaselinePoint]:
        if not history:
            return self.circadian.points()

        sessions = self.training_sessions(history, now)
        if not sessions:
            return self.circadian.points()

        estimates = self.bin_estimates(sessions)
        width = self.policy.bin_width_hours
        points = []
        for hour in range(24):
            est = estimates[bin_index(hour, width)]
            points.append(BaselinePoint(
                hour=hour,
                global_value=self.circadian.value_for_hour(hour),
                user_value=round_half_up(est.value),
                has_user_data=est.has_user_data,
            ))
        return points
