"""
SartEngine — orchestrates the scoring and forecasting core.

IMPORTANT: the engine holds no scoring or forecasting logic of its own.
Its job is to wire the components together under one EngineConfig:

  1. Generate a trial sequence for the active protocol
  2. Score a completed session (metrics -> score -> validity)
  3. Fetch history at the storage boundary and degrade gracefully when
     the store is unavailable
  4. Produce the user baseline, forecast and today's deviations

The engine never writes to storage. Persisting SessionOutcome.to_record()
is the caller's job.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .aggregate import compute_raw_metrics
from .baseline import UserBaselineEstimator
from .config import EngineConfig
from .forecast import ForecastEngine
from .history import parse_session_records
from .scoring import calculate_score
from .sequence import TrialSequenceGenerator
from .types import (
    BaselinePoint,
    ForecastResult,
    ScoreResult,
    TodayDeviations,
    Trial,
    ValidityResult,
)
from .validity import assess_validity

logger = logging.getLogger(__name__)

# fetch_sessions(user_id, since) -> rows of {score, timestamp[, valid]}
FetchSessions = Callable[[str, datetime], Iterable]


@dataclass(frozen=True)
class SessionOutcome:
    """A scored session. Invalid sessions still carry their score."""

    score: ScoreResult
    validity: ValidityResult

    @property
    def counts(self) -> bool:
        return self.validity.is_valid

    def to_record(self, user_id: str, timestamp: datetime) -> dict:
        """Payload for the storage write performed by the caller."""
        return {
            "user_id": user_id,
            "timestamp": timestamp.isoformat(),
            "composite_score": self.score.composite_score,
            "sub_scores": self.score.sub_scores(),
            "raw_metrics": asdict(self.score.raw_metrics),
            "scoring_version": self.score.scoring_version,
            "valid": self.validity.is_valid,
            "invalid_reason": self.validity.reason,
        }


class SartEngine:
    """Facade over generator, scorer, baseline estimator and forecaster."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        fetch_sessions: Optional[FetchSessions] = None,
        seed: Optional[int] = None,
    ):
        self.config = config if config is not None else EngineConfig()
        self.fetch_sessions = fetch_sessions

        self.generator = TrialSequenceGenerator(self.config.protocol, seed=seed)
        self.estimator = UserBaselineEstimator(self.config.circadian, self.config.baseline)
        self.forecaster = ForecastEngine(self.estimator, self.config.forecast)

    # ================================================================
    # SESSION
    # ================================================================

    def generate_trials(self) -> List[Trial]:
        return self.generator.generate()

    def score_session(self, trials: Sequence[Trial]) -> SessionOutcome:
        raw = compute_raw_metrics(trials, self.config.protocol)
        score = calculate_score(raw, self.config.scoring)
        validity = assess_validity(raw, self.config.validity)
        if not validity.is_valid:
            logger.info(
                "Session flagged invalid (%s), score %.1f kept for display only",
                validity.reason, score.composite_score,
            )
        return SessionOutcome(score=score, validity=validity)

    # ================================================================
    # HISTORY + FORECAST
    # ================================================================

    def load_history(self, user_id: str, now: datetime) -> Tuple[list, List[str]]:
        """One blocking fetch. Returns (records, warnings).

        Storage failures degrade to an empty history plus a warning.
        Malformed rows raise HistoryValidationError.
        """
        if self.fetch_sessions is None:
            return [], ["no session store configured"]

        since = now - timedelta(days=self.config.baseline.lookback_days)
        try:
            rows = self.fetch_sessions(user_id, since)
            rows = list(rows) if rows is not None else []
        except Exception as exc:
            logger.warning("Session fetch failed for user %s: %s", user_id, exc)
            return [], [f"session history unavailable: {exc}"]
        return parse_session_records(rows), []

    def baseline_for_user(self, user_id: str, now: datetime) -> List[BaselinePoint]:
        history, _ = self.load_history(user_id, now)
        return self.estimator.estimate(history, now)

    def forecast_for_user(self, user_id: str, now: datetime) -> ForecastResult:
        history, warnings = self.load_history(user_id, now)
        result = self.forecaster.forecast(history, now)
        result.warnings.extend(warnings)
        return result

    def today_deviations_for_user(self, user_id: str, now: datetime) -> TodayDeviations:
        history, _ = self.load_history(user_id, now)
        return self.forecaster.today_deviations(history, now)
