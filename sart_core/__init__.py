"""
sart_core — scoring and forecasting engine for a sustained-attention test.

Generates constrained trial sequences, scores completed sessions with a
versioned composite formula, and forecasts a user's current score by
blending a circadian prior with their own time-of-day history.
"""

from .types import (
    Trial,
    RawMetrics,
    ScoreResult,
    ValidityResult,
    SessionRecord,
    BaselinePoint,
    ForecastResult,
    SessionDeviation,
    TodayDeviations,
)
from .errors import (
    SartCoreError,
    ProtocolError,
    InputValidationError,
    TrialValidationError,
    MetricsValidationError,
    HistoryValidationError,
    StorageUnavailableError,
)
from .protocol import ContinuousProtocol, BlockProtocol, get_protocol
from .sequence import TrialSequenceGenerator, validate_sequence
from .aggregate import compute_raw_metrics
from .scoring import (
    ScoringPolicy,
    BRAINSCORE_V1_0,
    BRAINSCORE_V1_1,
    calculate_score,
    get_scoring_policy,
)
from .validity import ValidityPolicy, assess_validity
from .circadian import CircadianBaseline, day_segment
from .baseline import BaselinePolicy, UserBaselineEstimator
from .forecast import ForecastPolicy, ForecastEngine
from .logbook import aggregate_daily_scores, weekly_stats, score_band
from .config import EngineConfig
from .engine import SartEngine, SessionOutcome

__all__ = [
    "Trial",
    "RawMetrics",
    "ScoreResult",
    "ValidityResult",
    "SessionRecord",
    "BaselinePoint",
    "ForecastResult",
    "SessionDeviation",
    "TodayDeviations",
    "SartCoreError",
    "ProtocolError",
    "InputValidationError",
    "TrialValidationError",
    "MetricsValidationError",
    "HistoryValidationError",
    "StorageUnavailableError",
    "ContinuousProtocol",
    "BlockProtocol",
    "get_protocol",
    "TrialSequenceGenerator",
    "validate_sequence",
    "compute_raw_metrics",
    "ScoringPolicy",
    "BRAINSCORE_V1_0",
    "BRAINSCORE_V1_1",
    "calculate_score",
    "get_scoring_policy",
    "ValidityPolicy",
    "assess_validity",
    "CircadianBaseline",
    "day_segment",
    "BaselinePolicy",
    "UserBaselineEstimator",
    "ForecastPolicy",
    "ForecastEngine",
    "aggregate_daily_scores",
    "weekly_stats",
    "score_band",
    "EngineConfig",
    "SartEngine",
    "SessionOutcome",
]
