"""
Shared data structures for the SART scoring and forecasting core.

Trials flow forward from the generator, through the interaction layer,
into the aggregator. RawMetrics and ScoreResult flow on to persistence.
SessionRecords flow back in from storage and drive the baseline and
forecast, which are recomputed on every request.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Tuple

from .errors import TrialValidationError


# Validity reasons
LOW_VALID_RATIO = "low_valid_ratio"
TOO_MANY_ULTRAFAST = "too_many_ultrafast"
MIXED = "mixed"

# Confidence levels
CONFIDENCE_LOW = "low"
CONFIDENCE_MEDIUM = "medium"
CONFIDENCE_HIGH = "high"


@dataclass
class Trial:
    """One stimulus presentation.

    The generator fills in index/digit/is_no_go. The interaction layer
    records the response exactly once via record_response().
    """

    index: int
    digit: int
    is_no_go: bool
    block_index: Optional[int] = None
    position_in_block: Optional[int] = None
    responded: bool = False
    reaction_time_ms: Optional[float] = None
    is_valid: bool = True
    answered: bool = field(default=False, repr=False)

    @property
    def is_correct(self) -> bool:
        # Go: respond. No-Go: withhold.
        return self.responded != self.is_no_go

    def record_response(
        self,
        responded: bool,
        reaction_time_ms: Optional[float] = None,
        is_valid: bool = True,
    ) -> None:
        if self.answered:
            raise TrialValidationError(
                f"Trial {self.index} already has a recorded response"
            )
        if reaction_time_ms is not None and reaction_time_ms < 0:
            raise TrialValidationError(
                f"Trial {self.index}: negative reaction time {reaction_time_ms}"
            )
        self.responded = bool(responded)
        self.reaction_time_ms = reaction_time_ms if responded else None
        self.is_valid = bool(is_valid)
        self.answered = True

    def to_stimulus(self) -> dict:
        """The presentation-layer view: index, digit, No-Go flag."""
        return {"index": self.index, "digit": self.digit, "is_no_go": self.is_no_go}


@dataclass(frozen=True)
class RawMetrics:
    """Per-session aggregate of a finalized trial list."""

    n_valid: int
    n_go: int
    n_no_go: int
    commission_error_rate: float
    omission_error_rate: float
    mean_go_rt: float
    go_rt_sd: float
    valid_trial_ratio: float

    @property
    def mean_error_rate(self) -> float:
        """Unweighted mean of commission and omission rate."""
        return (self.commission_error_rate + self.omission_error_rate) / 2.0


@dataclass(frozen=True)
class ScoreResult:
    """Four sub-scores, the composite, and the metrics that produced them."""

    accuracy_score: float
    speed_score: float
    consistency_score: float
    discipline_score: float
    composite_score: float
    raw_metrics: RawMetrics
    scoring_version: str
    speed_penalty_applied: bool = False
    floor_rules_applied: Tuple[str, ...] = ()

    def sub_scores(self) -> dict:
        return {
            "accuracy": self.accuracy_score,
            "speed": self.speed_score,
            "consistency": self.consistency_score,
            "discipline": self.discipline_score,
        }


@dataclass(frozen=True)
class ValidityResult:
    is_valid: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class SessionRecord:
    """A persisted session as read back from storage."""

    score: float
    timestamp: datetime
    valid: bool = True


@dataclass(frozen=True)
class BaselinePoint:
    hour: int
    global_value: float
    user_value: Optional[float] = None
    has_user_data: bool = False

    @property
    def value(self) -> float:
        """User-derived value where one exists, else the circadian value."""
        return self.user_value if self.user_value is not None else self.global_value


@dataclass
class ForecastResult:
    """Ephemeral forecast for one moment. Rebuilt on every request."""

    forecast_score: Optional[int]
    label: Optional[str]
    confidence: str
    segment: str
    typical_at_this_time: Optional[float]
    total_sessions: int = 0
    local_sessions: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SessionDeviation:
    """One of today's sessions measured against the baseline at its hour."""

    timestamp: datetime
    hour: int
    score: float
    baseline_at_hour: float
    delta: float


@dataclass(frozen=True)
class TodayDeviations:
    sessions: Tuple[SessionDeviation, ...] = ()
    average_delta: Optional[float] = None
