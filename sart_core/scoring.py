"""
Composite score calculation — RawMetrics -> ScoreResult.

The formula is versioned policy. Every boundary, weight and ceiling lives in
a frozen ScoringPolicy bundle registered under its version name, so a stored
score can always be traced back to the exact constants that produced it.

Sub-scores (each 0-100):
  - Accuracy:    weighted omission/commission error, optionally sharpened by
                 an exponent > 1.
  - Speed:       four-segment piecewise-linear curve over mean Go RT, halved
                 for fast responding with a high error rate ("spam" clicking).
  - Consistency: decreasing piecewise-linear curve over Go RT SD.
  - Discipline:  step function over the valid-trial ratio.

Composite = alpha * weighted_mean + (1 - alpha) * min(sub-scores), then
ceilings from floor rules, then clamp to [0, 100] and round to one decimal.
"""

import math
import operator
from dataclasses import dataclass, fields
from typing import Tuple, Dict

from .errors import MetricsValidationError
from .types import RawMetrics, ScoreResult


# ================================================================
# POLICY BUNDLES
# ================================================================


@dataclass(frozen=True)
class AccuracyPolicy:
    omission_weight: float = 0.7
    commission_weight: float = 0.3
    exponent: float = 1.3


@dataclass(frozen=True)
class SpeedPolicy:
    fast_rt_ms: float = 300.0
    fast_score: float = 60.0
    optimal_rt_ms: float = 600.0
    optimal_score: float = 100.0
    slow_rt_ms: float = 900.0
    slow_score: float = 40.0
    # Penalty for reflexive responding
    spam_rt_ms: float = 400.0
    spam_error_rate: float = 0.25
    spam_multiplier: float = 0.5


@dataclass(frozen=True)
class ConsistencyPolicy:
    stable_sd_ms: float = 80.0
    stable_score: float = 100.0
    unstable_sd_ms: float = 250.0
    unstable_score: float = 40.0


@dataclass(frozen=True)
class DisciplineBand:
    min_ratio: float
    score: float


@dataclass(frozen=True)
class DisciplinePolicy:
    bands: Tuple[DisciplineBand, ...] = (
        DisciplineBand(0.95, 100.0),
        DisciplineBand(0.90, 85.0),
        DisciplineBand(0.75, 60.0),
    )
    floor_score: float = 30.0


@dataclass(frozen=True)
class CompositeWeights:
    accuracy: float = 0.30
    speed: float = 0.35
    consistency: float = 0.25
    discipline: float = 0.10
    # Share of the weighted mean; the rest goes to the worst sub-score
    mean_share: float = 0.6

    def __post_init__(self):
        total = self.accuracy + self.speed + self.consistency + self.discipline
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Composite weights must sum to 1, got {total}")
        if not 0.0 <= self.mean_share <= 1.0:
            raise ValueError("mean_share must lie in [0, 1]")


_COMPARISONS = {
    ">=": operator.ge,
    ">": operator.gt,
    "<": operator.lt,
    "<=": operator.le,
}


@dataclass(frozen=True)
class FloorRule:
    """Hard ceiling on the composite when a raw metric crosses a threshold."""

    name: str
    metric: str
    comparison: str
    threshold: float
    ceiling: float

    def __post_init__(self):
        if self.comparison not in _COMPARISONS:
            raise ValueError(f"Unknown comparison {self.comparison!r}")
        if self.metric not in {f.name for f in fields(RawMetrics)}:
            raise ValueError(f"Unknown metric {self.metric!r}")

    def breached(self, raw: RawMetrics) -> bool:
        return _COMPARISONS[self.comparison](getattr(raw, self.metric), self.threshold)


@dataclass(frozen=True)
class ScoringPolicy:
    version: str
    accuracy: AccuracyPolicy = AccuracyPolicy()
    speed: SpeedPolicy = SpeedPolicy()
    consistency: ConsistencyPolicy = ConsistencyPolicy()
    discipline: DisciplinePolicy = DisciplinePolicy()
    composite: CompositeWeights = CompositeWeights()
    floor_rules: Tuple[FloorRule, ...] = ()


# Initial revision: plain weighted sum, symmetric error weighting,
# three loose discipline bands, a single omission ceiling.
BRAINSCORE_V1_0 = ScoringPolicy(
    version="brainscore-v1.0",
    accuracy=AccuracyPolicy(omission_weight=0.5, commission_weight=0.5, exponent=1.0),
    discipline=DisciplinePolicy(
        bands=(DisciplineBand(0.90, 100.0), DisciplineBand(0.80, 70.0)),
        floor_score=40.0,
    ),
    composite=CompositeWeights(
        accuracy=0.35, speed=0.30, consistency=0.25, discipline=0.10, mean_share=1.0
    ),
    floor_rules=(
        FloorRule("omission_crisis", "omission_error_rate", ">=", 0.5, 20.0),
    ),
)

# Current revision: omission weighted over commission, sharpened accuracy,
# stricter discipline bands, worst-sub-score blending, three ceilings.
BRAINSCORE_V1_1 = ScoringPolicy(
    version="brainscore-v1.1",
    floor_rules=(
        FloorRule("omission_crisis", "omission_error_rate", ">=", 0.5, 20.0),
        FloorRule("protocol_collapse", "valid_trial_ratio", "<", 0.6, 30.0),
        FloorRule("extreme_rt_variance", "go_rt_sd", ">", 400.0, 30.0),
    ),
)

SCORING_POLICIES: Dict[str, ScoringPolicy] = {
    p.version: p for p in (BRAINSCORE_V1_0, BRAINSCORE_V1_1)
}

DEFAULT_SCORING_POLICY = BRAINSCORE_V1_1


def get_scoring_policy(version: str) -> ScoringPolicy:
    try:
        return SCORING_POLICIES[version]
    except KeyError:
        raise ValueError(
            f"Unknown scoring version {version!r}; known: {sorted(SCORING_POLICIES)}"
        ) from None


# ================================================================
# HELPERS
# ================================================================


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves away from zero for non-negative scores (2.5 -> 3)."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _interpolate(x: float, x1: float, y1: float, x2: float, y2: float) -> float:
    return y1 + (x - x1) * (y2 - y1) / (x2 - x1)


# ================================================================
# SUB-SCORES
# ================================================================


def accuracy_score(
    commission_error_rate: float,
    omission_error_rate: float,
    policy: AccuracyPolicy = AccuracyPolicy(),
) -> float:
    total_error = (
        policy.omission_weight * omission_error_rate
        + policy.commission_weight * commission_error_rate
    )
    base = max(0.0, 1.0 - total_error)
    return clamp(round_half_up(base ** policy.exponent * 100.0))


def speed_score(
    mean_go_rt: float,
    commission_error_rate: float,
    omission_error_rate: float,
    policy: SpeedPolicy = SpeedPolicy(),
) -> Tuple[float, bool]:
    """Speed sub-score and whether the spam penalty fired."""
    p = policy
    if mean_go_rt <= p.fast_rt_ms:
        score = p.fast_score
    elif mean_go_rt < p.optimal_rt_ms:
        score = _interpolate(mean_go_rt, p.fast_rt_ms, p.fast_score, p.optimal_rt_ms, p.optimal_score)
    elif mean_go_rt <= p.slow_rt_ms:
        score = _interpolate(mean_go_rt, p.optimal_rt_ms, p.optimal_score, p.slow_rt_ms, p.slow_score)
    else:
        score = p.slow_score

    mean_error = (commission_error_rate + omission_error_rate) / 2.0
    penalised = mean_go_rt < p.spam_rt_ms and mean_error > p.spam_error_rate
    if penalised:
        score *= p.spam_multiplier
    return score, penalised


def consistency_score(go_rt_sd: float, policy: ConsistencyPolicy = ConsistencyPolicy()) -> float:
    p = policy
    if go_rt_sd <= p.stable_sd_ms:
        return p.stable_score
    if go_rt_sd < p.unstable_sd_ms:
        return _interpolate(go_rt_sd, p.stable_sd_ms, p.stable_score, p.unstable_sd_ms, p.unstable_score)
    return p.unstable_score


def discipline_score(valid_trial_ratio: float, policy: DisciplinePolicy = DisciplinePolicy()) -> float:
    for band in sorted(policy.bands, key=lambda b: b.min_ratio, reverse=True):
        if valid_trial_ratio >= band.min_ratio:
            return band.score
    return policy.floor_score


# ================================================================
# COMPOSITE
# ================================================================


def check_metrics(raw: RawMetrics) -> None:
    for name in ("commission_error_rate", "omission_error_rate", "valid_trial_ratio"):
        value = getattr(raw, name)
        if not 0.0 <= value <= 1.0:
            raise MetricsValidationError(f"{name}={value} outside [0, 1]")
    for name in ("mean_go_rt", "go_rt_sd"):
        value = getattr(raw, name)
        if not (math.isfinite(value) and value >= 0.0):
            raise MetricsValidationError(f"{name}={value} must be finite and >= 0")


def calculate_score(raw: RawMetrics, policy: ScoringPolicy = DEFAULT_SCORING_POLICY) -> ScoreResult:
    """Deterministic composite score for one session."""
    check_metrics(raw)

    acc = accuracy_score(raw.commission_error_rate, raw.omission_error_rate, policy.accuracy)
    spd, penalised = speed_score(
        raw.mean_go_rt, raw.commission_error_rate, raw.omission_error_rate, policy.speed
    )
    con = consistency_score(raw.go_rt_sd, policy.consistency)
    dis = discipline_score(raw.valid_trial_ratio, policy.discipline)

    w = policy.composite
    weighted_mean = w.accuracy * acc + w.speed * spd + w.consistency * con + w.discipline * dis
    worst = min(acc, spd, con, dis)
    composite = clamp(w.mean_share * weighted_mean + (1.0 - w.mean_share) * worst)

    applied = []
    for rule in policy.floor_rules:
        if rule.breached(raw):
            composite = min(composite, rule.ceiling)
            applied.append(rule.name)

    return ScoreResult(
        accuracy_score=round_half_up(acc, 1),
        speed_score=round_half_up(spd, 1),
        consistency_score=round_half_up(con, 1),
        discipline_score=round_half_up(dis, 1),
        composite_score=round_half_up(clamp(composite), 1),
        raw_metrics=raw,
        scoring_version=policy.version,
        speed_penalty_applied=penalised,
        floor_rules_applied=tuple(applied),
    )
