"""
Validity assessment — decide whether a session counts as a genuine attempt.

Two independent red flags:
  - low_valid_ratio:     too many technically compromised trials
  - too_many_ultrafast:  fast mean RT together with a high error rate

Both firing yields "mixed" so callers can tell ambiguity from a single
clear cause. An invalid session still keeps its computed score; it is
only excluded from baseline and forecast aggregation.
"""

from dataclasses import dataclass

from .types import (
    RawMetrics,
    ValidityResult,
    LOW_VALID_RATIO,
    TOO_MANY_ULTRAFAST,
    MIXED,
)


@dataclass(frozen=True)
class ValidityPolicy:
    min_valid_ratio: float = 0.8
    spam_rt_ms: float = 350.0
    spam_error_rate: float = 0.3


DEFAULT_VALIDITY_POLICY = ValidityPolicy()


def assess_validity(raw: RawMetrics, policy: ValidityPolicy = DEFAULT_VALIDITY_POLICY) -> ValidityResult:
    reasons = []
    if raw.valid_trial_ratio < policy.min_valid_ratio:
        reasons.append(LOW_VALID_RATIO)
    if raw.mean_go_rt < policy.spam_rt_ms and raw.mean_error_rate > policy.spam_error_rate:
        reasons.append(TOO_MANY_ULTRAFAST)

    if not reasons:
        return ValidityResult(is_valid=True)
    if len(reasons) == 1:
        return ValidityResult(is_valid=False, reason=reasons[0])
    return ValidityResult(is_valid=False, reason=MIXED)
