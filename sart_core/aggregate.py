"""
Raw metrics aggregation — reduce a finalized trial list to RawMetrics.

Pure function, no side effects. Every rate defaults to 0 when its
denominator is 0. Reaction-time statistics use valid, correct Go trials
with a recorded RT; the SD is the sample SD (n - 1 divisor).
"""

import numpy as np
from typing import Sequence

from .errors import TrialValidationError
from .protocol import DEFAULT_PROTOCOL
from .types import Trial, RawMetrics


def compute_raw_metrics(trials: Sequence[Trial], protocol=DEFAULT_PROTOCOL) -> RawMetrics:
    """Aggregate a completed session.

    Raises TrialValidationError when the trial list cannot belong to the
    protocol (wrong length, digit/flag mismatch, negative RT).
    """
    check_trials(trials, protocol)

    valid = [t for t in trials if t.is_valid]
    go = [t for t in valid if not t.is_no_go]
    no_go = [t for t in valid if t.is_no_go]

    commissions = sum(1 for t in no_go if t.responded)
    omissions = sum(1 for t in go if not t.responded)

    rts = np.array(
        [t.reaction_time_ms for t in go if t.responded and t.reaction_time_ms is not None],
        dtype=float,
    )
    mean_rt = float(np.mean(rts)) if len(rts) > 0 else 0.0
    sd_rt = float(np.std(rts, ddof=1)) if len(rts) > 1 else 0.0

    return RawMetrics(
        n_valid=len(valid),
        n_go=len(go),
        n_no_go=len(no_go),
        commission_error_rate=_rate(commissions, len(no_go)),
        omission_error_rate=_rate(omissions, len(go)),
        mean_go_rt=mean_rt,
        go_rt_sd=sd_rt,
        valid_trial_ratio=_rate(len(valid), protocol.total_trials),
    )


def check_trials(trials: Sequence[Trial], protocol=DEFAULT_PROTOCOL) -> None:
    if len(trials) != protocol.total_trials:
        raise TrialValidationError(
            f"Expected {protocol.total_trials} trials, got {len(trials)}"
        )
    palette = set(protocol.stimulus_digits)
    for t in trials:
        if t.digit not in palette:
            raise TrialValidationError(f"Trial {t.index}: digit {t.digit} outside palette")
        if t.is_no_go != (t.digit == protocol.no_go_digit):
            raise TrialValidationError(
                f"Trial {t.index}: No-Go flag does not match digit {t.digit}"
            )
        if t.reaction_time_ms is not None and not t.reaction_time_ms >= 0:
            raise TrialValidationError(
                f"Trial {t.index}: invalid reaction time {t.reaction_time_ms}"
            )


def _rate(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator > 0 else 0.0
