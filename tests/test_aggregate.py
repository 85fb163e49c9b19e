"""Tests for raw metrics aggregation."""

import numpy as np
import pytest

from sart_core import (
    ContinuousProtocol,
    Trial,
    TrialValidationError,
    compute_raw_metrics,
)

SMALL = ContinuousProtocol(total_trials=10, no_go_count_min=2,
                           no_go_count_max=2, edge_exclusion=1)


def make_trial(index, digit, responded, rt=None, valid=True):
    t = Trial(index=index, digit=digit, is_no_go=digit == 3)
    t.record_response(responded, rt, is_valid=valid)
    return t


def hand_built_session():
    return [
        make_trial(0, 1, True, 400),
        make_trial(1, 2, True, 500),
        make_trial(2, 3, True, 300),          # commission
        make_trial(3, 4, False),              # omission
        make_trial(4, 5, True, 600),
        make_trial(5, 3, False),              # correct withhold
        make_trial(6, 6, True, 450, valid=False),
        make_trial(7, 7, True, 550),
        make_trial(8, 8, True, 350),
        make_trial(9, 9, False),              # omission
    ]


class TestComputeRawMetrics:
    def test_counts(self):
        m = compute_raw_metrics(hand_built_session(), SMALL)
        assert m.n_valid == 9
        assert m.n_go == 7
        assert m.n_no_go == 2

    def test_error_rates(self):
        m = compute_raw_metrics(hand_built_session(), SMALL)
        assert m.commission_error_rate == pytest.approx(0.5)
        assert m.omission_error_rate == pytest.approx(2 / 7)
        assert m.mean_error_rate == pytest.approx((0.5 + 2 / 7) / 2)

    def test_reaction_time_stats(self):
        """Mean and sample SD over valid, correct Go trials only."""
        m = compute_raw_metrics(hand_built_session(), SMALL)
        assert m.mean_go_rt == pytest.approx(480.0)
        assert m.go_rt_sd == pytest.approx(np.sqrt(43000 / 4))

    def test_valid_ratio_uses_protocol_total(self):
        m = compute_raw_metrics(hand_built_session(), SMALL)
        assert m.valid_trial_ratio == pytest.approx(0.9)

    def test_zero_denominators_give_zero(self):
        trials = [make_trial(i, 1, True, 500, valid=False) for i in range(10)]
        m = compute_raw_metrics(trials, SMALL)
        assert m.commission_error_rate == 0.0
        assert m.omission_error_rate == 0.0
        assert m.mean_go_rt == 0.0
        assert m.go_rt_sd == 0.0
        assert m.valid_trial_ratio == 0.0

    def test_single_rt_has_zero_sd(self):
        trials = [make_trial(i, 1, i == 0, 420 if i == 0 else None) for i in range(10)]
        m = compute_raw_metrics(trials, SMALL)
        assert m.mean_go_rt == pytest.approx(420.0)
        assert m.go_rt_sd == 0.0

    def test_input_is_not_mutated(self):
        trials = hand_built_session()
        before = [(t.responded, t.reaction_time_ms, t.is_valid) for t in trials]
        compute_raw_metrics(trials, SMALL)
        assert [(t.responded, t.reaction_time_ms, t.is_valid) for t in trials] == before


class TestTrialValidation:
    def test_wrong_trial_count(self):
        with pytest.raises(TrialValidationError):
            compute_raw_metrics(hand_built_session()[:9], SMALL)

    def test_flag_digit_mismatch(self):
        trials = hand_built_session()
        trials[0].is_no_go = True
        with pytest.raises(TrialValidationError):
            compute_raw_metrics(trials, SMALL)

    def test_digit_outside_palette(self):
        trials = hand_built_session()
        trials[0].digit = 0
        with pytest.raises(TrialValidationError):
            compute_raw_metrics(trials, SMALL)

    def test_response_recorded_once(self):
        t = Trial(index=0, digit=1, is_no_go=False)
        t.record_response(True, 400)
        with pytest.raises(TrialValidationError):
            t.record_response(False)

    def test_negative_reaction_time(self):
        t = Trial(index=0, digit=1, is_no_go=False)
        with pytest.raises(TrialValidationError):
            t.record_response(True, -5)

    def test_withheld_response_drops_rt(self):
        t = Trial(index=0, digit=3, is_no_go=True)
        t.record_response(False, 250)
        assert t.reaction_time_ms is None
        assert t.is_correct
