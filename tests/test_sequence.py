"""Tests for constrained trial-sequence generation."""

import numpy as np
import pytest

from sart_core import (
    BlockProtocol,
    ContinuousProtocol,
    ProtocolError,
    TrialSequenceGenerator,
    validate_sequence,
)
from sart_core.sequence import greedy_positions


def no_go_positions(trials):
    return [t.index for t in trials if t.is_no_go]


class TestContinuousProtocolConfig:
    def test_defaults(self):
        p = ContinuousProtocol()
        assert p.total_trials == 60
        assert p.forbidden_positions == frozenset({0, 1, 58, 59})
        assert len(p.allowed_positions) == 56
        assert p.trial_duration_ms == 1400

    def test_rejects_unsatisfiable_count(self):
        # 6 allowed positions fit at most 3 non-adjacent targets
        with pytest.raises(ProtocolError):
            ContinuousProtocol(total_trials=10, edge_exclusion=2,
                               no_go_count_min=4, no_go_count_max=4)

    def test_rejects_no_go_digit_in_go_palette(self):
        with pytest.raises(ProtocolError):
            ContinuousProtocol(go_digits=(1, 2, 3))

    def test_rejects_inverted_range(self):
        with pytest.raises(ProtocolError):
            ContinuousProtocol(no_go_count_min=9, no_go_count_max=8)

    def test_protocol_error_is_value_error(self):
        with pytest.raises(ValueError):
            ContinuousProtocol(total_trials=0)


class TestContinuousGeneration:
    def test_length_and_order(self):
        trials = TrialSequenceGenerator(ContinuousProtocol(), seed=1).generate()
        assert len(trials) == 60
        assert [t.index for t in trials] == list(range(60))

    def test_seed_is_reproducible(self):
        a = TrialSequenceGenerator(seed=7).generate()
        b = TrialSequenceGenerator(seed=7).generate()
        assert [t.digit for t in a] == [t.digit for t in b]

    def test_constraints_hold_over_many_runs(self):
        """10,000 sequences, every one valid."""
        protocol = ContinuousProtocol()
        gen = TrialSequenceGenerator(protocol, seed=2024)
        for _ in range(10_000):
            trials = gen.generate()
            assert validate_sequence(trials, protocol) == []
        assert gen.sequences_generated == 10_000

    def test_fallback_path_satisfies_constraints(self):
        protocol = ContinuousProtocol(max_random_attempts=0)
        gen = TrialSequenceGenerator(protocol, seed=3)
        for _ in range(200):
            trials = gen.generate()
            assert validate_sequence(trials, protocol) == []
        assert gen.fallbacks_used == 200

    def test_fallback_on_tight_protocol(self):
        # 7 allowed slots, 4 targets: only one legal placement exists
        protocol = ContinuousProtocol(total_trials=11, edge_exclusion=2,
                                      no_go_count_min=4, no_go_count_max=4,
                                      max_random_attempts=1)
        gen = TrialSequenceGenerator(protocol, seed=0)
        for _ in range(100):
            trials = gen.generate()
            assert no_go_positions(trials) == [2, 4, 6, 8]

    def test_go_digits_are_roughly_uniform(self):
        gen = TrialSequenceGenerator(seed=11)
        counts = {d: 0 for d in ContinuousProtocol().go_digits}
        for _ in range(500):
            for t in gen.generate():
                if not t.is_no_go:
                    counts[t.digit] += 1
        values = np.array(list(counts.values()), dtype=float)
        assert values.min() / values.max() > 0.9


class TestGreedyPositions:
    def test_skips_one_slot_after_each_pick(self):
        assert greedy_positions([2, 3, 4, 5, 6, 7], 3) == [2, 4, 6]

    def test_stops_at_count(self):
        assert greedy_positions(list(range(2, 58)), 7) == [2, 4, 6, 8, 10, 12, 14]


class TestBlockGeneration:
    def test_block_layout(self):
        protocol = BlockProtocol()
        trials = TrialSequenceGenerator(protocol, seed=5).generate()
        assert len(trials) == 90
        for block in range(10):
            chunk = trials[block * 9:(block + 1) * 9]
            assert sorted(t.digit for t in chunk) == list(range(1, 10))
            assert sum(t.is_no_go for t in chunk) == 1
            assert all(t.block_index == block for t in chunk)
            assert [t.position_in_block for t in chunk] == list(range(9))

    def test_constraints_hold_over_many_runs(self):
        protocol = BlockProtocol()
        gen = TrialSequenceGenerator(protocol, seed=99)
        for _ in range(10_000):
            trials = gen.generate()
            assert validate_sequence(trials, protocol) == []

    def test_fallback_moves_no_go_off_the_edges(self):
        protocol = BlockProtocol(max_random_attempts=0)
        gen = TrialSequenceGenerator(protocol, seed=4)
        for _ in range(100):
            trials = gen.generate()
            assert validate_sequence(trials, protocol) == []
            for t in trials:
                if t.is_no_go:
                    assert t.position_in_block == 1

    def test_requires_edge_positions_forbidden(self):
        with pytest.raises(ProtocolError):
            BlockProtocol(forbidden_block_positions=(0,))


class TestValidateSequence:
    def test_reports_adjacent_and_edge_targets(self):
        protocol = ContinuousProtocol()
        trials = TrialSequenceGenerator(protocol, seed=8).generate()
        for t in trials:
            t.digit, t.is_no_go = 1, False
        for i in (0, 10, 11, 20, 30, 40, 50):
            trials[i].digit, trials[i].is_no_go = 3, True

        errors = validate_sequence(trials, protocol)
        assert any("adjacent" in e for e in errors)
        assert any("forbidden position 0" in e for e in errors)

    def test_reports_flag_mismatch(self):
        protocol = ContinuousProtocol()
        trials = TrialSequenceGenerator(protocol, seed=8).generate()
        go = next(t for t in trials if not t.is_no_go)
        go.is_no_go = True
        errors = validate_sequence(trials, protocol)
        assert any("does not match" in e for e in errors)
