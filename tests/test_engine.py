"""Tests for the SartEngine facade and its storage boundary."""

import pytest
from datetime import datetime, timedelta

from sart_core import (
    BlockProtocol,
    ContinuousProtocol,
    EngineConfig,
    HistoryValidationError,
    SartEngine,
    StorageUnavailableError,
    TrialValidationError,
    BRAINSCORE_V1_0,
)
from sart_core.types import TOO_MANY_ULTRAFAST

NOW = datetime(2026, 3, 10, 10, 30)


def play(trials, rt=500.0):
    """Respond perfectly: press on Go, withhold on No-Go."""
    for t in trials:
        t.record_response(not t.is_no_go, rt if not t.is_no_go else None)
    return trials


class TestScoreSession:
    def test_perfect_session(self):
        engine = SartEngine(seed=1)
        outcome = engine.score_session(play(engine.generate_trials()))
        assert outcome.counts
        assert outcome.score.accuracy_score == 100
        assert outcome.score.consistency_score == 100
        # speed 60 + 200 * 40 / 300, then 0.6 * mean + 0.4 * min
        assert outcome.score.composite_score == pytest.approx(91.9)

    def test_spam_session_is_invalid_but_scored(self):
        engine = SartEngine(seed=2)
        trials = engine.generate_trials()
        for t in trials:
            t.record_response(True, 200.0)
        outcome = engine.score_session(trials)
        assert not outcome.counts
        assert outcome.validity.reason == TOO_MANY_ULTRAFAST
        assert 0 <= outcome.score.composite_score <= 100

    def test_block_protocol_reference_session(self):
        """10 blocks of 9: 2/10 commission, 5 omissions, ~550 ms, 4 invalid."""
        engine = SartEngine(EngineConfig(protocol=BlockProtocol()), seed=3)
        trials = engine.generate_trials()
        go = [t for t in trials if not t.is_no_go]
        no_go = [t for t in trials if t.is_no_go]

        for i, t in enumerate(no_go):
            t.record_response(i < 2, 300.0 if i < 2 else None)
        for i, t in enumerate(go):
            if i < 4:
                t.record_response(True, 500.0, is_valid=False)
            elif i < 9:
                t.record_response(False)
            else:
                t.record_response(True, 460.0 if i % 2 else 640.0)

        first = engine.score_session(trials)
        second = engine.score_session(trials)
        assert first == second

        raw = first.score.raw_metrics
        assert raw.commission_error_rate == pytest.approx(0.2)
        assert raw.omission_error_rate == pytest.approx(5 / 76)
        assert raw.mean_go_rt == pytest.approx(550, abs=5)
        assert raw.go_rt_sd == pytest.approx(90, abs=2)
        assert first.counts
        assert 80 <= first.score.accuracy_score <= 95
        assert 85 <= first.score.speed_score <= 100
        assert 90 <= first.score.consistency_score <= 100
        assert first.score.discipline_score == 100
        assert 85 <= first.score.composite_score <= 95

    def test_wrong_trial_count(self):
        engine = SartEngine(seed=4)
        with pytest.raises(TrialValidationError):
            engine.score_session(play(engine.generate_trials())[:-1])

    def test_record_payload(self):
        engine = SartEngine(seed=5)
        outcome = engine.score_session(play(engine.generate_trials()))
        record = outcome.to_record("user-1", NOW)
        assert record["user_id"] == "user-1"
        assert record["timestamp"] == "2026-03-10T10:30:00"
        assert record["composite_score"] == outcome.score.composite_score
        assert set(record["sub_scores"]) == {"accuracy", "speed", "consistency", "discipline"}
        assert record["raw_metrics"]["n_valid"] == 60
        assert record["scoring_version"] == "brainscore-v1.1"
        assert record["valid"] is True
        assert record["invalid_reason"] is None


class TestStorageBoundary:
    def test_fetch_called_with_lookback(self):
        calls = []

        def fetch(user_id, since):
            calls.append((user_id, since))
            return []

        SartEngine(fetch_sessions=fetch).forecast_for_user("u1", NOW)
        assert calls == [("u1", NOW - timedelta(days=30))]

    def test_forecast_uses_history(self):
        rows = [{"score": 60, "timestamp": (NOW - timedelta(minutes=1)).isoformat()}]
        result = SartEngine(fetch_sessions=lambda u, s: rows).forecast_for_user("u1", NOW)
        assert abs(result.forecast_score - 60) <= 2
        assert result.warnings == []

    def test_fetch_failure_degrades(self):
        def fetch(user_id, since):
            raise StorageUnavailableError("connection refused")

        result = SartEngine(fetch_sessions=fetch).forecast_for_user("u1", NOW)
        assert result.forecast_score == 80
        assert result.confidence == "low"
        assert result.degraded
        assert "connection refused" in result.warnings[0]

    def test_baseline_falls_back_on_failure(self):
        def fetch(user_id, since):
            raise OSError("timeout")

        points = SartEngine(fetch_sessions=fetch).baseline_for_user("u1", NOW)
        assert not any(p.has_user_data for p in points)

    def test_none_rows_treated_as_empty(self):
        result = SartEngine(fetch_sessions=lambda u, s: None).forecast_for_user("u1", NOW)
        assert result.forecast_score == 80
        assert not result.degraded

    def test_no_store_configured(self):
        result = SartEngine().forecast_for_user("u1", NOW)
        assert result.forecast_score == 80
        assert result.degraded

    def test_malformed_rows_raise(self):
        engine = SartEngine(fetch_sessions=lambda u, s: [{"score": "high"}])
        with pytest.raises(HistoryValidationError):
            engine.forecast_for_user("u1", NOW)

    def test_today_deviations(self):
        rows = [{"score": 70, "timestamp": "2026-03-10T08:10:00"}]
        summary = SartEngine(fetch_sessions=lambda u, s: rows).today_deviations_for_user("u1", NOW)
        assert len(summary.sessions) == 1
        assert summary.sessions[0].hour == 8


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig.from_env({})
        assert isinstance(config.protocol, ContinuousProtocol)
        assert config.scoring.version == "brainscore-v1.1"

    def test_block_protocol_from_env(self):
        config = EngineConfig.from_env({"SART_PROTOCOL": "block"})
        assert isinstance(config.protocol, BlockProtocol)
        assert config.protocol.total_trials == 90

    def test_scoring_version_from_env(self):
        config = EngineConfig.from_env({"SART_SCORING_VERSION": "brainscore-v1.0"})
        assert config.scoring is BRAINSCORE_V1_0

    def test_unknown_values_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig.from_env({"SART_PROTOCOL": "spiral"})
        with pytest.raises(ValueError):
            EngineConfig.from_env({"SART_SCORING_VERSION": "v42"})
