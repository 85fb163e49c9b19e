#!/usr/bin/env python3
"""
Demo: simulated user, three weeks of tests, then today's forecast.

  1. Generate and "play" sessions with a simulated responder whose
     performance follows the time of day plus noise.
  2. Score each session, keep the valid ones as history.
  3. Show the learned baseline next to the circadian curve and the
     forecast for a few moments today.
"""

import sys
import os
import numpy as np
from datetime import datetime, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sart_core import SartEngine, SessionRecord
from sart_core.circadian import GLOBAL_BASELINE_VALUES


def simulate_session(engine, rng, sharpness):
    """Play one session. sharpness in [0, 1]: 1 = fast, steady, accurate."""
    trials = engine.generate_trials()
    for t in trials:
        valid = rng.random() > 0.02
        if t.is_no_go:
            responded = rng.random() < 0.5 * (1.0 - sharpness)
        else:
            responded = rng.random() > 0.25 * (1.0 - sharpness)
        rt = float(rng.normal(720 - 200 * sharpness, 180 - 110 * sharpness))
        t.record_response(responded, max(rt, 150.0) if responded else None, is_valid=valid)
    return engine.score_session(trials)


def build_history(engine, rng, now, days=21):
    history = []
    invalid = 0
    for d in range(days, -1, -1):
        for hour in rng.choice([8, 10, 14, 17, 21], size=2, replace=False):
            ts = (now - timedelta(days=int(d))).replace(hour=int(hour), minute=int(rng.integers(0, 60)))
            if ts > now:
                continue
            sharpness = float(np.clip(GLOBAL_BASELINE_VALUES[ts.hour] / 100 + rng.normal(0, 0.1), 0, 1))
            outcome = simulate_session(engine, rng, sharpness)
            if not outcome.counts:
                invalid += 1
            history.append(SessionRecord(
                score=outcome.score.composite_score, timestamp=ts, valid=outcome.counts
            ))
    return history, invalid


def main():
    print("=" * 64)
    print("  SART CORE DEMO")
    print("  Scoring, baseline and forecast for a simulated user")
    print("=" * 64)
    print()

    rng = np.random.default_rng(7)
    now = datetime(2026, 3, 10, 10, 40)
    engine = SartEngine(seed=7)

    history, invalid = build_history(engine, rng, now)
    scores = [h.score for h in history]
    print(f"  Sessions: {len(history)}  (invalid: {invalid})")
    print(f"  Score mean {np.mean(scores):.1f}, range {min(scores):.1f}-{max(scores):.1f}")
    print()

    engine.fetch_sessions = lambda user_id, since: [
        {"score": h.score, "timestamp": h.timestamp.isoformat(), "valid": h.valid}
        for h in history if h.timestamp >= since
    ]

    baseline = engine.baseline_for_user("demo", now)
    print(f"  {'hour':>4s}  {'circadian':>9s}  {'user':>6s}  data")
    print(f"  {'-' * 32}")
    for p in baseline[6:24:2]:
        print(f"  {p.hour:4d}  {p.global_value:9.0f}  {p.value:6.0f}  {'yes' if p.has_user_data else '-'}")
    print()

    for moment in (now, now.replace(hour=14, minute=5), now.replace(hour=21, minute=30)):
        f = engine.forecast_for_user("demo", moment)
        print(f"  {moment:%H:%M}  forecast={f.forecast_score:3d}  label={f.label:<9s}  "
              f"confidence={f.confidence:<6s}  typical={f.typical_at_this_time:.0f}")


if __name__ == "__main__":
    main()
