"""
Session history handling at the storage boundary.

Storage hands back plain rows ({score, timestamp[, valid]}) in either
chronological or reverse order. Everything downstream works on
SessionRecords sorted newest first, with timestamps expressed in the same
clock as the caller's "now".
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, List, Mapping, Union

from .errors import HistoryValidationError
from .types import SessionRecord


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp ("Z" suffix accepted)."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise HistoryValidationError(f"Timestamp must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise HistoryValidationError(f"Unparseable timestamp {value!r}") from None


def parse_session_record(row: Union[SessionRecord, Mapping]) -> SessionRecord:
    if isinstance(row, SessionRecord):
        return row
    try:
        raw_score = row["score"]
        raw_ts = row["timestamp"]
    except (KeyError, TypeError):
        raise HistoryValidationError(f"Session record missing score/timestamp: {row!r}") from None

    if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float)):
        raise HistoryValidationError(f"Score must be numeric, got {raw_score!r}")
    score = float(raw_score)
    if not math.isfinite(score) or not 0.0 <= score <= 100.0:
        raise HistoryValidationError(f"Score {score} outside [0, 100]")

    return SessionRecord(
        score=score,
        timestamp=parse_timestamp(raw_ts),
        valid=bool(row.get("valid", True)),
    )


def parse_session_records(rows: Iterable) -> List[SessionRecord]:
    """Validate storage rows and return them newest first."""
    records = [parse_session_record(r) for r in rows]
    # timestamp() copes with naive and aware rows mixed in one batch
    return sorted(records, key=lambda r: r.timestamp.timestamp(), reverse=True)


def align_to(ts: datetime, now: datetime) -> datetime:
    """Express ts on the same clock as now (naive local or now's tzinfo)."""
    if now.tzinfo is None:
        if ts.tzinfo is None:
            return ts
        return ts.astimezone().replace(tzinfo=None)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=now.tzinfo)
    return ts.astimezone(now.tzinfo)


def prepare_history(history: Iterable, now: datetime, lookback_days: int) -> List[SessionRecord]:
    """Counted sessions inside [now - lookback, now], aligned to now, newest first.

    Sessions flagged invalid never enter aggregation.
    """
    since = now - timedelta(days=lookback_days)
    out = []
    for rec in parse_session_records(history):
        if not rec.valid:
            continue
        ts = align_to(rec.timestamp, now)
        if since <= ts <= now:
            out.append(SessionRecord(score=rec.score, timestamp=ts, valid=True))
    out.sort(key=lambda r: r.timestamp, reverse=True)
    return out


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def bin_index(hour: int, bin_width: int) -> int:
    return (int(hour) % 24) // bin_width
