from __future__ import annotations

from typing import Optional, Union
from datetime import date, datetime, timezone

import pandas as pd

Number = Union[int, float]


def clamp(v: Number, lo: Number, hi: Number) -> float:
    """Bound a value to [lo, hi]."""
    return float(min(hi, max(lo, v)))


def to_aware_utc(v: Optional[Union[str, datetime]]) -> datetime:
    """Convert input to an aware UTC datetime."""
    if v is None:
        return datetime.now(timezone.utc)
    if isinstance(v, datetime):
        return v.astimezone(timezone.utc) if v.tzinfo else v.replace(tzinfo=timezone.utc)
    ts = pd.to_datetime(v, errors="coerce", utc=True)
    if pd.isna(ts):
        return datetime.now(timezone.utc)
    return ts.to_pydatetime()


def iso_timestamp(v: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a trailing Z."""
    ts = to_aware_utc(v)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_millis(v: Optional[datetime] = None) -> int:
    return int(to_aware_utc(v).timestamp() * 1000)


def parse_date(v: Optional[Union[str, date]]) -> Optional[date]:
    """Parse a calendar date from a date, datetime or string; None if unusable."""
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return to_aware_utc(v).date()
    if isinstance(v, date):
        return v
    ts = pd.to_datetime(v, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def compute_progress(planted: date, harvest: date, now: Union[date, datetime]) -> float:
    """
    Percentage of the planting-to-harvest window elapsed at `now`, in [0, 100].
    Counted in whole calendar days. A zero-length window is complete once planted.
    """
    today = parse_date(now)
    if today < planted:
        return 0.0
    if harvest <= planted:
        return 100.0
    if today >= harvest:
        return 100.0
    elapsed = (today - planted).days
    total = (harvest - planted).days
    return clamp(elapsed / total, 0.0, 1.0) * 100.0
