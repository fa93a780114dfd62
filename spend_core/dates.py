from __future__ import annotations

import math
import re
from functools import lru_cache
from typing import Optional

import pandas as pd


WEEK_LABELS = [f"Week {i}" for i in range(1, 6)]


@lru_cache(maxsize=4096)
def parse_date(value: str) -> Optional[pd.Timestamp]:
    """Parse a free-form date string; ``None`` when it is not a date."""
    s = (value or "").strip()
    # Relative words ("now", "today") parse to the wall clock; a date needs a digit.
    if not s or not re.search(r"\d", s):
        return None
    try:
        ts = pd.to_datetime(s, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts


def record_dates(df: pd.DataFrame) -> pd.Series:
    """Timestamp (or NaT) per record, aligned with ``df.index``."""
    if df.empty or "date" not in df.columns:
        return pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")
    parsed = df["date"].map(lambda v: parse_date(str(v)))
    return pd.to_datetime(parsed, errors="coerce")


def record_years(df: pd.DataFrame) -> pd.Series:
    """Calendar year per record as nullable Int64 (``<NA>`` when unparseable)."""
    return record_dates(df).dt.year.astype("Int64")


def month_label(ts: pd.Timestamp) -> str:
    return ts.strftime("%b %Y")


def week_of_month(ts: pd.Timestamp) -> int:
    # Days 29-31 fold into week 5.
    return min(math.ceil(ts.day / 7), 5)


def week_label(ts: pd.Timestamp) -> str:
    return f"Week {week_of_month(ts)}"
