"""Fail-fast format checks for bar DataFrames fed to a replay."""

from __future__ import annotations

import logging

import pandas as pd

log = logging.getLogger(__name__)


def validate_bars(df: pd.DataFrame) -> None:
    """Validate a raw bar DataFrame *before* it is replayed.

    Raises ``ValueError`` on the first problem that would make a row
    unformattable or break delivery order.  Repeated timestamps are allowed
    (the exporter writes each key once) but logged.
    """

    # 1. Timestamp column exists with no nulls ──────────────────────────
    if "time" not in df.columns:
        raise ValueError("Missing 'time' column")
    if df["time"].isna().any():
        n = int(df["time"].isna().sum())
        raise ValueError(f"Null timestamps found: {n} rows")

    # 2. Non-decreasing time ────────────────────────────────────────────
    times = pd.to_datetime(df["time"], utc=True)
    if not times.is_monotonic_increasing:
        raise ValueError("Timestamps not monotonic increasing")

    n_dupes = int(times.duplicated().sum())
    if n_dupes > 0:
        log.warning("Repeated timestamps: %d rows will be written once", n_dupes)

    # 3. No NaNs in OHLC fields ────────────────────────────────────────
    ohlc = ["open", "high", "low", "close"]
    missing = [c for c in ohlc if c not in df.columns]
    if missing:
        raise ValueError(f"Missing price columns {missing}")
    na_cols = [c for c in ohlc if df[c].isna().any()]
    if na_cols:
        raise ValueError(f"NaN values in {na_cols}")

    # 4. Volume sanity ─────────────────────────────────────────────────
    for col in ("volume", "tick_volume"):
        if col in df.columns:
            neg = int((df[col] < 0).sum())
            if neg > 0:
                raise ValueError(f"Negative {col} found: {neg} rows")
