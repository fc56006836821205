"""DataFrame-backed bar sources and a static (non-replay) host."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

import pandas as pd

from ._models import BarRecord
from ._protocols import EXPECTED_COLS

log = logging.getLogger(__name__)

_VOLUME_ALIASES = ("volume", "tick_volume", "real_volume")


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with ``time`` as UTC datetimes and a ``volume`` column.

    MT5 frames carry ``tick_volume`` / ``real_volume`` instead of ``volume``;
    the first one present is aliased.  A frame with none of them gets zeros.
    """
    if "time" not in df.columns:
        raise ValueError("DataFrame must contain a 'time' column")
    missing = [c for c in ("open", "high", "low", "close") if c not in df.columns]
    if missing:
        raise ValueError(f"DataFrame is missing columns {missing}")

    df = df.copy()
    if pd.api.types.is_numeric_dtype(df["time"]):
        df["time"] = pd.to_datetime(df["time"], unit="s", utc=True)
    else:
        df["time"] = pd.to_datetime(df["time"], utc=True)

    if "volume" not in df.columns:
        alias = next((c for c in _VOLUME_ALIASES if c in df.columns), None)
        if alias is not None:
            log.debug("Aliasing '%s' to 'volume'", alias)
            df["volume"] = df[alias]
        else:
            log.warning("No volume column found; exporting zero volume")
            df["volume"] = 0

    return df.loc[:, EXPECTED_COLS].reset_index(drop=True)


class FrameBarSource:
    """Index-addressable view over a normalized bar DataFrame."""

    def __init__(self, df: pd.DataFrame) -> None:
        self._df = normalize_frame(df)

    def __len__(self) -> int:
        return len(self._df)

    def bar(self, index: int) -> BarRecord:
        if index < 0 or index >= len(self._df):
            raise IndexError(f"bar index {index} out of range [0, {len(self._df)})")
        row = self._df.iloc[index]
        return BarRecord(
            open_time=row["time"].to_pydatetime(),
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=int(row["volume"]),
        )

    @property
    def df(self) -> pd.DataFrame:
        return self._df.copy()


def load_csv_bars(paths: Sequence[Path]) -> pd.DataFrame:
    """Concatenate bar CSV files (e.g. a loader snapshot) sorted by time."""
    if not paths:
        raise ValueError("No CSV files given")
    frames = []
    for csv_file in paths:
        df_part = pd.read_csv(csv_file)
        frames.append(df_part)
        log.info("  Loaded %s  (%s rows)", Path(csv_file).name, f"{len(df_part):,}")

    df = pd.concat(frames, ignore_index=True)
    df = normalize_frame(df)
    return df.sort_values("time", kind="mergesort").reset_index(drop=True)


@dataclass
class StaticHost:
    """Host over a fixed bar history, e.g. files on disk.  Not a backtest."""

    symbol: str
    timeframe: str
    bars: FrameBarSource
    run_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_backtesting: bool = False

    def server_time(self) -> datetime:
        return self.run_time
