"""Immutable bar record shared by every exporter component."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

KEY_FORMAT = "%Y-%m-%d %H:%M:%S"


def bar_key(open_time: datetime) -> str:
    """Identity key of a bar: its open time as ``YYYY-MM-DD HH:MM:SS``."""
    return open_time.strftime(KEY_FORMAT)


@dataclass(frozen=True)
class BarRecord:
    """One OHLCV observation, keyed by its UTC open time."""

    open_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    def __post_init__(self) -> None:
        ts = self.open_time
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        else:
            ts = ts.astimezone(timezone.utc)
        # second precision
        object.__setattr__(self, "open_time", ts.replace(microsecond=0))

        volume = int(self.volume)
        if volume < 0:
            raise ValueError(f"Negative volume: {self.volume}")
        object.__setattr__(self, "volume", volume)

    @property
    def key(self) -> str:
        return bar_key(self.open_time)
