"""Protocol definitions for bar sources and hosts."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from ._models import BarRecord

EXPECTED_COLS: list[str] = ["time", "open", "high", "low", "close", "volume"]


@runtime_checkable
class BarSource(Protocol):
    """Ordered, append-only bar history addressed by 0-based index.

    By convention the last index is the bar still forming.
    """

    def __len__(self) -> int: ...
    def bar(self, index: int) -> BarRecord: ...


@runtime_checkable
class Host(Protocol):
    """Abstraction over the platform that owns the bars (replay, MT5, file)."""

    @property
    def symbol(self) -> str: ...
    @property
    def timeframe(self) -> str: ...
    @property
    def is_backtesting(self) -> bool: ...
    @property
    def bars(self) -> BarSource: ...
    def server_time(self) -> datetime: ...
