"""Simulated backtest host: reveals bars one at a time and fires callbacks."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

import pandas as pd

from bar_export.export._models import BarRecord
from bar_export.export._sources import FrameBarSource, normalize_frame
from .validation import validate_bars

log = logging.getLogger(__name__)


class Robot(Protocol):
    def on_start(self) -> None: ...
    def on_bar(self) -> None: ...
    def on_stop(self) -> None: ...


class _RevealedBars:
    """Prefix of the full history visible at the current replay step."""

    def __init__(self, source: FrameBarSource, host: ReplayHost) -> None:
        self._source = source
        self._host = host

    def __len__(self) -> int:
        return self._host.revealed

    def bar(self, index: int) -> BarRecord:
        if index < 0 or index >= self._host.revealed:
            raise IndexError(f"bar index {index} not yet available ({self._host.revealed} revealed)")
        return self._source.bar(index)


class ReplayHost:
    """Replays a validated bar DataFrame in strict chronological order.

    Guarantees:
    - rows are sorted ascending by ``time`` (stable, repeats kept)
    - at step *i* exactly ``i + 1`` bars are visible; the last one is the
      bar still forming
    - ``server_time()`` is *start_time* (default: first bar's open) until
      the first bar opens, then the open time of the forming bar
    """

    is_backtesting = True

    def __init__(
        self,
        df: pd.DataFrame,
        symbol: str,
        timeframe: str,
        start_time: datetime | None = None,
    ) -> None:
        validate_bars(df)
        df = normalize_frame(df)
        df = df.sort_values("time", kind="mergesort").reset_index(drop=True)
        self._source = FrameBarSource(df)
        self._symbol = symbol
        self._timeframe = timeframe
        self._revealed = 0
        if start_time is None and len(self._source):
            start_time = self._source.bar(0).open_time
        if start_time is None:
            raise ValueError("start_time is required for an empty replay")
        self._start_time = start_time

        log.info(
            "ReplayHost: %s bars, %s %s",
            f"{len(self._source):,}", symbol, timeframe,
        )

    # -- Host interface ----------------------------------------------------

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def timeframe(self) -> str:
        return self._timeframe

    @property
    def bars(self) -> _RevealedBars:
        return _RevealedBars(self._source, self)

    @property
    def revealed(self) -> int:
        return self._revealed

    def __len__(self) -> int:
        return len(self._source)

    def server_time(self) -> datetime:
        if self._revealed == 0:
            return self._start_time
        return self._source.bar(self._revealed - 1).open_time

    # -- Driving -----------------------------------------------------------

    def run(self, robot: Robot, stop_after: int | None = None, deliveries: int = 1) -> int:
        """Replay every bar into *robot*.  Returns the number of bars opened.

        *stop_after* interrupts the replay after that many bars (the stop
        callback still fires).  *deliveries* repeats each new-bar
        notification, as hosts sometimes do around mode switches.
        """
        self._revealed = 0
        total = len(self._source) if stop_after is None else min(stop_after, len(self._source))
        try:
            robot.on_start()
            for _ in range(total):
                self._revealed += 1
                for _ in range(deliveries):
                    robot.on_bar()
        finally:
            robot.on_stop()
        log.info("Replayed %s of %s bars", f"{self._revealed:,}", f"{len(self._source):,}")
        return self._revealed
