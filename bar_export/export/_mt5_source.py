"""Bulk-mode host backed by the MetaTrader5 Python package."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

import pandas as pd

from ._protocols import EXPECTED_COLS
from ._sources import FrameBarSource

log = logging.getLogger(__name__)

_AUTH_PENDING = -6  # IPC: terminal not yet authorised


@dataclass(frozen=True)
class MT5Settings:
    """Terminal connection settings; unset fields use the running terminal."""

    path: str | None = None
    login: int | None = None
    server: str | None = None
    password: str | None = None
    init_retries: int = 15
    init_retry_delay: float = 2.0


class MT5Host:
    """Connect to a running MT5 terminal and expose its recent history.

    Not a backtest: ``is_backtesting`` is always False, so only the bulk
    strategy accepts this host.
    """

    is_backtesting = False

    def __init__(self, symbol: str, timeframe: str, bar_count: int,
                 settings: MT5Settings | None = None) -> None:
        self._symbol = symbol
        self._timeframe = timeframe
        self._bar_count = bar_count
        self._settings = settings or MT5Settings()
        self._mt5 = None  # lazy import
        self._bars: FrameBarSource | None = None

    # -- lazy import so the package loads on any OS ------------------------

    def _lib(self):
        if self._mt5 is None:
            import MetaTrader5 as _mt5
            self._mt5 = _mt5
        return self._mt5

    # -- Host interface ----------------------------------------------------

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def timeframe(self) -> str:
        return self._timeframe

    @property
    def bars(self) -> FrameBarSource:
        if self._bars is None:
            self._bars = FrameBarSource(self._fetch_recent())
        return self._bars

    def server_time(self) -> datetime:
        tick = self._lib().symbol_info_tick(self._symbol)
        if tick is None:
            log.warning("No tick for %s; using local UTC time for the run id", self._symbol)
            return datetime.now(timezone.utc)
        return datetime.fromtimestamp(tick.time, tz=timezone.utc)

    # -- Connection --------------------------------------------------------

    def connect(self) -> None:
        """Attach to the terminal and make sure the symbol is in Market Watch."""
        mt5 = self._lib()
        self._initialize_with_retry(mt5)
        if not mt5.symbol_select(self._symbol, True):
            log.warning("Symbol %s not selectable in Market Watch", self._symbol)
        log.info("Connected to MT5")

    def _initialize_with_retry(self, mt5) -> None:
        s = self._settings
        kwargs = {
            name: value
            for name, value in (
                ("path", s.path), ("login", s.login),
                ("server", s.server), ("password", s.password),
            )
            if value is not None
        }
        attempts = max(1, s.init_retries)
        for attempt in range(1, attempts + 1):
            if mt5.initialize(**kwargs):
                return
            err = mt5.last_error()
            # terminal still logging in; anything else is final
            if not err or err[0] != _AUTH_PENDING or attempt == attempts:
                raise RuntimeError(
                    f"Terminal initialize() gave up after {attempt} attempt(s): {err}. "
                    "Start MetaTrader 5 and log in before exporting."
                )
            log.info(
                "Terminal login pending (%d/%d); next try in %.1fs",
                attempt, attempts, s.init_retry_delay,
            )
            time.sleep(s.init_retry_delay)


    def disconnect(self) -> None:
        self._lib().shutdown()
        log.info("Disconnected from MT5")

    def __enter__(self) -> MT5Host:
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.disconnect()

    # -- Private helpers ---------------------------------------------------

    def _timeframe_const(self) -> int:
        name = f"TIMEFRAME_{self._timeframe.upper()}"
        value = getattr(self._lib(), name, None)
        if value is None:
            raise ValueError(f"Unknown MT5 timeframe '{self._timeframe}'")
        return value

    def _fetch_recent(self) -> pd.DataFrame:
        mt5 = self._lib()
        # position 0 is the bar still forming; rates come back oldest first
        rates = mt5.copy_rates_from_pos(self._symbol, self._timeframe_const(), 0, self._bar_count)
        if rates is None:
            raise RuntimeError(f"copy_rates_from_pos failed: {mt5.last_error()}")
        if len(rates) == 0:
            return pd.DataFrame(columns=EXPECTED_COLS)

        df = pd.DataFrame(rates)
        df["time"] = pd.to_datetime(df["time"], unit="s", utc=True)
        return df
