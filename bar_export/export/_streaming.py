"""Streaming strategy: append each newly closed bar exactly once."""

from __future__ import annotations

import enum
import logging
from datetime import datetime
from pathlib import Path
from typing import IO

from ._config import ExportJob
from ._formatter import format_line, header_line
from ._identity import resolve_output_path
from ._ledger import DedupLedger
from ._models import BarRecord
from ._protocols import BarSource

log = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class StreamingSession:
    """Owns the output handle and the dedup ledger for one replay run.

    State machine::

        UNINITIALIZED --start()--> READY --stop()--> CLOSED
                                   READY --on_closed_bar()--> READY

    Notifications outside READY are no-ops.  Use as a context manager to
    guarantee the handle is flushed and closed on every exit path.
    """

    def __init__(self, job: ExportJob) -> None:
        self._job = job
        self._state = SessionState.UNINITIALIZED
        self._ledger = DedupLedger()
        self._path: Path | None = None
        self._fh: IO[str] | None = None
        self.rows_written = 0
        self.rows_skipped = 0
        self.write_errors = 0

    # -- Properties --------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def ledger(self) -> DedupLedger:
        return self._ledger

    # -- Lifecycle ---------------------------------------------------------

    def start(self, run_time: datetime, backtesting: bool = True) -> bool:
        """Resolve the file, seed the ledger, ensure the header, open for append.

        Returns ``False`` (and closes the session) when not running inside a
        backtest; no file is created in that case.
        """
        if self._state is not SessionState.UNINITIALIZED:
            raise RuntimeError(f"start() called in state {self._state.value}")

        job = self._job
        if not backtesting:
            log.error("Streaming export must run in backtest mode only. Aborting.")
            self._state = SessionState.CLOSED
            return False

        path = resolve_output_path(job.output_dir, job.symbol, job.timeframe, run_time)
        self._ledger.seed(path, job.delimiter)

        if not path.exists() or path.stat().st_size == 0:
            with open(path, "w", encoding="utf-8") as f:
                f.write(header_line(job.include_volume, job.delimiter) + "\n")
            log.info("Created  : %s", path)
        else:
            log.info("Resuming : %s (%s rows known)", path, f"{len(self._ledger):,}")

        fh = open(path, "a", encoding="utf-8")
        try:
            if not _ends_with_newline(path):
                # previous run was cut mid-line; keep the next row on its own line
                fh.write("\n")
                fh.flush()
        except BaseException:
            fh.close()
            self._state = SessionState.CLOSED
            raise
        self._fh = fh
        self._path = path
        self._state = SessionState.READY
        return True

    def on_bar(self, bars: BarSource) -> bool:
        """New-bar notification: export the most recently closed bar.

        The last index is the bar still forming, so the closed one sits at
        ``len(bars) - 2``.
        """
        if self._state is not SessionState.READY:
            return False
        index = len(bars) - 2
        if index < 0:
            return False
        return self.on_closed_bar(bars.bar(index))

    def on_closed_bar(self, bar: BarRecord) -> bool:
        """Append *bar* unless its key was already written.  Returns True on append."""
        if self._state is not SessionState.READY or self._fh is None:
            log.debug("Ignoring bar %s: session %s", bar.key, self._state.value)
            return False

        key = bar.key
        if key in self._ledger:
            self.rows_skipped += 1
            log.debug("Skipping %s: already written", key)
            return False

        job = self._job
        try:
            line = format_line(bar, job.include_volume, job.delimiter, job.precision, job.rounding)
            self._fh.write(line + "\n")
            self._fh.flush()
        except (OSError, ValueError) as exc:
            self.write_errors += 1
            log.error("Failed to append bar %s: %s", key, exc)
            return False

        self._ledger.record(key)
        self.rows_written += 1
        return True

    def stop(self) -> None:
        """Flush and close the handle.  Safe to call more than once."""
        fh, self._fh = self._fh, None
        was_ready = self._state is SessionState.READY
        self._state = SessionState.CLOSED
        if fh is None:
            return
        try:
            fh.flush()
        finally:
            fh.close()
        if was_ready:
            size = self._path.stat().st_size if self._path.exists() else 0
            log.info(
                "Saved    : %s (%s bytes; %s written, %s skipped, %s errors)",
                self._path, f"{size:,}", f"{self.rows_written:,}",
                f"{self.rows_skipped:,}", self.write_errors,
            )

    def __enter__(self) -> StreamingSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


def _ends_with_newline(path: Path) -> bool:
    with open(path, "rb") as f:
        f.seek(0, 2)
        if f.tell() == 0:
            return True
        f.seek(-1, 2)
        return f.read(1) == b"\n"
