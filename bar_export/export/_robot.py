"""Host lifecycle adapter - maps start/bar/stop callbacks onto the exporters."""

from __future__ import annotations

import logging

from ._bulk import BulkExporter, BulkResult
from ._config import ExportJob
from ._protocols import Host
from ._streaming import SessionState, StreamingSession

log = logging.getLogger(__name__)


class ExporterRobot:
    """One exporter instance attached to one host for one run.

    The host calls ``on_start`` once, ``on_bar`` whenever a new bar opens and
    ``on_stop`` last.  Nothing here raises into the host: failures are
    logged and the run carries on (streaming) or reports ``None`` (bulk).
    """

    def __init__(self, host: Host, job: ExportJob) -> None:
        self._host = host
        self._job = job
        self._session: StreamingSession | None = None
        self.last_result: BulkResult | None = None

    @property
    def session(self) -> StreamingSession | None:
        return self._session

    @property
    def running(self) -> bool:
        return self._session is not None and self._session.state is SessionState.READY

    # -- Host callbacks ----------------------------------------------------

    def on_start(self) -> None:
        job = self._job
        log.info("Mode     : %s", job.mode)
        if job.streaming:
            self._session = StreamingSession(job)
            try:
                if self._session.start(self._host.server_time(), self._host.is_backtesting):
                    log.info("Bars will be appended on every new bar (decimal separator '.')")
            except OSError:
                log.exception("Could not open output file; streaming export disabled")
                self._session.stop()
        elif job.auto_start:
            self.export_now()

    def on_bar(self) -> None:
        if self._session is None:
            return
        try:
            self._session.on_bar(self._host.bars)
        except (IndexError, ValueError) as exc:
            log.error("Error in on_bar: %s", exc)

    def on_stop(self) -> None:
        if self._session is not None:
            try:
                self._session.stop()
            except OSError as exc:
                log.error("Error closing output file: %s", exc)
        log.info("Exporter stopped")

    # -- Manual trigger ----------------------------------------------------

    def export_now(self) -> BulkResult | None:
        """Run a bulk export of the configured window right now."""
        if self._job.streaming:
            log.warning("export_now() is only available in bulk mode")
            return None
        self.last_result = BulkExporter(self._job).run(self._host)
        return self.last_result
