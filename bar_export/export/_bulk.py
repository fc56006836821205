"""Bulk strategy: export the trailing N bars in one atomic write."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ._config import ExportJob
from ._formatter import format_line, header_line
from ._identity import resolve_output_path
from ._protocols import Host

log = logging.getLogger(__name__)

_PROGRESS_EVERY = 10_000


@dataclass(frozen=True)
class BulkResult:
    path: Path
    rows: int
    first_key: str | None
    last_key: str | None
    size_bytes: int


def window_bounds(count: int, requested: int, exclude_forming_bar: bool = False) -> tuple[int, int]:
    """Return inclusive ``(start, last)`` indices of the export window.

    ``last`` is ``count - 1`` (or ``count - 2`` when the forming bar is
    excluded); ``start = max(0, last - requested + 1)``.  An empty window
    has ``last < start``.
    """
    last = count - (2 if exclude_forming_bar else 1)
    start = max(0, last - requested + 1)
    return start, last


class BulkExporter:
    """Writes header + window in one pass, replacing any previous file."""

    def __init__(self, job: ExportJob) -> None:
        self._job = job

    def run(self, host: Host) -> BulkResult | None:
        """Export the window.  Returns ``None`` if the export failed."""
        job = self._job
        bars = host.bars
        start, last = window_bounds(len(bars), job.bar_count, job.exclude_forming_bar)

        log.info("Symbol   : %s %s", job.symbol, job.timeframe)
        log.info("Window   : [%d .. %d] of %s bars", start, last, f"{len(bars):,}")

        try:
            path = resolve_output_path(
                job.output_dir, job.symbol, job.timeframe, host.server_time(),
            )
            log.info("Output   : %s", path)

            lines = [header_line(job.include_volume, job.delimiter)]
            first_key = last_key = None
            for n, index in enumerate(range(start, last + 1), start=1):
                bar = bars.bar(index)
                lines.append(format_line(
                    bar, job.include_volume, job.delimiter, job.precision, job.rounding,
                ))
                if first_key is None:
                    first_key = bar.key
                last_key = bar.key
                if n % _PROGRESS_EVERY == 0:
                    log.info("  [%s rows formatted]", f"{n:,}")

            _atomic_write_text(path, "\n".join(lines) + "\n")
        except (OSError, ValueError):
            log.exception("Bulk export failed")
            return None

        rows = len(lines) - 1
        size = path.stat().st_size
        if rows == 0:
            log.warning("No bars available; wrote header only to %s", path)
        else:
            log.info("Range    : %s .. %s", first_key, last_key)
        log.info("Done - %s rows, %s bytes written to %s", f"{rows:,}", f"{size:,}", path)
        return BulkResult(path, rows, first_key, last_key, size)


def _atomic_write_text(target: Path, text: str) -> None:
    """Write *text* to a temp file then rename - crash-safe."""
    fd, tmp = tempfile.mkstemp(
        dir=target.parent, suffix=".tmp", prefix=target.stem,
    )
    try:
        # text mode maps "\n" to the platform newline
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, target)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
