"""Output file identity: ``{symbol}_{timeframe}_{run}.csv``."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

log = logging.getLogger(__name__)

RUN_ID_FORMAT = "%Y%m%d_%H%M%S"


def output_filename(symbol: str, timeframe: str, run_time: datetime) -> str:
    sym = symbol.lower().replace("/", "")
    tf = timeframe.lower()
    return f"{sym}_{tf}_{run_time.strftime(RUN_ID_FORMAT)}.csv"


def resolve_output_path(
    output_dir: Path | str,
    symbol: str,
    timeframe: str,
    run_time: datetime,
) -> Path:
    """Return the output path for this run, creating *output_dir* if needed."""
    out_dir = Path(output_dir)
    if not out_dir.is_dir():
        out_dir.mkdir(parents=True, exist_ok=True)
        log.info("Created directory: %s", out_dir)
    return out_dir / output_filename(symbol, timeframe, run_time)
