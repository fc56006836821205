"""
bar_export.export - turn a host's bar history into a delimited text file.

Two strategies share one formatter and one file naming rule::

    exports/eurusd_m5_20240102_000000.csv

* ``BulkExporter``      - trailing window of N bars, one atomic write.
* ``StreamingSession``  - append each closed bar once, resumable.
"""

from ._bulk import BulkExporter, BulkResult, window_bounds
from ._config import ExportJob, build_parser
from ._formatter import format_line, format_price, header_line
from ._identity import output_filename, resolve_output_path
from ._ledger import DedupLedger
from ._models import BarRecord, bar_key
from ._mt5_source import MT5Host, MT5Settings
from ._protocols import BarSource, Host
from ._robot import ExporterRobot
from ._sources import FrameBarSource, StaticHost, load_csv_bars, normalize_frame
from ._streaming import SessionState, StreamingSession

__all__ = [
    "BarRecord",
    "bar_key",
    "BarSource",
    "Host",
    "ExportJob",
    "build_parser",
    "format_line",
    "format_price",
    "header_line",
    "output_filename",
    "resolve_output_path",
    "DedupLedger",
    "BulkExporter",
    "BulkResult",
    "window_bounds",
    "StreamingSession",
    "SessionState",
    "FrameBarSource",
    "StaticHost",
    "load_csv_bars",
    "normalize_frame",
    "MT5Host",
    "MT5Settings",
    "ExporterRobot",
]
