"""bar_export - OHLCV bars to delimited text, in bulk or as a resumable stream."""

__version__ = "0.1.0"
